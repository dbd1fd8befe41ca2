"""Tests for the restore/commit/process cycle of a context."""

from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest

from bitferry.endpoint import RemoteEndpoint, VolumeEndpoint
from bitferry.rclone import Copy
from bitferry.volume import STORAGE, Volume


def _crash(*args, **kwargs):
    raise OSError("simulated crash")


@pytest.fixture
def roots(tmp_path):
    return [tmp_path / f"v{i}" for i in (1, 2, 3)]


class TestRoots:
    def test_search_paths_and_mounts(self, make_context, tmp_path):
        context = make_context(tmp_path / "a", tmp_path / "a" / ".")
        context.config.scan_mounts = True
        context.mounts = lambda: [tmp_path / "m"]
        assert context.roots() == [(tmp_path / "a").resolve(), (tmp_path / "m").resolve()]

    def test_mounts_ignored_when_disabled(self, make_context, tmp_path):
        context = make_context(tmp_path / "a")
        context.mounts = lambda: [tmp_path / "m"]
        assert context.roots() == [(tmp_path / "a").resolve()]


class TestRestore:
    def test_restores_every_volume(self, context, make_context, roots):
        tags = [Volume.new(context, root).tag for root in roots]
        context.commit()

        fresh = make_context(*roots)
        assert fresh.restore()
        assert sorted(v.tag for v in fresh.volumes) == sorted(tags)

    def test_skips_roots_without_storage(self, make_context, tmp_path):
        (tmp_path / "plain").mkdir()
        context = make_context(tmp_path / "plain", tmp_path / "missing")
        assert context.restore()
        assert len(context.volumes) == 0

    def test_corrupt_volume_is_isolated(self, context, make_context, roots):
        for root in roots:
            Volume.new(context, root)
        context.commit()
        (roots[1] / STORAGE).write_text("{garbage")

        fresh = make_context(*roots)
        assert not fresh.restore()
        assert sorted(str(v.root) for v in fresh.volumes) == sorted(
            str(r.resolve()) for r in (roots[0], roots[2])
        )

    def test_undecodable_volume_is_isolated(self, context, make_context, roots):
        for root in roots[:2]:
            Volume.new(context, root)
        context.commit()
        (roots[0] / STORAGE).write_bytes(b"\xff\xfe garbage")

        fresh = make_context(roots[0], roots[1])
        assert not fresh.restore()
        assert [v.root for v in fresh.volumes] == [roots[1].resolve()]

    def test_timestamp_without_offset_is_utc(self, context, make_context, roots):
        v1, v2 = Volume.new(context, roots[0]), Volume.new(context, roots[1])
        task = Copy.new(
            context,
            VolumeEndpoint(context.volumes, v1.tag, "a"),
            VolumeEndpoint(context.volumes, v2.tag, "b"),
        )
        context.commit()

        storage = roots[1] / STORAGE
        data = json.loads(storage.read_text())
        data["tasks"][0]["modified"] = "2099-01-01T00:00:00"
        storage.write_text(json.dumps(data))

        fresh = make_context(roots[0], roots[1])
        assert fresh.restore()
        assert fresh.tasks.get(task.tag).modified == datetime(2099, 1, 1, tzinfo=timezone.utc)

    def test_restore_resets_registries(self, context, make_context, roots):
        Volume.new(context, roots[0])
        context.commit()
        fresh = make_context(roots[0])
        fresh.restore()
        fresh.restore()
        assert len(fresh.volumes) == 1

    @pytest.mark.parametrize("order", [(0, 1), (1, 0)])
    def test_newest_task_declaration_wins(self, context, make_context, roots, order):
        v1, v2 = Volume.new(context, roots[0]), Volume.new(context, roots[1])
        task = Copy.new(
            context,
            VolumeEndpoint(context.volumes, v1.tag, "a"),
            VolumeEndpoint(context.volumes, v2.tag, "b"),
        )
        context.commit()

        storage = roots[1] / STORAGE
        data = json.loads(storage.read_text())
        data["tasks"][0]["include"] = ["*.txt"]
        data["tasks"][0]["modified"] = "2099-01-01T00:00:00Z"
        storage.write_text(json.dumps(data))

        fresh = make_context(*(roots[i] for i in order))
        assert fresh.restore()
        restored = fresh.tasks.get(task.tag)
        assert restored.include == ["*.txt"]
        assert restored.modified == datetime(2099, 1, 1, tzinfo=timezone.utc)


class TestCommit:
    def test_partial_failure_is_isolated(self, context, roots, monkeypatch):
        volumes = [Volume.new(context, root) for root in roots]
        context.commit()
        tasks = [
            Copy.new(context, VolumeEndpoint(context.volumes, v.tag), RemoteEndpoint(f"r:{i}"))
            for i, v in enumerate(volumes)
        ]
        monkeypatch.setattr(volumes[1], "_store", _crash)

        assert not context.commit()
        for i in (0, 2):
            data = json.loads((roots[i] / STORAGE).read_text())
            assert [t["tag"] for t in data["tasks"]] == [tasks[i].tag]
            assert not volumes[i].modified
        assert "tasks" not in json.loads((roots[1] / STORAGE).read_text())
        assert volumes[1].modified

    def test_failed_commit_can_be_retried(self, context, roots, monkeypatch):
        volume = Volume.new(context, roots[0])
        monkeypatch.setattr(volume, "_store", _crash)
        assert not context.commit()
        monkeypatch.undo()
        assert context.commit()
        assert (roots[0] / STORAGE).exists()


class TestProcess:
    @pytest.fixture
    def tasks(self, context, roots):
        volume = Volume.new(context, roots[0])
        context.commit()
        return [
            Copy.new(context, VolumeEndpoint(context.volumes, volume.tag, str(i)), RemoteEndpoint(f"r:{i}"))
            for i in range(3)
        ]

    def test_all_intact_tasks(self, context, tasks, executor):
        assert context.process()
        assert len(executor.calls) == 3

    def test_failures_do_not_stop_the_batch(self, context, tasks, executor):
        executor.result = lambda argv: argv[-1] != "r:1"
        progress = []
        assert not context.process(progress=lambda *counts: progress.append(counts))
        assert len(executor.calls) == 3
        assert progress == [(3, 1, 0), (3, 2, 1), (3, 3, 1)]

    def test_selected_tags(self, context, tasks, executor):
        assert context.process(tasks[2].tag)
        assert [c.argv[-1] for c in executor.calls] == ["r:2"]

    def test_stale_tasks_are_skipped(self, context, tasks, executor):
        Copy.new(context, VolumeEndpoint(context.volumes, "missing0"), RemoteEndpoint("r:x"))
        assert context.process()
        assert len(executor.calls) == 3

    def test_no_match(self, context, tasks, executor, caplog):
        assert context.process("zzzz")
        assert executor.calls == []
        assert "No intact task" in caplog.text
