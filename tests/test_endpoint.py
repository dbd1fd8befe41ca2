"""Tests for task endpoints."""

from __future__ import annotations

import pytest

from bitferry.endpoint import Endpoint, LocalEndpoint, RemoteEndpoint, VolumeEndpoint
from bitferry.models import LocalEndpointRecord, RemoteEndpointRecord, VolumeEndpointRecord
from bitferry.volume import Volume


class TestLocalEndpoint:
    def test_always_intact(self, tmp_path):
        endpoint = LocalEndpoint(tmp_path / "missing")
        assert endpoint.intact
        assert endpoint.generation == 0

    def test_location(self, tmp_path):
        assert LocalEndpoint(tmp_path).location() == str(tmp_path)

    def test_record(self, tmp_path):
        record = LocalEndpoint(tmp_path).to_record()
        assert record == LocalEndpointRecord(root=str(tmp_path))


class TestRemoteEndpoint:
    def test_passthrough(self):
        endpoint = RemoteEndpoint("b2:bucket/dir")
        assert endpoint.location() == "b2:bucket/dir"
        assert endpoint.intact
        assert str(endpoint) == "b2:bucket/dir"


class TestVolumeEndpoint:
    def test_rejects_absolute_path(self, context):
        with pytest.raises(ValueError):
            VolumeEndpoint(context.volumes, "deadbeef", "/etc")

    def test_rejects_parent_escape(self, context):
        with pytest.raises(ValueError):
            VolumeEndpoint(context.volumes, "deadbeef", "a/../../b")

    def test_dot_is_root(self, context):
        assert VolumeEndpoint(context.volumes, "deadbeef", ".").path == ""

    def test_unregistered_volume(self, context):
        endpoint = VolumeEndpoint(context.volumes, "deadbeef", "a")
        assert not endpoint.intact
        assert endpoint.generation == 0
        with pytest.raises(LookupError):
            endpoint.location()

    def test_bound_volume(self, context, tmp_path):
        volume = Volume.new(context, tmp_path / "v")
        endpoint = VolumeEndpoint(context.volumes, volume.tag, "sub/dir")
        assert endpoint.intact
        assert endpoint.refers(volume)
        assert endpoint.location() == str(volume.root / "sub" / "dir")
        assert str(endpoint) == f":{volume.tag}:sub/dir"

    def test_generation_follows_volume(self, context, tmp_path):
        volume = Volume.new(context, tmp_path / "v")
        endpoint = VolumeEndpoint(context.volumes, volume.tag)
        volume.generation = 7
        assert endpoint.generation == 7

    def test_removing_volume_is_not_intact(self, context, tmp_path):
        volume = Volume.new(context, tmp_path / "v")
        endpoint = VolumeEndpoint(context.volumes, volume.tag)
        volume.delete()
        assert not endpoint.intact

    def test_equality(self, context):
        assert VolumeEndpoint(context.volumes, "aa", "x") == VolumeEndpoint(context.volumes, "aa", "x")
        assert VolumeEndpoint(context.volumes, "aa", "x") != VolumeEndpoint(context.volumes, "bb", "x")

    def test_hashable(self, context, tmp_path):
        endpoints = {
            VolumeEndpoint(context.volumes, "aa", "x"),
            VolumeEndpoint(context.volumes, "aa", "x"),
            LocalEndpoint(tmp_path),
            LocalEndpoint(tmp_path),
            RemoteEndpoint("r:x"),
        }
        assert len(endpoints) == 3


class TestRestore:
    def test_dispatch(self, context, tmp_path):
        volumes = context.volumes
        assert Endpoint.restore(LocalEndpointRecord(root=str(tmp_path)), volumes) == LocalEndpoint(tmp_path)
        assert Endpoint.restore(RemoteEndpointRecord(url="s3:b"), volumes) == RemoteEndpoint("s3:b")
        assert Endpoint.restore(
            VolumeEndpointRecord(volume="aa", path="x"), volumes
        ) == VolumeEndpoint(volumes, "aa", "x")
