"""Tests for the JSON file backend."""

import json
import tempfile
from pathlib import Path

import pytest

from crowbar_registry.backend import JsonConfigBackend
from crowbar_registry.errors import NotFoundError, TransportError


def _record(name: str) -> dict:
    return {"name": name, "description": "", "override_attributes": {}, "run_list": []}


def test_save_and_load_role():
    with tempfile.TemporaryDirectory() as tmpdir:
        backend = JsonConfigBackend(tmpdir)
        backend.save_role(_record("dns-config-default"))
        assert backend.load_role("dns-config-default")["name"] == "dns-config-default"


def test_load_missing_role():
    with tempfile.TemporaryDirectory() as tmpdir:
        with pytest.raises(NotFoundError):
            JsonConfigBackend(tmpdir).load_role("missing")


def test_load_corrupt_role_is_transport_error():
    with tempfile.TemporaryDirectory() as tmpdir:
        backend = JsonConfigBackend(tmpdir)
        (Path(tmpdir) / "roles" / "broken.json").write_text("{not json")
        with pytest.raises(TransportError):
            backend.load_role("broken")


def test_invalid_role_name():
    with tempfile.TemporaryDirectory() as tmpdir:
        with pytest.raises(TransportError):
            JsonConfigBackend(tmpdir).save_role(_record("../escape"))


def test_search_by_name_pattern():
    with tempfile.TemporaryDirectory() as tmpdir:
        backend = JsonConfigBackend(tmpdir)
        for name in ("dns-config-default", "ntp-config-default", "dns-server"):
            backend.save_role(_record(name))
        (Path(tmpdir) / "roles" / "broken.json").write_text("{not json")

        result = backend.search_roles("name:*-config-*")
        assert result.ok
        assert [r["name"] for r in result.rows] == ["dns-config-default", "ntp-config-default"]
        assert result.total == 2

        assert backend.search_roles().total == 3
        assert [r["name"] for r in backend.search_roles("dns-*").rows] == [
            "dns-config-default",
            "dns-server",
        ]


def test_destroy_role():
    with tempfile.TemporaryDirectory() as tmpdir:
        backend = JsonConfigBackend(tmpdir)
        backend.save_role(_record("dns-config-default"))
        backend.destroy_role("dns-config-default")
        with pytest.raises(NotFoundError):
            backend.load_role("dns-config-default")


def test_data_bags():
    with tempfile.TemporaryDirectory() as tmpdir:
        backend = JsonConfigBackend(tmpdir)
        assert backend.load_data_bag("crowbar/repositories") == {}

        backend.save_data_bag("crowbar/repositories", {"suse-12.1": {"SLES12-SP1-Pool": {}}})
        assert backend.load_data_bag("crowbar/repositories") == {"suse-12.1": {"SLES12-SP1-Pool": {}}}

        path = Path(tmpdir) / "data_bags" / "crowbar" / "repositories.json"
        path.write_text(json.dumps(["not", "a", "mapping"]))
        assert backend.load_data_bag("crowbar/repositories") == {}

        path.write_text("{broken")
        assert backend.load_data_bag("crowbar/repositories") == {}
