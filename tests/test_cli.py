"""Tests for the crowbar-registry command line."""

import json
import tempfile
from pathlib import Path

from click.testing import CliRunner

from crowbar_registry.backend import JsonConfigBackend
from crowbar_registry.cli import main


def _env(tmpdir: str) -> dict:
    base = Path(tmpdir)
    return {
        "CROWBAR_BACKEND_DIR": str(base / "backend"),
        "CROWBAR_LOCK_DIR": str(base / "locks"),
        "CROWBAR_REPOS_OVERRIDE": str(base / "etc" / "repos.yml"),
        "CROWBAR_REPOS_ROOT": str(base / "tftpboot"),
        "CROWBAR_LOG_LEVEL": "WARNING",
    }


def _role_file(tmpdir: str) -> str:
    path = Path(tmpdir) / "nova.json"
    path.write_text(
        json.dumps(
            {
                "name": "nova-config-default",
                "description": "Nova deployment",
                "override_attributes": {"nova": {"elements": {"nova-controller": ["d1"]}}},
                "run_list": ["role[nova-controller]"],
            }
        )
    )
    return str(path)


def test_role_lifecycle():
    with tempfile.TemporaryDirectory() as tmpdir:
        runner = CliRunner()
        env = _env(tmpdir)
        role_file = _role_file(tmpdir)

        result = runner.invoke(main, ["roles", "save", role_file], env=env)
        assert result.exit_code == 0, result.output
        assert "revision 0" in result.output

        result = runner.invoke(main, ["roles", "show", "nova-config-default"], env=env)
        assert result.exit_code == 0, result.output
        assert "crowbar-revision: 0" in result.output

        result = runner.invoke(main, ["roles", "active", "--barclamp", "nova"], env=env)
        assert result.exit_code == 0
        assert "nova" in result.output
        assert "default" in result.output

        result = runner.invoke(main, ["roles", "list"], env=env)
        assert result.exit_code == 0

        result = runner.invoke(main, ["roles", "destroy", "nova-config-default"], env=env)
        assert result.exit_code == 0

        result = runner.invoke(main, ["roles", "show", "nova-config-default"], env=env)
        assert result.exit_code == 1


def test_save_reports_race():
    with tempfile.TemporaryDirectory() as tmpdir:
        runner = CliRunner()
        env = _env(tmpdir)
        role_file = _role_file(tmpdir)

        runner.invoke(main, ["roles", "save", role_file], env=env)
        # The file still has no revision, so the second save writes revision 0 again.
        result = runner.invoke(main, ["roles", "save", role_file], env=env)
        assert result.exit_code == 0
        assert "revision race" in result.output

        env["CROWBAR_CONFLICT_POLICY"] = "reject"
        result = runner.invoke(main, ["roles", "save", role_file], env=env)
        assert result.exit_code == 1
        assert "Conflict" in result.output


def test_repos_commands():
    with tempfile.TemporaryDirectory() as tmpdir:
        runner = CliRunner()
        env = _env(tmpdir)
        JsonConfigBackend(env["CROWBAR_BACKEND_DIR"]).save_data_bag(
            "crowbar/repositories", {"suse-12.1": {"SLE12-SP1-HA-Pool": {}}}
        )

        result = runner.invoke(main, ["repos", "list", "--platform", "suse-12.1"], env=env)
        assert result.exit_code == 0, result.output

        result = runner.invoke(main, ["repos", "feature", "ha", "--platform", "suse-12.1"], env=env)
        assert result.exit_code == 0
        assert "enabled" in result.output

        result = runner.invoke(main, ["repos", "feature", "ceph"], env=env)
        assert result.exit_code == 1

        # No local mirrors exist, so mandatory repositories are unavailable.
        result = runner.invoke(main, ["repos", "check", "--platform", "suse-12.1"], env=env)
        assert result.exit_code == 1
        assert "mandatory" in result.output
