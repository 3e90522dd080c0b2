"""Tests for the taskgroup CLI."""

import json

import pytest
import yaml
from click.testing import CliRunner

from taskgroup.cli import main

from conftest import VOLUME_PLAN, write_plan


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def home(tmp_path, monkeypatch):
    home = tmp_path / "home"
    monkeypatch.setenv("TASKGROUP_HOME", str(home))
    return home


@pytest.fixture
def values_file(tmp_path, volume_values):
    path = tmp_path / "values.yaml"
    path.write_text(yaml.safe_dump(volume_values))
    return path


class TestInit:
    def test_init_creates_config(self, runner, home):
        result = runner.invoke(main, ["init"])

        assert result.exit_code == 0
        assert "Initialized taskgroup config" in result.output
        cfg = yaml.safe_load((home / "config.yaml").read_text())
        assert cfg["definitions_dir"] == str(home / "plans")
        assert (home / "plans").is_dir()

    def test_init_does_not_overwrite_without_force(self, runner, home):
        home.mkdir(parents=True)
        (home / "config.yaml").write_text("existing: true")

        result = runner.invoke(main, ["init"])

        assert result.exit_code == 1
        assert "Config already exists" in result.output
        assert (home / "config.yaml").read_text() == "existing: true"

    def test_init_force_overwrites(self, runner, home):
        home.mkdir(parents=True)
        (home / "config.yaml").write_text("existing: true")

        result = runner.invoke(main, ["init", "--force"])

        assert result.exit_code == 0
        assert "definitions_dir" in yaml.safe_load((home / "config.yaml").read_text())


class TestRun:
    def test_run_prints_output(self, runner, home, plans_dir, values_file):
        result = runner.invoke(
            main,
            ["run", "volume-create-0.7.0", "--values", str(values_file), "--definitions-dir", str(plans_dir)],
        )

        assert result.exit_code == 0, result.output
        first_line = result.output.splitlines()[0]
        assert json.loads(first_line) == {"volume": "pvc-1", "service": "pvc-1-svc", "replica": "pvc-1-rep"}
        assert "✓ volume-create-0.7.0 completed" in result.output

    def test_set_overrides_values(self, runner, home, plans_dir, values_file):
        result = runner.invoke(
            main,
            [
                "run", "volume-create-0.7.0",
                "--values", str(values_file),
                "--set", "Volume.owner=pvc-9",
                "--definitions-dir", str(plans_dir),
            ],
        )

        assert result.exit_code == 0, result.output
        assert '"service": "pvc-9-svc"' in result.output

    def test_run_falls_back(self, runner, home, plans_dir, values_file):
        result = runner.invoke(
            main,
            [
                "run", "volume-create-0.7.0",
                "--values", str(values_file),
                "--set", "Volume.version=0.6.0",
                "--definitions-dir", str(plans_dir),
            ],
        )

        assert result.exit_code == 0, result.output
        assert '"service": "pvc-1-legacy-svc"' in result.output

    def test_run_failure(self, runner, home, plans_dir):
        result = runner.invoke(main, ["run", "volume-create-0.7.0", "--definitions-dir", str(plans_dir)])

        assert result.exit_code == 1
        assert "✗ volume-create-0.7.0 failed" in result.output

    def test_run_unknown_plan(self, runner, home, plans_dir):
        result = runner.invoke(main, ["run", "nope", "--definitions-dir", str(plans_dir)])

        assert result.exit_code == 1
        assert "Plan definition not found: nope" in result.output

    def test_run_noop_handlers(self, runner, home, plans_dir, values_file):
        result = runner.invoke(
            main,
            [
                "run", "volume-create-0.7.0",
                "--values", str(values_file),
                "--handlers", "noop",
                "--definitions-dir", str(plans_dir),
            ],
        )

        assert result.exit_code == 0, result.output

    def test_bad_set(self, runner, home, plans_dir):
        result = runner.invoke(main, ["run", "volume-create-0.7.0", "--set", "novalue", "--definitions-dir", str(plans_dir)])

        assert result.exit_code == 2
        assert "--set expects key=value" in result.output

    def test_malformed_values_file(self, runner, home, plans_dir, tmp_path):
        values_file = tmp_path / "broken.yaml"
        values_file.write_text("Volume: [owner: pvc-1\n")

        result = runner.invoke(
            main,
            ["run", "volume-create-0.7.0", "--values", str(values_file), "--definitions-dir", str(plans_dir)],
        )

        assert result.exit_code == 2
        assert "values file is not valid YAML" in result.output
        assert not isinstance(result.exception, yaml.YAMLError)

    def test_malformed_set_value(self, runner, home, plans_dir):
        result = runner.invoke(
            main, ["run", "volume-create-0.7.0", "--set", "Volume.owner=[pvc", "--definitions-dir", str(plans_dir)]
        )

        assert result.exit_code == 2
        assert "--set value for 'Volume.owner' is not valid YAML" in result.output

    def test_run_without_config_or_dir(self, runner, home):
        result = runner.invoke(main, ["run", "volume-create-0.7.0"])

        assert result.exit_code == 1
        assert "Config not loaded" in result.output

    def test_run_uses_configured_definitions_dir(self, runner, home, plans_dir, values_file):
        home.mkdir(parents=True)
        (home / "config.yaml").write_text(yaml.safe_dump({
            "definitions_dir": str(plans_dir),
            "log_file": str(home / "logs" / "taskgroup-{date}.log"),
            "console_log": False,
        }))

        result = runner.invoke(main, ["run", "volume-create-0.7.0", "--values", str(values_file)])

        assert result.exit_code == 0, result.output
        assert list((home / "logs").glob("taskgroup-*.log"))


class TestPlans:
    def test_list(self, runner, home, plans_dir):
        result = runner.invoke(main, ["plans", "list", "--definitions-dir", str(plans_dir)])

        assert result.exit_code == 0
        assert result.output.splitlines() == ["volume-create-0.6.0", "volume-create-0.7.0"]

    def test_list_empty(self, runner, home, tmp_path):
        result = runner.invoke(main, ["plans", "list", "--definitions-dir", str(tmp_path / "empty")])

        assert result.exit_code == 0
        assert "No plan definitions found." in result.output

    def test_show(self, runner, home, plans_dir):
        result = runner.invoke(main, ["plans", "show", "volume-create-0.7.0", "--definitions-dir", str(plans_dir)])

        assert result.exit_code == 0
        assert "Fallback: volume-create-0.6.0" in result.output
        assert "Tasks: 2" in result.output
        assert "Hash: " in result.output

    def test_show_missing(self, runner, home, plans_dir):
        result = runner.invoke(main, ["plans", "show", "nope", "--definitions-dir", str(plans_dir)])
        assert result.exit_code == 1

    def test_validate_walks_fallbacks(self, runner, home, plans_dir):
        result = runner.invoke(main, ["plans", "validate", "volume-create-0.7.0", "--definitions-dir", str(plans_dir)])

        assert result.exit_code == 0
        assert "volume-create-0.7.0 -> volume-create-0.6.0" in result.output

    def test_validate_detects_cycle(self, runner, home, tmp_path):
        defs = tmp_path / "cyclic"
        write_plan(defs, {"plan_id": "a", "fallback": "b"})
        write_plan(defs, {"plan_id": "b", "fallback": "a"})

        result = runner.invoke(main, ["plans", "validate", "a", "--definitions-dir", str(defs)])

        assert result.exit_code == 1
        assert "fallback cycle: a -> b -> a" in result.output

    def test_validate_missing_fallback(self, runner, home, tmp_path):
        defs = tmp_path / "broken"
        write_plan(defs, {**VOLUME_PLAN, "fallback": "gone"})

        result = runner.invoke(main, ["plans", "validate", "volume-create-0.7.0", "--definitions-dir", str(defs)])

        assert result.exit_code == 1
        assert "Plan definition not found: gone" in result.output
