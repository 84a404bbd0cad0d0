"""Tests for the command line interface."""
import json

import pytest

from graccess_client.cli import build_parser, main

SEED_YAML = """
galaxies:
  Demo:
    templates: [$WinPlatform, $AppEngine, $Area, $UserDefined]
    instances:
      MainArea: {template: $Area}
  Staging:
    templates: [$Area]
"""

SETTINGS_YAML = """
backend:
  type: memory
  seed: seed.yaml

galaxy:
  name: Demo

instances:
  - name: GRPlatform
    template: $WinPlatform
  - name: MainTank
    template: $UserDefined
    parent: MainArea

export:
  objects: [GRPlatform, MainTank]
  path: {export_path}
"""


@pytest.fixture(autouse=True)
def log_dir(tmp_path, monkeypatch):
    """Keep log and audit files inside the test directory."""
    logs = tmp_path / "logs"
    monkeypatch.setenv("GRACCESS_LOG_FILE", str(logs / "graccess.log"))
    monkeypatch.setenv("GRACCESS_LOG_LEVEL", "WARNING")
    return logs


@pytest.fixture
def config(tmp_path):
    (tmp_path / "seed.yaml").write_text(SEED_YAML)
    path = tmp_path / "graccess.yaml"
    path.write_text(SETTINGS_YAML.format(export_path=tmp_path / "Objects.aaPKG"))
    return str(path)


class TestParser:
    """Tests for argument parsing."""

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_ensure_args(self):
        args = build_parser().parse_args(["ensure", "MainTank", "$UserDefined", "--parent", "MainArea"])
        assert args.command == "ensure"
        assert args.name == "MainTank"
        assert args.template == "$UserDefined"
        assert args.parent == "MainArea"

    def test_export_default_format(self):
        args = build_parser().parse_args(["export", "A", "B", "-o", "out.aaPKG"])
        assert args.names == ["A", "B"]
        assert args.format == "exportAsPDF"


class TestCommands:
    """Tests for main() subcommands against the memory backend."""

    def test_galaxies(self, config, capsys):
        assert main(["-c", config, "galaxies"]) == 0
        out = capsys.readouterr().out
        assert out.split() == ["Demo", "Staging"]

    def test_provision_json(self, config, capsys, tmp_path):
        assert main(["-c", config, "provision", "--json"]) == 0
        report = json.loads(capsys.readouterr().out)
        assert report["galaxy"] == "Demo"
        assert report["summary"] == {"ensured": 2, "created": 2, "reused": 0}
        tank = report["instances"][1]
        assert tank["parent"] == "MainArea"
        assert tank["relation"] == "area"
        assert (tmp_path / "Objects.aaPKG").exists()

    def test_ensure(self, config, capsys):
        assert main(["-c", config, "ensure", "Pump", "$UserDefined", "--parent", "MainArea"]) == 0
        assert capsys.readouterr().out.strip() == "Pump: created"

    def test_ensure_existing(self, config, capsys):
        assert main(["-c", config, "ensure", "MainArea", "$Area"]) == 0
        assert capsys.readouterr().out.strip() == "MainArea: exists"

    def test_ensure_missing_template(self, config):
        assert main(["-c", config, "ensure", "Pump", "$Pump"]) == 1

    def test_ensure_missing_parent(self, config):
        assert main(["-c", config, "ensure", "Pump", "$UserDefined", "--parent", "Ghost"]) == 1

    def test_export(self, config, capsys, tmp_path):
        out_file = tmp_path / "area.aaPKG"
        assert main(["-c", config, "export", "MainArea", "-o", str(out_file)]) == 0
        assert "Exported 1 objects" in capsys.readouterr().out
        assert out_file.exists()

    def test_unknown_galaxy(self, config):
        assert main(["-c", config, "provision", "--galaxy", "Nope"]) == 1

    def test_missing_config(self, tmp_path):
        assert main(["-c", str(tmp_path / "nope.yaml"), "galaxies"]) == 1

    def test_invalid_config(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("instances:\n  - name: X\n")
        assert main(["-c", str(path), "galaxies"]) == 1

    def test_history(self, config, capsys):
        """Changes from a provisioning run show up in history."""
        assert main(["-c", config, "provision"]) == 0
        capsys.readouterr()

        assert main(["history", "--galaxy", "Demo"]) == 0
        lines = capsys.readouterr().out.strip().splitlines()
        assert len(lines) == 3
        assert "assign_area" in lines[0]
        assert "create_instance" in lines[-1]

    def test_history_empty(self, capsys):
        assert main(["history"]) == 0
        assert capsys.readouterr().out == ""
