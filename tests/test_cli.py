"""
Tests for the stem-lab command line.
"""

from pathlib import Path

import pytest

from stem_lab.cli import LabCommandLine, main
from stem_lab.config.experiment_config import load_config
from stem_lab.controllers.lab_controller import LabController

EXAMPLES = Path(__file__).parent.parent / "examples"


@pytest.fixture
def cli():
    controller = LabController(load_config(EXAMPLES / "capacitor_discharge.yaml"))
    command_line = LabCommandLine(controller)
    controller.start()
    yield command_line
    controller.dispose()


class TestCommands:
    """Command parsing and dispatch."""

    def test_next_and_drag(self, cli, capsys):
        assert cli.process_command("next")
        assert cli.process_command("drag red_lead 2.9 0.1")

        out = capsys.readouterr().out
        assert "Step 2/7: connect_wires" in out
        assert "red_lead: connected" in out

    def test_unknown_command(self, cli, capsys):
        assert not cli.process_command("dance")
        assert "Unknown command" in capsys.readouterr().out

    def test_unknown_element(self, cli, capsys):
        assert not cli.process_command("switch s9")
        assert ">>> Error: Unknown switch: 's9'" in capsys.readouterr().out

    def test_missing_argument(self, cli, capsys):
        assert not cli.process_command("drag red_lead")
        assert "Usage: drag <wire_id> <x> <y>" in capsys.readouterr().out

    def test_bad_number(self, cli):
        assert not cli.process_command("tick soon")

    def test_bad_switch_state(self, cli):
        assert not cli.process_command("switch s1 maybe")

    def test_missing_equipment(self, cli, capsys):
        assert not cli.process_command("press logger power")
        assert "no data logger" in capsys.readouterr().out

    def test_help(self, cli, capsys):
        assert cli.process_command("help")
        assert "drag" in capsys.readouterr().out
        assert cli.process_command("help export")
        assert "Usage: export" in capsys.readouterr().out

    def test_status(self, cli, capsys):
        assert cli.process_command("status")
        assert "LAB STATUS" in capsys.readouterr().out

    def test_exit_stops_loop(self, cli):
        assert cli.process_command("exit")
        assert not cli.running

    def test_script_skips_comments_and_stops_on_error(self, cli):
        assert cli.run_script(["# comment", "", "next"])
        assert not cli.run_script(["jump x", "next"])
        assert cli.controller.experiment.current_step.step_id == "connect_wires"

    def test_quiet_suppresses_output(self, cli, capsys):
        cli.quiet = True
        cli.process_command("next")
        assert capsys.readouterr().out == ""


class TestMain:
    """argparse entry point."""

    def test_script_run(self, tmp_path, capsys):
        exit_code = main(["--config", str(EXAMPLES / "capacitor_discharge.yaml"),
                          "--script", str(EXAMPLES / "capacitor_discharge.txt")])

        assert exit_code == 0
        assert "Step 7/7: finish" in capsys.readouterr().out

    def test_missing_config(self, tmp_path, capsys):
        assert main(["--config", str(tmp_path / "missing.yaml")]) == 1
        assert "Config file not found" in capsys.readouterr().err

    def test_invalid_config(self, tmp_path, capsys):
        path = tmp_path / "bad.yaml"
        path.write_text("recorder:\n  sample_interval: 0.1\n")
        assert main(["--config", str(path)]) == 1
        assert "recorder" in capsys.readouterr().err

    def test_missing_script(self, tmp_path, capsys):
        exit_code = main(["--config", str(EXAMPLES / "capacitor_discharge.yaml"),
                          "--script", str(tmp_path / "missing.txt"), "--quiet"])
        assert exit_code == 1

    def test_failing_script(self, tmp_path):
        script = tmp_path / "fail.txt"
        script.write_text("next\ndrag nothing 0 0\n")
        exit_code = main(["--config", str(EXAMPLES / "capacitor_discharge.yaml"),
                          "--script", str(script), "--quiet"])
        assert exit_code == 1
