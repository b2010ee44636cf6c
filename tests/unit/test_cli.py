"""Unit tests for the nightly-harness CLI."""

import json
import logging
from unittest.mock import MagicMock, patch

import pytest
import structlog
import yaml
from click.testing import CliRunner

from nightly_harness.main import cli, exit_code
from nightly_harness.scenarios import RunResult, SessionReport


@pytest.fixture
def runner():
    """Create CLI runner."""
    yield CliRunner()
    # The CLI points logging at the runner's captured stderr
    logging.getLogger().handlers.clear()
    structlog.reset_defaults()


@pytest.fixture
def config_file(tmp_path):
    """Config file rooting the harness in a temp checkout."""
    path = tmp_path / "config.yaml"
    path.write_text(f"root_dir: {tmp_path}\nsettle_delay: 0\n")
    return path


@pytest.mark.cli_unit
class TestExitCode:
    """Tests for exit status mapping."""

    @pytest.mark.parametrize("status,code", [(0, 0), (1, 1), (5, 5), (255, 255), (-9, 1), (256, 1)])
    def test_exit_code(self, status, code):
        """Test child statuses map to valid process exit codes."""
        assert exit_code(status) == code


@pytest.mark.cli_unit
class TestRunCommand:
    """Tests for nightly-harness run."""

    def test_dry_run(self, runner, config_file):
        """Test the nightly plan is shown without running anything."""
        with patch("nightly_harness.main.SessionDriver") as mock_driver:
            result = runner.invoke(cli, ["-c", str(config_file), "run", "--dry-run"])

        assert result.exit_code == 0
        assert "Planned session" in result.output
        assert "sync_test.sh timeout=500" in result.output
        assert "test_id=5 (reuse)" in result.output
        mock_driver.assert_not_called()

    def test_run_exit_status(self, runner, config_file):
        """Test the session's exit status becomes the process exit code."""
        report = SessionReport(
            results=[RunResult("itst01.sh", 0), RunResult("itst02.sh", 4)],
            exit_status=4,
            error="scenario 'itst02.sh' exited with status 4",
        )
        with patch("nightly_harness.main.SessionDriver") as mock_driver:
            mock_driver.return_value.run.return_value = report
            result = runner.invoke(cli, ["-c", str(config_file), "run"])

        assert result.exit_code == 4
        assert "Session failed" in result.output

    def test_run_passes(self, runner, config_file):
        """Test a passing session exits zero."""
        with patch("nightly_harness.main.SessionDriver") as mock_driver:
            mock_driver.return_value.run.return_value = SessionReport([RunResult("itst01.sh", 0)])
            result = runner.invoke(cli, ["-c", str(config_file), "run"])

        assert result.exit_code == 0
        assert "Session passed" in result.output

    def test_run_with_plan(self, runner, config_file, tmp_path):
        """Test a custom plan is handed to the driver."""
        plan_file = tmp_path / "smoke.yaml"
        plan_file.write_text("scenarios:\n  - itst01.sh\nsoundness: false\n")

        with patch("nightly_harness.main.SessionDriver") as mock_driver:
            mock_driver.return_value.run.return_value = SessionReport()
            result = runner.invoke(cli, ["-c", str(config_file), "run", "--plan", str(plan_file)])

        assert result.exit_code == 0
        plan = mock_driver.call_args[0][1]
        assert [s.name for s in plan.scenarios] == ["itst01.sh"]
        assert plan.soundness is False

    def test_bad_config(self, runner, tmp_path):
        """Test configuration errors exit non-zero with a message."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text("readiness_mode: guess\n")

        result = runner.invoke(cli, ["-c", str(config_file), "run", "--dry-run"])

        assert result.exit_code == 1
        assert "Invalid readiness_mode" in result.output


@pytest.mark.cli_unit
class TestPlanCommand:
    """Tests for nightly-harness plan."""

    def test_plan_yaml_round_trips(self, runner):
        """Test the YAML output is a loadable plan."""
        result = runner.invoke(cli, ["plan", "--yaml"])

        assert result.exit_code == 0
        data = yaml.safe_load(result.output)
        assert data["intrinsic"] == ["upgrade_after_emergency_upgrade_test_pre_1.5.sh"]
        assert data["chain"][0] == {"test_id": 4, "skip_setup": False}


@pytest.mark.cli_unit
class TestScenarioCommands:
    """Tests for scenario, chain, soundness and teardown commands."""

    def test_scenario(self, runner, config_file):
        """Test a single scenario is run with its args."""
        with patch("nightly_harness.main.SessionDriver") as mock_driver:
            mock_driver.return_value.runner.run.return_value = RunResult("sync_test.sh timeout=500", 0)
            result = runner.invoke(cli, ["-c", str(config_file), "scenario", "sync_test.sh", "timeout=500"])

        assert result.exit_code == 0
        spec = mock_driver.return_value.runner.run.call_args[0][0]
        assert spec.name == "sync_test.sh"
        assert spec.args == ("timeout=500",)

    def test_scenario_failure(self, runner, config_file):
        """Test a failing scenario exits with its status."""
        with patch("nightly_harness.main.SessionDriver") as mock_driver:
            mock_driver.return_value.runner.run.return_value = RunResult("itst02.sh", 6)
            result = runner.invoke(cli, ["-c", str(config_file), "scenario", "itst02.sh"])

        assert result.exit_code == 6

    def test_chain_without_steps(self, runner, config_file, tmp_path):
        """Test a plan with no chain is rejected."""
        plan_file = tmp_path / "plan.yaml"
        plan_file.write_text("scenarios: [itst01.sh]\n")

        result = runner.invoke(cli, ["-c", str(config_file), "chain", "--plan", str(plan_file)])

        assert result.exit_code == 1
        assert "no chain steps" in result.output

    def test_soundness(self, runner, config_file):
        """Test the soundness command runs only the soundness session."""
        with patch("nightly_harness.main.SessionDriver") as mock_driver:
            mock_driver.return_value.run.return_value = SessionReport()
            result = runner.invoke(cli, ["-c", str(config_file), "soundness"])

        assert result.exit_code == 0
        plan = mock_driver.call_args[0][1]
        assert plan.scenarios == []
        assert plan.chain is None
        assert plan.soundness is True

    def test_teardown(self, runner, config_file):
        """Test teardown of leftovers."""
        with patch("nightly_harness.main.SessionDriver") as mock_driver:
            provisioner = MagicMock()
            mock_driver.return_value.provisioner = provisioner
            result = runner.invoke(cli, ["-c", str(config_file), "teardown"])

        assert result.exit_code == 0
        assert "Environment torn down" in result.output
        provisioner.teardown.assert_called_once_with()


@pytest.mark.cli_unit
class TestInspectCommands:
    """Tests for overrides and config show."""

    def test_overrides(self, runner, config_file, tmp_path):
        """Test resolved override files are listed."""
        overrides = tmp_path / "utils" / "nctl" / "overrides"
        overrides.mkdir(parents=True)
        (overrides / "itst01.config.toml").write_text("")

        result = runner.invoke(cli, ["-c", str(config_file), "overrides", "itst01.sh"])

        assert result.exit_code == 0
        assert "Overrides for itst01.sh" in result.output
        assert f"config_path={overrides / 'itst01.config.toml'}" in result.output
        assert "chainspec: (default)" in result.output

    def test_config_show(self, runner, config_file):
        """Test the effective configuration with sources."""
        result = runner.invoke(cli, ["-c", str(config_file), "config", "show"])

        assert result.exit_code == 0
        assert "Harness Configuration" in result.output
        assert "settle_delay: 0.0  [config file]" in result.output

    def test_config_show_json(self, runner, config_file, tmp_path):
        """Test JSON output of the effective configuration."""
        result = runner.invoke(cli, ["-c", str(config_file), "config", "show", "--json"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["values"]["root_dir"] == str(tmp_path)
        assert data["sources"]["root_dir"] == "config file"
        assert data["sources"]["cooldown_delay"] == "default"


@pytest.mark.cli_unit
class TestHarnessLog:
    """Tests for the harness log file under log_dir."""

    def test_log_dir_adds_harness_log(self, runner, tmp_path):
        """Test a configured log_dir gets the harness log alongside stderr."""
        log_dir = tmp_path / "logs"
        config_file = tmp_path / "config.yaml"
        config_file.write_text(f"root_dir: {tmp_path}\nlog_dir: {log_dir}\n")

        result = runner.invoke(cli, ["-c", str(config_file), "config", "show"])

        assert result.exit_code == 0
        file_handlers = [h for h in logging.getLogger().handlers if isinstance(h, logging.FileHandler)]
        assert [h.baseFilename for h in file_handlers] == [str(log_dir / "nightly-harness.log")]
        assert (log_dir / "nightly-harness.log").exists()

    def test_no_log_dir(self, runner, config_file):
        """Test logging stays on stderr without a log_dir."""
        result = runner.invoke(cli, ["-c", str(config_file), "config", "show"])

        assert result.exit_code == 0
        assert not any(isinstance(h, logging.FileHandler) for h in logging.getLogger().handlers)
