"""Unit tests for scenario, chain and result models."""

from __future__ import annotations

import pytest

from nightly_harness.errors import ChainStepFailure, ScenarioFailure
from nightly_harness.scenarios import (
    ChainRun,
    ChainStep,
    RunResult,
    ScenarioSpec,
    SessionReport,
)


@pytest.mark.scenario
class TestScenarioSpec:
    """Tests for ScenarioSpec."""

    def test_from_invocation(self):
        """Test splitting an invocation line into name and args."""
        spec = ScenarioSpec.from_invocation("sync_test.sh node=6 timeout=500")
        assert spec.name == "sync_test.sh"
        assert spec.args == ("node=6", "timeout=500")
        assert spec.intrinsic_lifecycle is False

    def test_base_name(self):
        """Test the suffix is stripped for override lookup."""
        assert ScenarioSpec("itst01.sh").base_name == "itst01"
        assert ScenarioSpec("network_soundness.py").base_name == "network_soundness"
        assert ScenarioSpec("gov96").base_name == "gov96"

    def test_invocation_round_trip(self):
        """Test invocation renders name and args."""
        spec = ScenarioSpec("itst13.sh", ["era=3"])
        assert spec.args == ("era=3",)
        assert spec.invocation == "itst13.sh era=3"

    @pytest.mark.parametrize("name", ["", "   "])
    def test_empty_name_rejected(self, name):
        """Test an empty scenario name is invalid."""
        with pytest.raises(ValueError, match="must not be empty"):
            ScenarioSpec(name)

    def test_empty_invocation_rejected(self):
        """Test an empty invocation line is invalid."""
        with pytest.raises(ValueError):
            ScenarioSpec.from_invocation("  ")


@pytest.mark.scenario
class TestChainModels:
    """Tests for ChainStep and ChainRun."""

    def test_step_args(self):
        """Test chain step argument tokens."""
        assert ChainStep(4).to_args() == ["test_id=4"]
        assert ChainStep(5, skip_setup=True).to_args() == ["test_id=5", "skip_setup=true"]
        assert ChainStep(5).label == "chain-test-5"

    def test_from_ids(self):
        """Test only the first step sets up."""
        chain = ChainRun.from_ids(4, 5, 6)
        assert [s.test_id for s in chain] == [4, 5, 6]
        assert [s.skip_setup for s in chain] == [False, True, True]
        assert len(chain) == 3
        assert chain.setup_steps == 1

    def test_empty_chain_rejected(self):
        """Test a chain needs at least one step."""
        with pytest.raises(ValueError, match="at least one step"):
            ChainRun(())

    def test_first_step_must_set_up(self):
        """Test a chain cannot start by reusing a network."""
        with pytest.raises(ValueError, match="must not skip setup"):
            ChainRun((ChainStep(5, skip_setup=True), ChainStep(6, skip_setup=True)))

    def test_multiple_setup_steps(self):
        """Test later steps may set up again."""
        chain = ChainRun((ChainStep(4), ChainStep(5, True), ChainStep(10), ChainStep(11)))
        assert chain.setup_steps == 3


@pytest.mark.scenario
class TestResults:
    """Tests for RunResult, SessionReport and failures."""

    def test_run_result(self):
        """Test pass/fail and serialization."""
        result = RunResult("itst01.sh", 0, 1.23456)
        assert result.passed
        assert result.to_dict() == {
            "name": "itst01.sh",
            "kind": "scenario",
            "exit_status": 0,
            "duration": 1.235,
        }
        assert not RunResult("itst02.sh", 3).passed

    def test_report_keeps_first_failure_status(self):
        """Test the session exit status is the first non-zero one."""
        report = SessionReport()
        report.record(RunResult("a", 0))
        assert report.passed
        report.record(RunResult("b", 2))
        report.record(RunResult("c", 5))
        assert report.exit_status == 2
        assert len(report.to_dict()["results"]) == 3

    def test_failure_from_result(self):
        """Test failures carry the program's status."""
        result = RunResult("itst02.sh", 4)
        failure = ScenarioFailure.from_result(result)
        assert failure.exit_status == 4
        assert failure.results == [result]
        assert str(failure) == "scenario 'itst02.sh' exited with status 4"

    def test_chain_failure_is_scenario_failure(self):
        """Test chain step failures are scenario failures."""
        result = RunResult("chain-test-6", 1, kind="chain")
        failure = ChainStepFailure.from_result(result, [RunResult("chain-test-5", 0, kind="chain"), result])
        assert isinstance(failure, ScenarioFailure)
        assert len(failure.results) == 2
        assert "chain 'chain-test-6'" in failure.message
