import json
import subprocess
import sys
from datetime import date
from pathlib import Path

import pytest

from mortgage_sim.cli import Scenario, build_output, load_scenario, main
from mortgage_sim.engine import compare_simulations, simulate
from mortgage_sim.models import OverpaymentConfig


def write_scenario(tmp_path, state, rates, lenders, policies, name="scenario.json"):
    scenario = Scenario(state=state, rates=rates, lenders=lenders, policies=policies)
    path = tmp_path / name
    path.write_text(json.dumps(scenario.model_dump(mode="json", by_alias=True)))
    return path


def run_script(args):
    """Run the package as a module with the given arguments"""
    root = Path(__file__).parent.parent
    command = [sys.executable, "-m", "mortgage_sim"] + args
    return subprocess.run(command, capture_output=True, text=True, cwd=root)


class TestSimulate:
    def test_result_bundle(self, rates, lenders, policies, make_state):
        config = OverpaymentConfig(id="bonus", type="one_time", amount=5_000_000, start_month=6)
        state = make_state(configs=[config], start_date=date(2025, 1, 1))
        result = simulate(state, rates, [], lenders, policies)

        assert result.months
        assert result.completeness.is_complete
        assert [p.id for p in result.resolved_rate_periods] == ["p1", "p2"]
        assert result.yearly_schedule[0].year == 2025
        assert result.milestones[0].type == "mortgage_start"
        assert result.summary.interest_saved > 0
        assert result.summary.actual_term_months == len(result.months)
        # 5,000,000 exceeds the 3,000,000 yearly allowance
        assert [w.type for w in result.warnings] == ["allowance_exceeded"]
        assert result.buffer_suggestions == []

    def test_degenerate_state(self, rates, lenders, policies, make_state):
        result = simulate(make_state(amount=0), rates, [], lenders, policies)
        assert result.months == []
        assert result.milestones == []
        assert not result.completeness.is_complete
        assert result.summary.total_interest == 0

    def test_does_not_mutate_state(self, rates, lenders, policies, make_state):
        state = make_state()
        before = state.model_dump()
        simulate(state, rates, [], lenders, policies)
        assert state.model_dump() == before


class TestCompareSimulations:
    def test_side_by_side(self, rates, lenders, policies, make_state):
        states = [make_state(), make_state(periods=(("p1", "variable", 0),))]
        results = compare_simulations(states, rates, [], lenders, policies)

        assert len(results) == 2
        assert results[0].months[0].rate == 3.5
        assert results[1].months[0].rate == 4.5

    def test_too_many_simulations(self, rates, lenders, policies, make_state):
        with pytest.raises(ValueError, match="At most 5"):
            compare_simulations([make_state()] * 6, rates, [], lenders, policies)


class TestCommandLine:
    def test_load_scenario(self, tmp_path, rates, lenders, policies, make_state):
        path = write_scenario(tmp_path, make_state(), rates, lenders, policies)
        scenario = load_scenario(str(path))
        assert scenario.state == make_state()
        assert scenario.lenders[0].overpayment_policy == "ten-percent"

    def test_default_output(self, tmp_path, capsys, rates, lenders, policies, make_state):
        path = write_scenario(tmp_path, make_state(), rates, lenders, policies)

        assert main([str(path)]) == 0
        output = json.loads(capsys.readouterr().out)
        assert set(output) == {
            "summary",
            "completeness",
            "warnings",
            "bufferSuggestions",
            "resolvedRatePeriods",
            "months",
        }
        assert len(output["months"]) == 360
        assert output["months"][0]["openingBalance"] == 30_000_000
        assert output["completeness"]["isComplete"]

    def test_yearly_and_milestones(self, tmp_path, capsys, rates, lenders, policies, make_state):
        path = write_scenario(tmp_path, make_state(), rates, lenders, policies)

        assert main([str(path), "--yearly", "--milestones"]) == 0
        output = json.loads(capsys.readouterr().out)
        assert "months" not in output
        assert len(output["yearlySchedule"]) == 30
        assert output["milestones"][0]["type"] == "mortgage_start"

    def test_build_output_uses_camel_case(self, rates, lenders, policies, make_state):
        result = simulate(make_state(), rates, [], lenders, policies)
        output = build_output(result)
        assert "actualTermMonths" in output["summary"]
        assert "resolvedRatePeriods" in output

    def test_missing_file(self, tmp_path, capsys):
        assert main([str(tmp_path / "missing.json")]) == 1
        assert "Error reading scenario file" in capsys.readouterr().err

    def test_invalid_scenario(self, tmp_path, capsys):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"state": {"input": {"mortgageAmount": "lots"}}}))
        assert main([str(path)]) == 1
        assert "Invalid scenario file" in capsys.readouterr().err

    def test_negative_indent(self, tmp_path):
        with pytest.raises(SystemExit):
            main([str(tmp_path / "scenario.json"), "--indent", "-1"])

    def test_module_execution(self, tmp_path, rates, lenders, policies, make_state):
        path = write_scenario(tmp_path, make_state(periods=(("p1", "fixed-3yr", 12),)), rates, lenders, policies)

        result = run_script([str(path), "--yearly"])

        assert result.returncode == 0
        output = json.loads(result.stdout)
        assert output["completeness"]["missingMonths"] == 348
        # Incomplete runs are reported through logging
        assert "Rate periods cover 12 of 360 months" in result.stderr
