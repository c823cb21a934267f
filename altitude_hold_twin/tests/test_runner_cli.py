"""
Tests for the command-line runner and scenario configuration.
"""

import json

import pandas as pd
import pytest

from altitude_hold_twin.core.exceptions import InvalidConfiguration
from altitude_hold_twin.core.disturbances.disturbance_models import DisturbanceCoupling
from altitude_hold_twin.runner import (
    BUILTIN_SCENARIOS,
    DEFAULT_CONFIG_PATH,
    build_scenario,
    load_scenarios,
    main,
)


FAST = ["--duration", "1.0", "--dt", "0.01", "--quiet"]


class TestScenarioConfig:

    def test_project_config_defines_reference_scenarios(self):
        scenarios = load_scenarios(DEFAULT_CONFIG_PATH, verbose=False)

        assert {'A', 'B', 'C'} <= set(scenarios)

    def test_every_configured_scenario_builds(self):
        scenarios = load_scenarios(verbose=False)
        for name in scenarios:
            params, criteria = build_scenario(name, scenarios)
            assert params.num_steps > 0

    def test_missing_file_falls_back_to_builtin(self, tmp_path):
        scenarios = load_scenarios(tmp_path / "absent.json", verbose=False)

        assert scenarios == BUILTIN_SCENARIOS

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")

        with pytest.raises(InvalidConfiguration):
            load_scenarios(path, verbose=False)

    def test_overrides_take_precedence(self):
        params, _ = build_scenario('B', BUILTIN_SCENARIOS, {'kp': 2.0, 'duration': 5.0})

        assert params.kp == 2.0
        assert params.duration == 5.0
        assert params.disturbance_coupling is DisturbanceCoupling.WIND_VELOCITY

    def test_null_threshold_disables_check(self):
        scenarios = {'X': {'parameters': {}, 'acceptance': {'max_settling_time': None}}}
        _, criteria = build_scenario('X', scenarios)

        assert criteria.max_settling_time is None
        assert criteria.max_overshoot_percent == 5.0

    def test_unknown_scenario(self):
        with pytest.raises(InvalidConfiguration):
            build_scenario('Z', BUILTIN_SCENARIOS)

    def test_unknown_acceptance_key(self):
        scenarios = {'X': {'parameters': {}, 'acceptance': {'max_jerk': 1.0}}}

        with pytest.raises(InvalidConfiguration):
            build_scenario('X', scenarios)


class TestMain:

    def test_list_scenarios(self, capsys):
        assert main(["--list-scenarios", "--quiet"]) == 0

        out = capsys.readouterr().out
        assert "A " in out
        assert "impulse_gust" in out

    def test_single_run_report(self, capsys):
        assert main(["--scenario", "C"] + FAST) == 0

        assert "STEP RESPONSE ANALYSIS REPORT" in capsys.readouterr().out

    def test_exports(self, tmp_path):
        json_path = tmp_path / "run.json"
        csv_path = tmp_path / "run.csv"

        assert main(["--scenario", "A", "--output-json", str(json_path),
                     "--output-csv", str(csv_path)] + FAST) == 0

        with open(json_path) as f:
            payload = json.load(f)
        assert payload['scenario'] == 'A'
        assert 'overshoot_percent' in payload['metrics']
        assert len(payload['record']['samples']['time']) == 101

        df = pd.read_csv(csv_path)
        assert len(df) == 101
        assert 'true_altitude' in df.columns

    def test_gain_overrides(self, tmp_path):
        json_path = tmp_path / "run.json"
        main(["--kp", "2.5", "--ki", "0.2", "--kd", "0.1",
              "--output-json", str(json_path)] + FAST)

        with open(json_path) as f:
            parameters = json.load(f)['record']['parameters']
        assert (parameters['kp'], parameters['ki'], parameters['kd']) == (2.5, 0.2, 0.1)

    def test_monte_carlo(self, capsys):
        assert main(["--monte-carlo", "2", "--seed", "3"] + FAST) == 0

        assert "MONTE CARLO ANALYSIS REPORT" in capsys.readouterr().out

    def test_unknown_scenario_exit_code(self, capsys):
        assert main(["--scenario", "nope", "--quiet"]) == 1

        assert "not defined" in capsys.readouterr().err

    def test_invalid_override_exit_code(self, capsys):
        assert main(["--dt", "-0.01", "--quiet"]) == 1

        assert "time_step" in capsys.readouterr().err
