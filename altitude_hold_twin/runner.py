#!/usr/bin/env python3
"""
Command-line runner for the Altitude-Hold Digital Twin.

Loads a named scenario from the project configuration, applies command-line
overrides, runs the closed-loop simulation (or a Monte Carlo batch) and
prints the step-response report.

Usage:
    python -m altitude_hold_twin.runner --scenario A
    python -m altitude_hold_twin.runner --scenario B --tolerance 0.02 --output-csv run.csv
    python -m altitude_hold_twin.runner --scenario A --monte-carlo 50 --parallel
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from altitude_hold_twin.core.exceptions import AltitudeHoldError, InvalidConfiguration
from altitude_hold_twin.core.parameters import SimulationParameters
from altitude_hold_twin.core.simulation.monte_carlo_engine import (
    MonteCarloConfig,
    MonteCarloEngine,
    create_default_uncertainties,
)
from altitude_hold_twin.core.simulation.performance_analyzer import (
    AcceptanceCriteria,
    PerformanceAnalyzer,
)
from altitude_hold_twin.core.simulation.simulation_runner import AltitudeHoldRunner


# Config is at project root / config / scenarios.json
DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config" / "scenarios.json"

# Used when the configuration file is not available
BUILTIN_SCENARIOS: Dict[str, Dict[str, Any]] = {
    "A": {
        "description": "Nominal step to 5 m at t = 2 s",
        "parameters": {},
    },
    "B": {
        "description": "Nominal step with a 2 m/s wind gust from 5 s to 7 s",
        "parameters": {
            "disturbance_mode": "step",
            "disturbance_magnitude": 2.0,
            "disturbance_start_time": 5.0,
            "disturbance_duration": 2.0,
            "disturbance_coupling": "wind_velocity",
        },
        "acceptance": {
            "max_disturbance_deviation": 2.0,
            "max_recovery_time": 5.0,
        },
    },
    "C": {
        "description": "Zero altitude command",
        "parameters": {"command_altitude": 0.0},
    },
}


def load_scenarios(config_path: Optional[Path] = None, verbose: bool = True) -> Dict[str, Dict[str, Any]]:
    """
    Load named scenarios from the JSON configuration file.

    Falls back to the built-in scenarios when the file does not exist.

    Raises
    ------
    InvalidConfiguration
        If the file exists but is not valid JSON
    """
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    if not path.exists():
        if verbose:
            print(f"Configuration file not found at {path}")
            print("Using built-in scenarios.")
        return dict(BUILTIN_SCENARIOS)

    try:
        with open(path, 'r') as f:
            full_config = json.load(f)
    except json.JSONDecodeError as exc:
        raise InvalidConfiguration(f"Failed to parse JSON config at {path}: {exc}") from exc

    return full_config.get("scenarios", {})


def build_scenario(
    name: str,
    scenarios: Dict[str, Dict[str, Any]],
    overrides: Optional[Dict[str, Any]] = None
) -> Tuple[SimulationParameters, AcceptanceCriteria]:
    """
    Map a scenario definition plus overrides to parameters and criteria.

    Parameters
    ----------
    name : str
        Scenario key
    scenarios : Dict[str, Dict[str, Any]]
        Loaded scenario table
    overrides : Optional[Dict[str, Any]]
        Parameter values taking precedence over the scenario

    Returns
    -------
    Tuple[SimulationParameters, AcceptanceCriteria]
        Validated parameters and the scenario's acceptance thresholds
    """
    if name not in scenarios:
        raise InvalidConfiguration(
            f"Scenario '{name}' not defined. Available: {sorted(scenarios)}"
        )
    scenario = scenarios[name]
    values = dict(scenario.get("parameters", {}))
    values.update(overrides or {})
    params = SimulationParameters.from_dict(values)

    try:
        criteria = AcceptanceCriteria(**scenario.get("acceptance", {}))
    except TypeError as exc:
        raise InvalidConfiguration(f"Invalid acceptance block in scenario '{name}': {exc}") from exc

    return params, criteria


def _cli_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    mapping = {
        'duration': args.duration,
        'time_step': args.dt,
        'kp': args.kp,
        'ki': args.ki,
        'kd': args.kd,
        'command_altitude': args.command,
    }
    return {key: value for key, value in mapping.items() if value is not None}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="altitude-hold",
        description="Altitude-Hold Digital Twin - PID step-response simulation",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser.add_argument("--scenario", type=str, default="A",
                        help="Scenario name from the configuration file")
    parser.add_argument("--config", type=Path, default=None,
                        help="Path to a scenarios JSON file")
    parser.add_argument("--list-scenarios", action="store_true",
                        help="List available scenarios and exit")
    parser.add_argument("--duration", type=float, default=None,
                        help="Override simulation duration [s]")
    parser.add_argument("--dt", type=float, default=None,
                        help="Override integration time step [s]")
    parser.add_argument("--kp", type=float, default=None, help="Override proportional gain")
    parser.add_argument("--ki", type=float, default=None, help="Override integral gain")
    parser.add_argument("--kd", type=float, default=None, help="Override derivative gain")
    parser.add_argument("--command", type=float, default=None,
                        help="Override commanded altitude [m]")
    parser.add_argument("--tolerance", type=float, default=0.05,
                        help="Settling band as a fraction of the command (e.g. 0.02)")
    parser.add_argument("--output-json", type=Path, default=None,
                        help="Write record and metrics as JSON")
    parser.add_argument("--output-csv", type=Path, default=None,
                        help="Write the telemetry table as CSV")
    parser.add_argument("--monte-carlo", type=int, default=0, metavar="N",
                        help="Run an N-trial Monte Carlo batch instead of a single run")
    parser.add_argument("--parallel", action="store_true",
                        help="Execute Monte Carlo runs in a process pool")
    parser.add_argument("--seed", type=int, default=42,
                        help="Base seed for Monte Carlo sampling")
    parser.add_argument("--quiet", action="store_true",
                        help="Suppress progress output")
    return parser


def _run_single(args, params, analyzer) -> int:
    runner = AltitudeHoldRunner(params, verbose=not args.quiet)
    record = runner.run()
    metrics = analyzer.analyze(record)
    assessment = analyzer.assess(metrics)

    print()
    print(analyzer.generate_report(metrics, assessment))

    if args.output_json is not None:
        payload = {
            'scenario': args.scenario,
            'metrics': metrics.to_dict(),
            'passed': assessment.passed,
            'record': record.to_dict(),
        }
        with open(args.output_json, 'w') as f:
            json.dump(payload, f, indent=2)
        print(f"JSON written to {args.output_json}")

    if args.output_csv is not None:
        record.to_dataframe().to_csv(args.output_csv, index=False)
        print(f"CSV written to {args.output_csv}")

    return 0


def _run_monte_carlo(args, params, analyzer) -> int:
    mc_config = MonteCarloConfig(
        n_runs=args.monte_carlo,
        base_seed=args.seed,
        parameter_uncertainties=create_default_uncertainties(),
        base_parameters=params,
        parallel=args.parallel,
        use_processes=args.parallel,
    )
    engine = MonteCarloEngine(mc_config, analyzer, verbose=not args.quiet)
    results = engine.run_batch()
    print()
    print(engine.generate_report(results))

    if args.output_csv is not None and not results.metrics_table.empty:
        results.metrics_table.to_csv(args.output_csv, index=False)
        print(f"CSV written to {args.output_csv}")
    return 0 if results.n_successful > 0 else 1


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        scenarios = load_scenarios(args.config, verbose=not args.quiet)

        if args.list_scenarios:
            for name, scenario in scenarios.items():
                print(f"{name:18s} {scenario.get('description', '')}")
            return 0

        params, criteria = build_scenario(args.scenario, scenarios, _cli_overrides(args))
        analyzer = PerformanceAnalyzer(settling_tolerance=args.tolerance, criteria=criteria)

        if not args.quiet:
            print("=" * 60)
            print(f"Altitude-Hold Digital Twin (Scenario: {args.scenario})")
            print("=" * 60)

        if args.monte_carlo > 0:
            return _run_monte_carlo(args, params, analyzer)
        return _run_single(args, params, analyzer)

    except KeyboardInterrupt:
        print("\nSimulation interrupted by user.")
        return 130
    except AltitudeHoldError as exc:
        print(f"\nError: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
