"""
Monte Carlo Simulation Engine for Altitude-Hold Uncertainty Analysis

Batch execution of the altitude-hold simulation with systematic parameter
randomization, plus one-dimensional parameter sweeps.

Design Philosophy:
-----------------
- **Deterministic per run:** Run i uses seed base_seed + i for parameter
  sampling and for the sensor / disturbance noise streams
- **Independent runs:** No state is shared between runs; each result lands
  in the slot of its run index, so sequential, threaded and process-pool
  execution give identical results
- **Fail soft:** A failing run is recorded with its error message and the
  batch continues

Typical Use Case:
----------------
Evaluate step-response margins when vehicle mass, drag and actuator lag vary
within tolerances: run 100+ iterations and read the p95 settling time and
the pass rate of each requirement.
"""

import json
import time
import warnings
from concurrent.futures import ProcessPoolExecutor, ThreadPoolExecutor
from dataclasses import dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from altitude_hold_twin.core.exceptions import AltitudeHoldError, InvalidConfiguration
from altitude_hold_twin.core.parameters import SimulationParameters
from altitude_hold_twin.core.simulation.performance_analyzer import (
    PerformanceAnalyzer,
    PerformanceMetrics,
)
from altitude_hold_twin.core.simulation.simulation_runner import run_simulation


class DistributionType(Enum):
    """Statistical distributions for parameter uncertainty."""
    UNIFORM = "uniform"
    NORMAL = "normal"
    LOGNORMAL = "lognormal"
    TRUNCATED_NORMAL = "truncated_normal"


@dataclass
class ParameterUncertainty:
    """
    Definition of uncertain parameter with statistical distribution.

    Attributes
    ----------
    name : str
        SimulationParameters field name (e.g. 'mass', 'actuator_time_constant')
    nominal : float
        Nominal/mean value
    distribution : DistributionType
        Statistical distribution type
    uncertainty : float
        Uncertainty magnitude in percent of nominal (±range for uniform,
        1σ for normal, relative σ for lognormal)
    bounds : Optional[Tuple[float, float]]
        Physical bounds [min, max] for parameter
    """
    name: str
    nominal: float
    distribution: DistributionType
    uncertainty: float
    bounds: Optional[Tuple[float, float]] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class MonteCarloConfig:
    """
    Configuration for Monte Carlo batch execution.

    Attributes
    ----------
    n_runs : int
        Number of Monte Carlo iterations
    base_seed : int
        Base random seed (each run uses base_seed + run_index)
    parameter_uncertainties : List[ParameterUncertainty]
        List of parameters to randomize
    base_parameters : SimulationParameters
        Nominal parameter set the samples are applied to
    reseed_noise : bool
        Derive sensor and disturbance seeds from the run seed
    parallel : bool
        Execute runs concurrently
    use_processes : bool
        Process pool instead of thread pool when parallel
    max_workers : Optional[int]
        Pool size (None lets the executor decide)
    save_telemetry : bool
        Keep the full record of each run
    output_dir : Optional[Path]
        Directory for saving results
    """
    n_runs: int = 100
    base_seed: int = 42
    parameter_uncertainties: List[ParameterUncertainty] = field(default_factory=list)
    base_parameters: SimulationParameters = field(default_factory=SimulationParameters)
    reseed_noise: bool = True
    parallel: bool = False
    use_processes: bool = False
    max_workers: Optional[int] = None
    save_telemetry: bool = False
    output_dir: Optional[Path] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class MonteCarloRun:
    """Results from a single Monte Carlo run."""
    run_id: int
    seed: int
    parameters: Dict[str, float]
    metrics: Optional[PerformanceMetrics]
    telemetry: Optional[Dict[str, Any]] = None
    success: bool = True
    passed: bool = False
    error_message: str = ""
    execution_time: float = 0.0


@dataclass
class MonteCarloResults:
    """Aggregated results from Monte Carlo batch."""
    runs: List[MonteCarloRun]
    metrics_table: pd.DataFrame
    summary_statistics: pd.DataFrame
    config: MonteCarloConfig
    total_execution_time: float = 0.0
    n_successful: int = 0
    n_failed: int = 0


class ParameterRandomizer:
    """
    Utility class for randomizing parameters with specified distributions.

    Handles sampling from various distributions with proper bounds enforcement.
    """

    def __init__(self, seed: int = 42):
        """
        Initialize randomizer with seed.

        Parameters
        ----------
        seed : int
            Random seed for reproducibility
        """
        self.rng = np.random.default_rng(seed)

    def sample(self, param: ParameterUncertainty) -> float:
        """
        Sample parameter value from specified distribution.

        Parameters
        ----------
        param : ParameterUncertainty
            Parameter definition with distribution

        Returns
        -------
        float
            Sampled parameter value
        """
        spread = abs(param.nominal) * param.uncertainty / 100.0

        if param.distribution == DistributionType.UNIFORM:
            value = self.rng.uniform(param.nominal - spread, param.nominal + spread)

        elif param.distribution in (DistributionType.NORMAL, DistributionType.TRUNCATED_NORMAL):
            value = self.rng.normal(param.nominal, spread)
            if param.distribution == DistributionType.TRUNCATED_NORMAL and param.bounds is None:
                # Default truncation at ±3σ
                value = np.clip(value, param.nominal - 3.0 * spread, param.nominal + 3.0 * spread)

        elif param.distribution == DistributionType.LOGNORMAL:
            if param.nominal <= 0.0:
                raise InvalidConfiguration(
                    f"Lognormal parameter '{param.name}' needs a positive nominal value"
                )
            value = self.rng.lognormal(np.log(param.nominal), param.uncertainty / 100.0)

        else:
            raise InvalidConfiguration(f"Unknown distribution: {param.distribution}")

        if param.bounds is not None:
            value = np.clip(value, param.bounds[0], param.bounds[1])

        return float(value)

    def sample_batch(
        self,
        uncertainties: List[ParameterUncertainty]
    ) -> Dict[str, float]:
        """
        Sample all parameters at once.

        Parameters
        ----------
        uncertainties : List[ParameterUncertainty]
            List of parameter definitions

        Returns
        -------
        Dict[str, float]
            Dictionary mapping parameter names to sampled values
        """
        return {param.name: self.sample(param) for param in uncertainties}


def execute_run(
    run_id: int,
    seed: int,
    params: SimulationParameters,
    sampled: Dict[str, float],
    analyzer: PerformanceAnalyzer,
    save_telemetry: bool = False
) -> MonteCarloRun:
    """
    Run and analyze one trial.

    Module-level so it can be shipped to a process pool. Simulation and
    configuration errors are captured in the returned run instead of raised.
    """
    start = time.perf_counter()
    try:
        run_params = params.with_updates(**sampled)
        record = run_simulation(run_params)
        metrics = analyzer.analyze(record)
        passed = analyzer.assess(metrics).passed
    except AltitudeHoldError as exc:
        return MonteCarloRun(
            run_id=run_id, seed=seed, parameters=sampled, metrics=None,
            success=False, error_message=str(exc),
            execution_time=time.perf_counter() - start,
        )

    return MonteCarloRun(
        run_id=run_id,
        seed=seed,
        parameters=sampled,
        metrics=metrics,
        telemetry=record.to_dict() if save_telemetry else None,
        success=True,
        passed=passed,
        execution_time=time.perf_counter() - start,
    )


class MonteCarloEngine:
    """
    Monte Carlo simulation engine for uncertainty quantification.

    Usage:
    ------
    >>> uncertainties = [
    ...     ParameterUncertainty('mass', 1.0, DistributionType.NORMAL, 5.0),
    ...     ParameterUncertainty('drag_coefficient', 0.1, DistributionType.UNIFORM, 20.0)
    ... ]
    >>> mc_config = MonteCarloConfig(n_runs=50, parameter_uncertainties=uncertainties)
    >>> engine = MonteCarloEngine(mc_config, PerformanceAnalyzer())
    >>> results = engine.run_batch()
    >>> print(engine.generate_report(results))
    """

    def __init__(
        self,
        config: MonteCarloConfig,
        analyzer: Optional[PerformanceAnalyzer] = None,
        verbose: bool = True
    ):
        """
        Initialize Monte Carlo engine.

        Parameters
        ----------
        config : MonteCarloConfig
            Monte Carlo configuration
        analyzer : Optional[PerformanceAnalyzer]
            Performance analyzer for computing metrics
        verbose : bool
            Print progress messages
        """
        if config.n_runs < 1:
            raise InvalidConfiguration("n_runs must be >= 1")
        known = {f.name for f in fields(SimulationParameters)}
        unknown = [p.name for p in config.parameter_uncertainties if p.name not in known]
        if unknown:
            raise InvalidConfiguration(f"Unknown uncertain parameter(s): {unknown}")

        self.config = config
        self.analyzer = analyzer if analyzer is not None else PerformanceAnalyzer()
        self.verbose = verbose

        if config.output_dir is not None:
            config.output_dir = Path(config.output_dir)
            config.output_dir.mkdir(parents=True, exist_ok=True)

    def _plan_runs(self) -> List[Tuple[int, int, Dict[str, float]]]:
        """Seed and sampled parameters for every run index."""
        plan = []
        for run_id in range(self.config.n_runs):
            run_seed = self.config.base_seed + run_id
            randomizer = ParameterRandomizer(seed=run_seed)
            sampled = randomizer.sample_batch(self.config.parameter_uncertainties)
            plan.append((run_id, run_seed, sampled))
        return plan

    def _run_parameters(self, run_seed: int) -> SimulationParameters:
        base = self.config.base_parameters
        if not self.config.reseed_noise:
            return base
        return base.with_updates(sensor_seed=run_seed, disturbance_seed=run_seed + 1)

    def run_batch(self) -> MonteCarloResults:
        """
        Execute batch of Monte Carlo simulations.

        Returns
        -------
        MonteCarloResults
            Aggregated results; ``runs[i]`` always holds run index i
        """
        cfg = self.config
        if self.verbose:
            print("=" * 70)
            print("MONTE CARLO BATCH EXECUTION")
            print("=" * 70)
            print(f"Number of runs:       {cfg.n_runs}")
            print(f"Parameters varied:    {len(cfg.parameter_uncertainties)}")
            print(f"Simulation duration:  {cfg.base_parameters.duration:.2f} s")
            print(f"Base seed:            {cfg.base_seed}")
            print(f"Execution:            "
                  f"{('process' if cfg.use_processes else 'thread') + ' pool' if cfg.parallel else 'sequential'}")
            print("=" * 70)

        plan = self._plan_runs()
        slots: List[Optional[MonteCarloRun]] = [None] * cfg.n_runs
        start_batch = time.perf_counter()

        jobs = [
            (run_id, seed, self._run_parameters(seed), sampled, self.analyzer, cfg.save_telemetry)
            for run_id, seed, sampled in plan
        ]

        if cfg.parallel:
            executor_cls = ProcessPoolExecutor if cfg.use_processes else ThreadPoolExecutor
            with executor_cls(max_workers=cfg.max_workers) as executor:
                futures = {executor.submit(execute_run, *job): job[0] for job in jobs}
                for done, future in enumerate(futures, start=1):
                    slots[futures[future]] = future.result()
                    self._report_progress(done)
        else:
            for done, job in enumerate(jobs, start=1):
                slots[job[0]] = execute_run(*job)
                self._report_progress(done)

        runs: List[MonteCarloRun] = [run for run in slots if run is not None]
        for run in runs:
            if not run.success:
                warnings.warn(f"Run {run.run_id} failed: {run.error_message}")
            elif cfg.output_dir is not None:
                self._save_run(run)

        total_time = time.perf_counter() - start_batch
        results = self._aggregate_results(runs, total_time)

        if self.verbose:
            print("=" * 70)
            print(f"Batch complete: {results.n_successful}/{cfg.n_runs} successful")
            print(f"Total time: {total_time:.2f} s ({total_time/cfg.n_runs:.2f} s/run)")
            print("=" * 70)

        if cfg.output_dir is not None:
            self._save_summary(results)

        return results

    def _report_progress(self, done: int) -> None:
        n = self.config.n_runs
        if self.verbose and (done % 10 == 0 or done == n):
            print(f"Progress: {done}/{n} ({100*done/n:.1f}%)")

    def _aggregate_results(
        self,
        runs: List[MonteCarloRun],
        total_time: float
    ) -> MonteCarloResults:
        """
        Aggregate metrics across all runs into summary statistics.

        Parameters
        ----------
        runs : List[MonteCarloRun]
            Individual run results, in run-index order
        total_time : float
            Total execution time [s]

        Returns
        -------
        MonteCarloResults
            Aggregated results with summary statistics
        """
        successful_runs = [r for r in runs if r.success and r.metrics is not None]
        n_successful = len(successful_runs)
        n_failed = len(runs) - n_successful

        if n_successful == 0:
            warnings.warn("No successful runs to aggregate")
            return MonteCarloResults(
                runs=runs,
                metrics_table=pd.DataFrame(),
                summary_statistics=pd.DataFrame(),
                config=self.config,
                total_execution_time=total_time,
                n_successful=0,
                n_failed=n_failed
            )

        metrics_list = []
        for run in successful_runs:
            df = self.analyzer.to_dataframe(run.metrics, self.analyzer.assess(run.metrics))
            df['run_id'] = run.run_id
            df['seed'] = run.seed
            for param_name, param_value in run.parameters.items():
                df[f'param_{param_name}'] = param_value
            metrics_list.append(df)

        all_metrics = pd.concat(metrics_list, ignore_index=True)

        metrics_cols = [
            'overshoot_percent', 'settling_time_seconds', 'rise_time_seconds',
            'steady_state_error_meters', 'thrust_variation', 'max_abs_error', 'rms_error',
            'disturbance_deviation_meters', 'recovery_time_seconds'
        ]

        summary = {}
        for col in metrics_cols:
            # Undefined metrics (None) become NaN and are skipped by pandas
            values = pd.to_numeric(all_metrics[col], errors='coerce')
            summary[f'{col}_mean'] = values.mean()
            summary[f'{col}_std'] = values.std()
            summary[f'{col}_min'] = values.min()
            summary[f'{col}_max'] = values.max()
            summary[f'{col}_median'] = values.median()
            summary[f'{col}_p95'] = values.quantile(0.95)
            summary[f'{col}_undefined'] = int(values.isna().sum())

        for col in all_metrics.columns:
            if col.startswith('meets_'):
                summary[f'pass_rate_{col[len("meets_"):]}'] = (
                    all_metrics[col].sum() / n_successful * 100
                )
        summary['pass_rate_overall'] = all_metrics['passed'].sum() / n_successful * 100

        return MonteCarloResults(
            runs=runs,
            metrics_table=all_metrics,
            summary_statistics=pd.DataFrame([summary]),
            config=self.config,
            total_execution_time=total_time,
            n_successful=n_successful,
            n_failed=n_failed
        )

    def _save_run(self, run: MonteCarloRun) -> None:
        """Save individual run results to disk."""
        run_dir = self.config.output_dir / f"run_{run.run_id:04d}"
        run_dir.mkdir(exist_ok=True)

        with open(run_dir / "parameters.json", 'w') as f:
            json.dump({'seed': run.seed, **run.parameters}, f, indent=2)

        if run.metrics is not None:
            df = self.analyzer.to_dataframe(run.metrics)
            df.to_csv(run_dir / "metrics.csv", index=False)

        if run.telemetry is not None:
            telemetry_df = pd.DataFrame(run.telemetry['samples'])
            telemetry_df.to_csv(run_dir / "telemetry.csv", index=False)

    def _save_summary(self, results: MonteCarloResults) -> None:
        """Save aggregated summary to disk."""
        out = self.config.output_dir
        results.summary_statistics.to_csv(out / "summary_statistics.csv", index=False)
        if not results.metrics_table.empty:
            results.metrics_table.to_csv(out / "metrics_table.csv", index=False)

        config_dict = {
            'n_runs': self.config.n_runs,
            'base_seed': self.config.base_seed,
            'base_parameters': self.config.base_parameters.to_dict(),
            'n_successful': results.n_successful,
            'n_failed': results.n_failed,
            'total_execution_time': results.total_execution_time,
            'parameters': [
                {
                    'name': p.name,
                    'nominal': p.nominal,
                    'distribution': p.distribution.value,
                    'uncertainty': p.uncertainty,
                    'bounds': list(p.bounds) if p.bounds is not None else None,
                }
                for p in self.config.parameter_uncertainties
            ]
        }

        with open(out / "config.json", 'w') as f:
            json.dump(config_dict, f, indent=2)

    def generate_report(self, results: MonteCarloResults) -> str:
        """
        Generate Monte Carlo analysis report.

        Parameters
        ----------
        results : MonteCarloResults
            Aggregated MC results

        Returns
        -------
        str
            Formatted report text
        """
        n = self.config.n_runs
        report = []
        report.append("=" * 70)
        report.append("MONTE CARLO ANALYSIS REPORT")
        report.append("=" * 70)
        report.append("")

        report.append("EXECUTION SUMMARY:")
        report.append(f"  Total runs:            {n}")
        report.append(f"  Successful:            {results.n_successful} "
                      f"({100*results.n_successful/n:.1f}%)")
        report.append(f"  Failed:                {results.n_failed}")
        report.append(f"  Total time:            {results.total_execution_time:.2f} s")
        report.append("")

        report.append("PARAMETER UNCERTAINTIES:")
        for param in self.config.parameter_uncertainties:
            report.append(f"  {param.name:30s}: {param.nominal:10.4g} ± {param.uncertainty:5.1f}% "
                          f"[{param.distribution.value}]")
        report.append("")

        summary = results.summary_statistics
        if not summary.empty:
            report.append("STEP RESPONSE STATISTICS:")
            for col, label, unit in (
                ('overshoot_percent', 'Overshoot', '%'),
                ('settling_time_seconds', 'Settling Time', 's'),
                ('rise_time_seconds', 'Rise Time', 's'),
                ('steady_state_error_meters', 'Steady-State Error', 'm'),
            ):
                row = summary.iloc[0]
                report.append(f"  {label} [{unit}]:")
                report.append(f"    Mean:              {row[f'{col}_mean']:10.4f}")
                report.append(f"    Std Dev:           {row[f'{col}_std']:10.4f}")
                report.append(f"    Max:               {row[f'{col}_max']:10.4f}")
                report.append(f"    95th percentile:   {row[f'{col}_p95']:10.4f}")
                if row[f'{col}_undefined']:
                    report.append(f"    Undefined:         {int(row[f'{col}_undefined']):10d}")
            report.append("")

            report.append("PASS RATES:")
            for col in summary.columns:
                if col.startswith('pass_rate_'):
                    label = col[len('pass_rate_'):].replace('_', ' ').title()
                    report.append(f"  {label:<22} {summary[col].iloc[0]:6.1f}%")
            report.append("")

        report.append("=" * 70)

        return "\n".join(report)


def run_parameter_sweep(
    base_parameters: SimulationParameters,
    parameter_name: str,
    values: Sequence[float],
    analyzer: Optional[PerformanceAnalyzer] = None,
    parallel: bool = False,
    max_workers: Optional[int] = None
) -> pd.DataFrame:
    """
    Sensitivity sweep of one parameter.

    Parameters
    ----------
    base_parameters : SimulationParameters
        Nominal configuration
    parameter_name : str
        SimulationParameters field to vary (e.g. 'sensor_noise_variance')
    values : Sequence[float]
        Values to evaluate, one run each
    analyzer : Optional[PerformanceAnalyzer]
        Metric extractor
    parallel : bool
        Evaluate values concurrently (thread pool)
    max_workers : Optional[int]
        Pool size

    Returns
    -------
    pd.DataFrame
        One row per value in input order, with the metrics, ``passed`` and
        ``error_message`` columns
    """
    if parameter_name not in {f.name for f in fields(SimulationParameters)}:
        raise InvalidConfiguration(f"Unknown sweep parameter '{parameter_name}'")
    analyzer = analyzer if analyzer is not None else PerformanceAnalyzer()

    jobs = [(i, i, base_parameters, {parameter_name: value}, analyzer)
            for i, value in enumerate(values)]
    slots: List[Optional[MonteCarloRun]] = [None] * len(jobs)

    if parallel:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = {executor.submit(execute_run, *job): job[0] for job in jobs}
            for future in futures:
                slots[futures[future]] = future.result()
    else:
        for job in jobs:
            slots[job[0]] = execute_run(*job)

    rows = []
    for value, run in zip(values, slots):
        row: Dict[str, Any] = {parameter_name: value}
        if run.metrics is not None:
            row.update(run.metrics.to_dict())
        row['passed'] = run.passed
        row['error_message'] = run.error_message
        rows.append(row)
    return pd.DataFrame(rows)


def create_default_uncertainties() -> List[ParameterUncertainty]:
    """
    Create default set of parameter uncertainties for typical analysis.

    Returns
    -------
    List[ParameterUncertainty]
        Standard uncertainty definitions
    """
    return [
        ParameterUncertainty(
            name='mass',
            nominal=1.0,  # kg
            distribution=DistributionType.NORMAL,
            uncertainty=1.0,
            bounds=(0.97, 1.0),
            metadata={'description': 'Vehicle mass incl. payload'}
        ),
        ParameterUncertainty(
            name='drag_coefficient',
            nominal=0.1,  # N·s/m
            distribution=DistributionType.UNIFORM,
            uncertainty=20.0,
            metadata={'description': 'Linear drag coefficient'}
        ),
        ParameterUncertainty(
            name='actuator_time_constant',
            nominal=0.1,  # s
            distribution=DistributionType.LOGNORMAL,
            uncertainty=10.0,
            bounds=(0.05, 0.2),
            metadata={'description': 'Propulsion lag'}
        ),
        ParameterUncertainty(
            name='actuator_gain',
            nominal=10.25,  # N, hover needs m*g < gain
            distribution=DistributionType.TRUNCATED_NORMAL,
            uncertainty=1.0,
            bounds=(10.0, 10.5),
            metadata={'description': 'Thrust at full command'}
        ),
    ]
