"""
PID Gain Design and Tuning for the Altitude-Hold Loop

Three ways to obtain (Kp, Ki, Kd):

1. Ziegler-Nichols ultimate-cycle rule from a measured ultimate gain and
   period.
2. Pole placement on the hover-linearized plant, treating the vehicle as a
   double integrator from normalized thrust to altitude:

       G(s) = K_thrust / (m * s²)

   Matching the closed loop to s² + 2ζωn·s + ωn² gives
       Kp = m·ωn² / K_thrust,  Kd = 2ζ·m·ωn / K_thrust,  Ki = Kp·ωn / 10
3. Simulation-based optimization: bounded Nelder-Mead (scipy.optimize) on
   an ITAE cost with overshoot and instability penalties, evaluated on the
   full nonlinear closed loop (saturation, actuator lag, anti-windup).
"""

import warnings
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np
from scipy.optimize import minimize

from altitude_hold_twin.core.controllers.control_laws import PIDGains
from altitude_hold_twin.core.exceptions import AltitudeHoldError, InvalidInput
from altitude_hold_twin.core.parameters import SimulationParameters
from altitude_hold_twin.core.simulation.performance_analyzer import (
    PerformanceAnalyzer,
    PerformanceMetrics,
)
from altitude_hold_twin.core.simulation.simulation_runner import run_simulation


# Gain search box (Kp, Ki, Kd)
DEFAULT_GAIN_BOUNDS = ((0.1, 10.0), (0.01, 5.0), (0.01, 5.0))

INSTABILITY_PENALTY = 1000.0


def ziegler_nichols_gains(ultimate_gain: float, ultimate_period: float) -> PIDGains:
    """
    Classic Ziegler-Nichols PID rule.

    Parameters
    ----------
    ultimate_gain : float
        Proportional gain Ku at which the loop oscillates steadily
    ultimate_period : float
        Oscillation period Tu at Ku [s]

    Returns
    -------
    PIDGains
        Kp = 0.6 Ku, Ki = 1.2 Ku / Tu, Kd = 0.075 Ku Tu
    """
    if ultimate_gain <= 0.0 or ultimate_period <= 0.0:
        raise InvalidInput("Ultimate gain and period must be positive")
    return PIDGains(
        kp=0.6 * ultimate_gain,
        ki=1.2 * ultimate_gain / ultimate_period,
        kd=0.075 * ultimate_gain * ultimate_period,
    )


def design_pid_for_vertical_plant(
    params: SimulationParameters,
    bandwidth_hz: float = 0.5,
    damping_ratio: float = 0.707
) -> PIDGains:
    """
    Pole-placement PID design for the hover-linearized vertical plant.

    Args:
        params: Plant and actuator parameters (mass, actuator_gain)
        bandwidth_hz: Desired closed-loop natural frequency [Hz]
        damping_ratio: Target damping ratio

    Returns:
        PIDGains with Ki placed a decade below ωn

    Example:
        >>> gains = design_pid_for_vertical_plant(SimulationParameters(), bandwidth_hz=0.5)
        >>> print(f"Kp: {gains.kp:.3f}")
    """
    if bandwidth_hz <= 0.0 or damping_ratio <= 0.0:
        raise InvalidInput("Bandwidth and damping ratio must be positive")

    omega_n = 2.0 * np.pi * bandwidth_hz
    plant_gain = params.actuator_gain / params.mass

    kp = omega_n ** 2 / plant_gain
    kd = 2.0 * damping_ratio * omega_n / plant_gain
    ki = kp * omega_n / 10.0

    # Actuator lag erodes phase margin once ωn approaches 1/tau
    if omega_n * params.actuator_time_constant > 0.5:
        warnings.warn(
            f"Bandwidth {bandwidth_hz:.2f} Hz is close to the actuator corner "
            f"({1.0 / (2.0 * np.pi * params.actuator_time_constant):.2f} Hz)"
        )

    return PIDGains(kp=float(kp), ki=float(ki), kd=float(kd),
                    anti_windup_gain=params.anti_windup_gain,
                    derivative_filter_time=params.derivative_filter_time)


@dataclass(frozen=True)
class TuningResult:
    """Outcome of a simulation-based gain optimization."""
    gains: PIDGains
    cost: float
    metrics: Optional[PerformanceMetrics]
    n_evaluations: int
    success: bool
    message: str = ""


class GainTuner:
    """
    Simulation-based PID tuner.

    Each cost evaluation runs the full closed-loop simulation with candidate
    gains and scores the response:

        J = ITAE + w_os * max(0, OS - OS_max) + P_unstable

    where ITAE integrates (t - t_step)·|e| over the run, OS is the percent
    overshoot and P_unstable a fixed penalty for truncated or oscillating
    runs.
    """

    def __init__(
        self,
        params: SimulationParameters,
        analyzer: Optional[PerformanceAnalyzer] = None,
        overshoot_limit: float = 5.0,
        overshoot_weight: float = 10.0,
        bounds: Sequence[Tuple[float, float]] = DEFAULT_GAIN_BOUNDS
    ):
        self.params = params
        self.analyzer = analyzer if analyzer is not None else PerformanceAnalyzer()
        self.overshoot_limit = overshoot_limit
        self.overshoot_weight = overshoot_weight
        self.bounds = tuple(tuple(b) for b in bounds)
        self.n_evaluations = 0
        self._best: Optional[Tuple[float, np.ndarray, Optional[PerformanceMetrics]]] = None

    def evaluate(self, gains: PIDGains) -> Tuple[float, Optional[PerformanceMetrics]]:
        """Cost and metrics of one gain set."""
        self.n_evaluations += 1
        try:
            run_params = self.params.with_updates(kp=gains.kp, ki=gains.ki, kd=gains.kd)
            with warnings.catch_warnings():
                warnings.simplefilter('ignore', RuntimeWarning)
                warnings.filterwarnings('ignore', message='Analyzing truncated record')
                record = run_simulation(run_params)
                metrics = self.analyzer.analyze(record)
                error = np.abs(record.commanded_altitude - record.true_altitude)
                t_rel = np.clip(record.time - self.params.command_step_time, 0.0, None)
                itae = float(np.sum(t_rel * error) * self.params.time_step)
        except AltitudeHoldError:
            return INSTABILITY_PENALTY * 10.0, None

        cost = itae
        cost += self.overshoot_weight * max(0.0, metrics.overshoot_percent - self.overshoot_limit)
        if metrics.truncated or not metrics.oscillation_stable:
            cost += INSTABILITY_PENALTY
        return cost, metrics

    def cost(self, x: Sequence[float]) -> float:
        """Objective for scipy: x = (Kp, Ki, Kd)."""
        x = np.clip(np.asarray(x, dtype=float),
                    [b[0] for b in self.bounds], [b[1] for b in self.bounds])
        value, metrics = self.evaluate(PIDGains(kp=x[0], ki=x[1], kd=x[2]))
        if self._best is None or value < self._best[0]:
            self._best = (value, x.copy(), metrics)
        return value

    def optimize(
        self,
        initial: Optional[PIDGains] = None,
        max_evaluations: int = 60,
        verbose: bool = False
    ) -> TuningResult:
        """
        Minimize the tuning cost with bounded Nelder-Mead.

        Parameters
        ----------
        initial : Optional[PIDGains]
            Starting point; defaults to the gains in ``params``
        max_evaluations : int
            Budget of closed-loop simulations
        verbose : bool
            Print the tuning summary

        Returns
        -------
        TuningResult
            Best gains found (never worse than the starting point)
        """
        if initial is None:
            initial = PIDGains(kp=self.params.kp, ki=self.params.ki, kd=self.params.kd)
        x0 = np.array([initial.kp, initial.ki, initial.kd], dtype=float)

        self.n_evaluations = 0
        self._best = None

        result = minimize(
            self.cost, x0, method='Nelder-Mead', bounds=self.bounds,
            options={'maxfev': max_evaluations, 'xatol': 1e-3, 'fatol': 1e-4}
        )

        best_cost, best_x, best_metrics = self._best
        gains = PIDGains(kp=float(best_x[0]), ki=float(best_x[1]), kd=float(best_x[2]),
                         anti_windup_gain=self.params.anti_windup_gain,
                         derivative_filter_time=self.params.derivative_filter_time)

        if verbose:
            print("=" * 70)
            print("PID GAIN OPTIMIZATION")
            print("=" * 70)
            print(f"  Start:  Kp={x0[0]:.4f}, Ki={x0[1]:.4f}, Kd={x0[2]:.4f}")
            print(f"  Best:   Kp={gains.kp:.4f}, Ki={gains.ki:.4f}, Kd={gains.kd:.4f}")
            print(f"  Cost:   {best_cost:.4f} after {self.n_evaluations} simulations")
            print(f"  Status: {result.message}")
            print("=" * 70)

        return TuningResult(
            gains=gains,
            cost=float(best_cost),
            metrics=best_metrics,
            n_evaluations=self.n_evaluations,
            success=bool(result.success),
            message=str(result.message),
        )
