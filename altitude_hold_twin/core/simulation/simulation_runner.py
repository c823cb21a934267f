"""
Closed-Loop Simulation Runner for the Altitude-Hold Digital Twin

Integrates the altitude-hold subsystems in a single fixed-step loop:
- Vertical point-mass plant (thrust, gravity, drag, disturbance)
- First-order thrust actuator with saturation and optional fault
- Step / impulse / bounded-random disturbance
- Optional sampled, noisy, quantized altitude sensor
- PID altitude controller with back-calculation anti-windup

The loop runs on the time grid t_k = k * dt, k = 0..ceil(T/dt), so a run of
duration T always ends at or just past T and produces ceil(T/dt) + 1 samples.
Time is derived from the step index, never accumulated.

Lifecycle:
---------
Initialized --run()--> Running --(time >= T)--> Completed
                               --(overflow)---> Completed (unstable, truncated)
                               --(stop flag)--> Completed (stopped, truncated)

A completed runner does not resume; call reset() to run again.

Data Flow:
---------
Sensor -> Error -> Controller -> Actuator -> (+ Disturbance) -> Plant -> Sensor
"""

import time
import warnings
from enum import Enum
from typing import Dict, Optional, Tuple

import numpy as np

from altitude_hold_twin.core.actuators.thrust_actuator import create_thrust_actuator
from altitude_hold_twin.core.controllers.control_laws import create_altitude_controller
from altitude_hold_twin.core.disturbances.disturbance_models import create_disturbance_model
from altitude_hold_twin.core.dynamics.vertical_dynamics import create_vertical_plant
from altitude_hold_twin.core.exceptions import (
    InvalidConfiguration,
    NumericOverflow,
    SimulationStateError,
)
from altitude_hold_twin.core.parameters import SimulationParameters
from altitude_hold_twin.core.sensors.sensor_models import create_altitude_sensor
from altitude_hold_twin.core.simulation.command_profiles import (
    CommandProfile,
    command_from_parameters,
)
from altitude_hold_twin.core.simulation.performance_analyzer import (
    PerformanceAnalyzer,
    PerformanceMetrics,
)
from altitude_hold_twin.core.simulation.telemetry import (
    SimulationRecord,
    SimulationSample,
    TerminationReason,
)


class SimulationPhase(Enum):
    """Lifecycle phase of a runner."""
    INITIALIZED = "initialized"
    RUNNING = "running"
    COMPLETED = "completed"


class AltitudeHoldRunner:
    """
    Fixed-step altitude-hold simulation.

    Usage:
    ------
    >>> runner = AltitudeHoldRunner(SimulationParameters(duration=10.0))
    >>> record = runner.run()
    >>> len(record)
    10001
    """

    def __init__(
        self,
        params: SimulationParameters,
        command: Optional[CommandProfile] = None,
        verbose: bool = False
    ):
        """
        Initialize the runner and all subsystems.

        Parameters
        ----------
        params : SimulationParameters
            Validated run configuration
        command : Optional[CommandProfile]
            Altitude command as a function of time; defaults to the step
            described by ``params``
        verbose : bool
            Print progress and a completion summary
        """
        if not isinstance(params, SimulationParameters):
            raise InvalidConfiguration(
                f"Expected SimulationParameters, got {type(params).__name__}"
            )
        self.params = params
        self.command = command if command is not None else command_from_parameters(params)
        self.verbose = verbose

        self._init_subsystems()
        self.phase = SimulationPhase.INITIALIZED
        self.record: Optional[SimulationRecord] = None

    def _init_subsystems(self) -> None:
        """Create fresh plant, actuator, disturbance, sensor and controller."""
        self.plant = create_vertical_plant(self.params)
        self.actuator = create_thrust_actuator(self.params)
        self.disturbance = create_disturbance_model(self.params)
        self.sensor = create_altitude_sensor(self.params)
        self.controller = create_altitude_controller(self.params)

    def _command_schedule(self, n_samples: int) -> np.ndarray:
        """Evaluate the command on the sample grid and reject non-finite values."""
        dt = self.params.time_step
        schedule = np.array([float(self.command(k * dt)) for k in range(n_samples)])
        if not np.all(np.isfinite(schedule)):
            bad = int(np.argmax(~np.isfinite(schedule)))
            raise InvalidConfiguration(
                f"Altitude command is not finite at t={bad * dt:.6f} s"
            )
        return schedule

    def _feedback(self, t: float) -> float:
        """Altitude fed to the controller (sensed if a sensor is configured)."""
        if self.sensor is None:
            return self.plant.altitude
        return self.sensor.measure(self.plant.altitude, t)

    def run(self, stop_event=None) -> SimulationRecord:
        """
        Execute the closed-loop simulation once.

        Parameters
        ----------
        stop_event : Optional[threading.Event]
            Checked once per iteration; when set, the loop ends early and the
            record is marked stopped

        Returns
        -------
        SimulationRecord
            Logged telemetry, finalized with its termination reason

        Raises
        ------
        SimulationStateError
            If the runner has already run (call reset() first)
        InvalidConfiguration
            If the command profile yields a non-finite altitude
        """
        if self.phase is not SimulationPhase.INITIALIZED:
            raise SimulationStateError(
                f"Runner is {self.phase.value}; call reset() before running again"
            )

        p = self.params
        dt = p.time_step
        n_steps = p.num_steps
        commands = self._command_schedule(n_steps + 1)

        self.record = SimulationRecord(dt, p.duration, p.to_dict())
        self.phase = SimulationPhase.RUNNING

        if self.verbose:
            print(f"Starting simulation for {p.duration:.2f} seconds...")
            print(f"  dt: {dt*1e3:.3f} ms ({n_steps} steps)")
            print(f"  Gains: Kp={p.kp:g}, Ki={p.ki:g}, Kd={p.kd:g}")
            print(f"  Disturbance: {p.disturbance_mode.value}, "
                  f"Sensor: {'enabled' if self.sensor is not None else 'ideal'}")

        start_wall = time.perf_counter()
        termination = TerminationReason.COMPLETED
        message = ""
        progress_every = max(1, n_steps // 10)

        for k in range(n_steps + 1):
            if stop_event is not None and stop_event.is_set():
                termination = TerminationReason.STOPPED
                message = f"Stop requested at t={k * dt:.6f} s"
                break

            t = k * dt
            command = commands[k]
            altitude = self.plant.altitude
            velocity = self.plant.velocity
            feedback = self._feedback(t)
            error = command - feedback

            thrust_command, _ = self.controller.compute_control(error, dt)
            thrust_force = self.actuator.step(thrust_command, dt, t)
            disturbance_force = self.disturbance.force(t)

            self.record.append(SimulationSample(
                time=t,
                commanded_altitude=command,
                true_altitude=altitude,
                sensed_altitude=feedback,
                thrust_command=thrust_command,
                thrust_force=thrust_force,
                control_error=error,
                vertical_velocity=velocity,
                disturbance_force=disturbance_force,
            ))

            # The last sample closes the grid; no step beyond T
            if k == n_steps:
                break

            try:
                self.plant.step(thrust_force, disturbance_force, dt, time=t)
            except NumericOverflow as exc:
                termination = TerminationReason.UNSTABLE
                message = str(exc)
                warnings.warn(
                    f"Simulation diverged, record truncated after {len(self.record)} samples: {exc}",
                    RuntimeWarning
                )
                break

            if self.verbose and k > 0 and k % progress_every == 0:
                print(f"  Progress: {100.0 * k / n_steps:.0f}% (t={t:.2f}s)")

        self.record.finalize(termination, message)
        self.phase = SimulationPhase.COMPLETED

        if self.verbose:
            elapsed = time.perf_counter() - start_wall
            final_time = self.record.time[-1] if len(self.record) else 0.0
            print(f"Simulation {termination.value}: {final_time:.3f} simulated seconds")
            print(f"  Wall-clock time: {elapsed:.2f} seconds")
            print(f"  Samples logged: {len(self.record)}")

        return self.record

    def reset(self) -> None:
        """Reset all subsystems and return to the Initialized phase."""
        self.plant.reset()
        self.actuator.reset()
        self.disturbance.reset()
        if self.sensor is not None:
            self.sensor.reset()
        self.controller.reset()
        self.record = None
        self.phase = SimulationPhase.INITIALIZED

    def get_state(self) -> Dict:
        """Snapshot of the subsystem states for debugging."""
        return {
            'phase': self.phase.value,
            'plant': self.plant.get_state(),
            'actuator': self.actuator.get_state(),
            'controller': self.controller.get_state(),
            'samples': len(self.record) if self.record is not None else 0,
        }


def run_simulation(
    params: SimulationParameters,
    command: Optional[CommandProfile] = None,
    stop_event=None,
    verbose: bool = False
) -> SimulationRecord:
    """
    Run one altitude-hold simulation and return its record.

    Parameters
    ----------
    params : SimulationParameters
        Run configuration
    command : Optional[CommandProfile]
        Altitude command; defaults to the step in ``params``
    stop_event : Optional[threading.Event]
        Cooperative stop flag
    verbose : bool
        Print progress

    Returns
    -------
    SimulationRecord
        Finalized telemetry
    """
    return AltitudeHoldRunner(params, command=command, verbose=verbose).run(stop_event=stop_event)


def simulate_and_analyze(
    params: SimulationParameters,
    analyzer: Optional[PerformanceAnalyzer] = None,
    command: Optional[CommandProfile] = None
) -> Tuple[SimulationRecord, PerformanceMetrics]:
    """Run a simulation and extract its step-response metrics."""
    analyzer = analyzer if analyzer is not None else PerformanceAnalyzer()
    record = run_simulation(params, command=command)
    return record, analyzer.analyze(record)


def main():
    """
    Demonstration of the altitude-hold simulation.

    Runs the nominal 20-second step to 5 m and prints the step-response
    summary.
    """
    print("=" * 70)
    print("Altitude-Hold Digital Twin")
    print("Closed-Loop Step Response")
    print("=" * 70)
    print()

    params = SimulationParameters()
    analyzer = PerformanceAnalyzer(settling_tolerance=0.05)

    record = AltitudeHoldRunner(params, verbose=True).run()
    metrics = analyzer.analyze(record)

    print()
    print(analyzer.generate_report(metrics, analyzer.assess(metrics)))

    return record, metrics


if __name__ == "__main__":
    main()
