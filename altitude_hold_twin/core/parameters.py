"""
Simulation Parameters for the Altitude-Hold Digital Twin

A single immutable parameter set describes one closed-loop run: vehicle and
actuator physics, PID gains, the commanded step, the disturbance and sensor
models, and the integration grid. Parameters are validated once, when the
object is built, so a bad configuration never reaches the simulation loop.

Parameter Groups:
----------------
- Plant:       mass, gravity, drag_coefficient, ground_contact
- Actuator:    actuator_gain, actuator_time_constant, max_thrust,
               actuator_fault_time, actuator_effectiveness
- Controller:  kp, ki, kd, anti_windup_gain, derivative_filter_time,
               output_min, output_max
- Command:     command_altitude, command_step_time, initial_command
- Disturbance: disturbance_* (mode, magnitude, window, coupling, seed)
- Sensor:      sensor_* (enable flag, noise variance, sample period,
               resolution, seed)
- Timing:      time_step, duration

Defaults reproduce the nominal altitude-hold scenario: a 1 kg vehicle
commanded from 0 m to 5 m at t = 2 s, simulated for 20 s at 1 ms.
"""

import math
from dataclasses import dataclass, asdict, fields, replace
from typing import Any, Dict, Optional

from altitude_hold_twin.core.exceptions import InvalidConfiguration
from altitude_hold_twin.core.disturbances.disturbance_models import (
    DisturbanceCoupling,
    DisturbanceMode,
)


GRAVITY = 9.81  # m/s^2

# Guard against floating-point residue when T/dt is an integer in exact arithmetic
_STEP_COUNT_EPSILON = 1e-9


@dataclass(frozen=True)
class SimulationParameters:
    """Immutable configuration of one altitude-hold simulation run."""

    # Plant
    mass: float = 1.0                     # kg
    gravity: float = GRAVITY              # m/s^2
    drag_coefficient: float = 0.1         # N·s/m
    ground_contact: bool = True           # Vehicle rests on the pad at h = 0

    # Actuator
    actuator_gain: float = 10.0           # N per unit command
    actuator_time_constant: float = 0.1   # s
    max_thrust: float = 1.0               # Normalized thrust ceiling
    actuator_fault_time: Optional[float] = None  # s, None = healthy
    actuator_effectiveness: float = 1.0   # Thrust fraction after fault onset

    # Controller
    kp: float = 1.0
    ki: float = 0.1
    kd: float = 0.5
    anti_windup_gain: float = 1.0
    derivative_filter_time: float = 0.0   # s, 0 = unfiltered derivative
    output_min: float = 0.0
    output_max: float = 1.0

    # Command
    command_altitude: float = 5.0         # m
    command_step_time: float = 2.0        # s
    initial_command: float = 0.0          # m

    # Disturbance
    disturbance_mode: DisturbanceMode = DisturbanceMode.NONE
    disturbance_magnitude: float = 0.0    # N (force) or m/s (wind)
    disturbance_start_time: float = 5.0   # s
    disturbance_duration: float = 2.0     # s
    disturbance_impulse_width: float = 0.1  # s
    disturbance_sample_time: float = 0.01   # s, bounded-random hold period
    disturbance_coupling: DisturbanceCoupling = DisturbanceCoupling.FORCE
    disturbance_seed: int = 54321

    # Sensor
    sensor_enabled: bool = False
    sensor_noise_variance: float = 0.0    # m^2
    sensor_sample_time: float = 0.01      # s
    sensor_resolution: float = 0.0        # m, 0 = no quantization
    sensor_seed: int = 12345

    # Timing
    time_step: float = 0.001              # s
    duration: float = 20.0                # s

    def __post_init__(self):
        # Enum fields accept their string values (JSON configs)
        for name, enum_type in (('disturbance_mode', DisturbanceMode),
                                ('disturbance_coupling', DisturbanceCoupling)):
            value = getattr(self, name)
            if not isinstance(value, enum_type):
                try:
                    object.__setattr__(self, name, enum_type(value))
                except ValueError:
                    allowed = ', '.join(member.value for member in enum_type)
                    raise InvalidConfiguration(
                        f"{name} must be one of [{allowed}], got {value!r}"
                    ) from None
        self._validate()

    def _validate(self) -> None:
        """Reject non-finite numbers and physically invalid values."""
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, bool) or value is None:
                continue
            if isinstance(value, (int, float)):
                if not math.isfinite(value):
                    raise InvalidConfiguration(f"{f.name} must be finite, got {value}")

        for name in ('mass', 'gravity', 'actuator_gain', 'actuator_time_constant',
                     'max_thrust', 'time_step', 'duration',
                     'disturbance_impulse_width', 'disturbance_sample_time',
                     'sensor_sample_time'):
            if getattr(self, name) <= 0.0:
                raise InvalidConfiguration(f"{name} must be > 0, got {getattr(self, name)}")

        for name in ('drag_coefficient', 'anti_windup_gain', 'derivative_filter_time',
                     'disturbance_duration', 'sensor_noise_variance', 'sensor_resolution',
                     'command_step_time', 'disturbance_start_time'):
            if getattr(self, name) < 0.0:
                raise InvalidConfiguration(f"{name} must be >= 0, got {getattr(self, name)}")

        if self.disturbance_magnitude < 0.0 and self.disturbance_mode is DisturbanceMode.BOUNDED_RANDOM:
            raise InvalidConfiguration("bounded-random disturbance magnitude must be >= 0")

        if self.output_min >= self.output_max:
            raise InvalidConfiguration(
                f"output_min ({self.output_min}) must be below output_max ({self.output_max})"
            )

        if not 0.0 <= self.actuator_effectiveness <= 1.0:
            raise InvalidConfiguration(
                f"actuator_effectiveness must lie in [0, 1], got {self.actuator_effectiveness}"
            )

        if self.actuator_fault_time is not None and self.actuator_fault_time < 0.0:
            raise InvalidConfiguration("actuator_fault_time must be >= 0")

    @property
    def num_steps(self) -> int:
        """Number of integration steps, ceil(T / dt)."""
        return int(math.ceil(self.duration / self.time_step - _STEP_COUNT_EPSILON))

    @property
    def num_samples(self) -> int:
        """Samples in a completed record (one per step plus the final state)."""
        return self.num_steps + 1

    def with_updates(self, **changes: Any) -> 'SimulationParameters':
        """Return a validated copy with the given fields replaced."""
        unknown = set(changes) - {f.name for f in fields(self)}
        if unknown:
            raise InvalidConfiguration(f"Unknown parameter(s): {sorted(unknown)}")
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """Plain-JSON representation (enums as their string values)."""
        data = asdict(self)
        data['disturbance_mode'] = self.disturbance_mode.value
        data['disturbance_coupling'] = self.disturbance_coupling.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SimulationParameters':
        """
        Build parameters from a flat dictionary (e.g. a JSON scenario).

        Parameters
        ----------
        data : Dict[str, Any]
            Field names mapped to values. Missing fields take their defaults.

        Returns
        -------
        SimulationParameters
            Validated parameter set

        Raises
        ------
        InvalidConfiguration
            On unknown keys or invalid values
        """
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise InvalidConfiguration(f"Unknown parameter(s): {sorted(unknown)}")
        return cls(**data)
