"""
Altitude command profiles.

A command profile is any callable mapping simulation time [s] to a commanded
altitude [m]; the simulation loop evaluates it once per sample.
"""

from dataclasses import dataclass
from typing import Callable, Sequence, Tuple, TYPE_CHECKING

from altitude_hold_twin.core.exceptions import InvalidConfiguration

if TYPE_CHECKING:
    from altitude_hold_twin.core.parameters import SimulationParameters


CommandProfile = Callable[[float], float]

_TIME_EPSILON = 1e-9


@dataclass(frozen=True)
class ConstantCommand:
    """Hold a fixed altitude for the whole run."""
    value: float = 0.0

    def __call__(self, t: float) -> float:
        return self.value


@dataclass(frozen=True)
class StepCommand:
    """Step from ``initial_value`` to ``final_value`` at ``step_time``."""
    final_value: float
    step_time: float = 0.0
    initial_value: float = 0.0

    def __call__(self, t: float) -> float:
        if t >= self.step_time - _TIME_EPSILON:
            return self.final_value
        return self.initial_value


class PiecewiseConstantCommand:
    """
    Staircase command built from (start_time, altitude) breakpoints.

    Before the first breakpoint the command is ``initial_value``.
    """

    def __init__(self, breakpoints: Sequence[Tuple[float, float]], initial_value: float = 0.0):
        times = [float(t) for t, _ in breakpoints]
        if any(b <= a for a, b in zip(times, times[1:])):
            raise InvalidConfiguration("Command breakpoints must have strictly increasing times")
        self.breakpoints = [(float(t), float(v)) for t, v in breakpoints]
        self.initial_value = initial_value

    def __call__(self, t: float) -> float:
        value = self.initial_value
        for start, altitude in self.breakpoints:
            if t >= start - _TIME_EPSILON:
                value = altitude
            else:
                break
        return value


def command_from_parameters(params: 'SimulationParameters') -> StepCommand:
    """Default step command described by a parameter set."""
    return StepCommand(
        final_value=params.command_altitude,
        step_time=params.command_step_time,
        initial_value=params.initial_command,
    )
