"""
Thrust Actuator Model for the Altitude-Hold Vehicle

First-order lag between the normalized thrust command issued by the
controller and the force produced by the propulsion unit:

    tau * dl/dt = u_cmd - l          (u_cmd clamped to [0, 1])
    F_thrust    = clip(l * K_thrust * eta, 0, max_thrust * K_thrust)

where l is the normalized actuator level, K_thrust the actuator gain [N] and
eta the actuator effectiveness (1.0 when healthy, reduced after a fault).

The lag is integrated with forward Euler; the update factor dt/tau is capped
at 1 so the level never passes the command, whatever the step size.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple, TYPE_CHECKING

import numpy as np

from altitude_hold_twin.core.exceptions import InvalidInput

if TYPE_CHECKING:
    from altitude_hold_twin.core.parameters import SimulationParameters


@dataclass(frozen=True)
class ActuatorState:
    """Lagged normalized actuator level."""
    level: float = 0.0


def actuator_step(
    command: float,
    dt: float,
    state: ActuatorState,
    gain: float,
    time_constant: float,
    max_thrust: float = 1.0,
    effectiveness: float = 1.0
) -> Tuple[float, ActuatorState]:
    """
    Advance the actuator lag by one step.

    Parameters
    ----------
    command : float
        Normalized thrust command (clamped to [0, 1])
    dt : float
        Time step [s]
    state : ActuatorState
        Actuator level before the step
    gain : float
        Thrust produced at full command [N]
    time_constant : float
        First-order lag time constant [s]
    max_thrust : float
        Normalized thrust ceiling
    effectiveness : float
        Fraction of nominal thrust actually produced

    Returns
    -------
    Tuple[float, ActuatorState]
        Thrust force [N] and the new actuator state
    """
    if not dt > 0.0 or not np.isfinite(dt):
        raise InvalidInput(f"Time step must be positive and finite, got {dt}")

    u = float(np.clip(command, 0.0, 1.0))
    alpha = min(dt / time_constant, 1.0)
    level = state.level + (u - state.level) * alpha

    thrust = float(np.clip(level * gain * effectiveness, 0.0, max_thrust * gain))
    return thrust, ActuatorState(level=level)


class ThrustActuatorModel:
    """
    Stateful thrust actuator with optional loss-of-effectiveness fault.

    After ``fault_time`` the actuator delivers only ``effectiveness`` of its
    nominal thrust (e.g. 0.5 for a failed rotor on a twin-rotor vehicle).
    """

    def __init__(self, config: Dict):
        """
        Initialize the thrust actuator.

        Parameters
        ----------
        config : Dict
            Configuration dictionary containing:
            - 'gain': Thrust at full command [N] (default 10.0)
            - 'time_constant': Lag time constant [s] (default 0.1)
            - 'max_thrust': Normalized thrust ceiling (default 1.0)
            - 'fault_time': Fault onset [s] (default None, healthy)
            - 'effectiveness': Thrust fraction after fault (default 1.0)
        """
        self.gain: float = config.get('gain', 10.0)
        self.time_constant: float = config.get('time_constant', 0.1)
        self.max_thrust: float = config.get('max_thrust', 1.0)
        self.fault_time: Optional[float] = config.get('fault_time', None)
        self.effectiveness: float = config.get('effectiveness', 1.0)

        self.state = ActuatorState()
        self.thrust: float = 0.0

    def fault_active(self, t: float) -> bool:
        """True once the configured fault has started."""
        return self.fault_time is not None and t >= self.fault_time

    def step(self, command: float, dt: float, t: float = 0.0) -> float:
        """
        Compute one time step of the actuator dynamics.

        Parameters
        ----------
        command : float
            Normalized thrust command
        dt : float
            Time step [s]
        t : float
            Simulation time at the start of the step [s]

        Returns
        -------
        float
            Thrust force [N]
        """
        eta = self.effectiveness if self.fault_active(t) else 1.0
        self.thrust, self.state = actuator_step(
            command, dt, self.state, self.gain, self.time_constant,
            max_thrust=self.max_thrust, effectiveness=eta
        )
        return self.thrust

    def reset(self) -> None:
        """
        Reset the actuator to rest (zero level, zero thrust).
        """
        self.state = ActuatorState()
        self.thrust = 0.0

    def get_state(self) -> dict:
        """
        Get the current internal state of the actuator.

        Returns
        -------
        dict
            Dictionary containing current state variables
        """
        return {
            'level': self.state.level,
            'thrust': self.thrust,
        }


def create_thrust_actuator(params: 'SimulationParameters') -> ThrustActuatorModel:
    """Build the thrust actuator described by a parameter set."""
    return ThrustActuatorModel({
        'gain': params.actuator_gain,
        'time_constant': params.actuator_time_constant,
        'max_thrust': params.max_thrust,
        'fault_time': params.actuator_fault_time,
        'effectiveness': params.actuator_effectiveness,
    })
