"""
Altitude-Hold Control Law

PID controller producing a normalized thrust command from the altitude
tracking error.

Control Architecture:
--------------------
    [Altitude Command]
            |
            v
    (+) ---> e ---> [PID + Anti-Windup] ---> [Clamp 0..1] ---> u_cmd
     ^ (-)                                                       |
     |                                                           v
     |                                                  [Thrust Actuator]
     |                                                           |
     |                                                           v
     +------------- [Altitude Sensor] <---------------- [Vertical Plant]

Control Law:
-----------
u(t) = K_p * e(t) + K_i * I(t) + K_d * de/dt

The derivative acts on the raw error, so a step in the command produces a
one-sample derivative kick. An optional first-order filter with time
constant T_f smooths the derivative term.

Anti-Windup (back-calculation):
------------------------------
dI/dt = e(t) + K_aw * (u_sat - u)

The saturation error of a step is fed back into the integrator on the next
step.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Tuple, TYPE_CHECKING

import numpy as np

from altitude_hold_twin.core.exceptions import InvalidConfiguration, InvalidInput

if TYPE_CHECKING:
    from altitude_hold_twin.core.parameters import SimulationParameters


@dataclass(frozen=True)
class PIDGains:
    """PID gain set."""
    kp: float = 1.0
    ki: float = 0.1
    kd: float = 0.5
    anti_windup_gain: float = 1.0
    derivative_filter_time: float = 0.0  # s, 0 = unfiltered

    def __post_init__(self):
        for name in ('kp', 'ki', 'kd', 'anti_windup_gain', 'derivative_filter_time'):
            if not np.isfinite(getattr(self, name)):
                raise InvalidConfiguration(f"Gain {name} must be finite")
        if self.derivative_filter_time < 0.0:
            raise InvalidConfiguration("derivative_filter_time must be >= 0")


@dataclass(frozen=True)
class OutputLimits:
    """Controller output saturation bounds."""
    lower: float = 0.0
    upper: float = 1.0

    def __post_init__(self):
        if not self.lower < self.upper:
            raise InvalidConfiguration(
                f"Output limits must satisfy lower < upper, got [{self.lower}, {self.upper}]"
            )


@dataclass(frozen=True)
class ControllerState:
    """Container for controller internal state."""
    integral: float = 0.0
    previous_error: float = 0.0
    previous_output: float = 0.0
    saturation_error: float = 0.0   # u_sat - u of the previous step
    filtered_derivative: float = 0.0


def _pid_terms(
    error: float,
    dt: float,
    state: ControllerState,
    gains: PIDGains,
    limits: OutputLimits
) -> Tuple[float, float, float, float, ControllerState]:
    """Return (u_p, u_i, u_d, u_unsat, new_state) for one PID step."""
    if not dt > 0.0 or not np.isfinite(dt):
        raise InvalidInput(f"Controller time step must be positive and finite, got {dt}")

    integral = state.integral + (error + gains.anti_windup_gain * state.saturation_error) * dt

    raw_derivative = (error - state.previous_error) / dt
    if gains.derivative_filter_time > 0.0:
        alpha = dt / (gains.derivative_filter_time + dt)
        derivative = state.filtered_derivative + alpha * (raw_derivative - state.filtered_derivative)
    else:
        derivative = raw_derivative

    u_p = gains.kp * error
    u_i = gains.ki * integral
    u_d = gains.kd * derivative
    u = u_p + u_i + u_d
    u_sat = float(np.clip(u, limits.lower, limits.upper))

    new_state = ControllerState(
        integral=integral,
        previous_error=error,
        previous_output=u_sat,
        saturation_error=u_sat - u,
        filtered_derivative=derivative,
    )
    return u_p, u_i, u_d, u, new_state


def pid_update(
    error: float,
    dt: float,
    state: ControllerState,
    gains: PIDGains,
    limits: OutputLimits = OutputLimits()
) -> Tuple[float, ControllerState]:
    """
    One step of the PID law with back-calculation anti-windup.

    Parameters
    ----------
    error : float
        Tracking error, command minus measured altitude [m]
    dt : float
        Time step [s], must be > 0
    state : ControllerState
        Controller state from the previous step
    gains : PIDGains
        Controller gains
    limits : OutputLimits
        Saturation bounds of the output

    Returns
    -------
    Tuple[float, ControllerState]
        Saturated command and the new controller state

    Raises
    ------
    InvalidInput
        If dt is not positive
    """
    _, _, _, _, new_state = _pid_terms(error, dt, state, gains, limits)
    return new_state.previous_output, new_state


class BaseController(ABC):
    """
    Abstract base class for all controllers.

    Defines the standard interface for control law implementation including
    initialization, state management, and step-wise computation.
    """

    def __init__(self, config: dict):
        """
        Initialize the controller.

        Parameters
        ----------
        config : dict
            Configuration dictionary with controller-specific parameters
        """
        self.config = config

    @abstractmethod
    def compute_control(self, error: float, dt: float) -> Tuple[float, Dict]:
        """
        Compute control command for one time step.

        Parameters
        ----------
        error : float
            Tracking error
        dt : float
            Time step [s]

        Returns
        -------
        Tuple[float, Dict]
            Control command and diagnostics
        """
        pass

    @abstractmethod
    def reset(self) -> None:
        """
        Reset controller to initial state.
        """
        pass

    @abstractmethod
    def get_state(self) -> Dict:
        """
        Get current controller state for logging/debugging.

        Returns
        -------
        Dict
            Dictionary containing controller state variables
        """
        pass


class AltitudePIDController(BaseController):
    """
    Altitude-hold PID controller with normalized thrust output.

    Key features:

    - Back-calculation anti-windup
    - Output clamped to the normalized thrust range [0, 1]
    - Optional low-pass filtered derivative
    """

    def __init__(self, config: dict):
        """
        Initialize altitude controller.

        Parameters
        ----------
        config : dict
            Configuration containing:
            - 'kp': Proportional gain [1/m]
            - 'ki': Integral gain [1/(m·s)]
            - 'kd': Derivative gain [s/m]
            - 'anti_windup_gain': Back-calculation gain (default 1.0)
            - 'derivative_filter_time': Derivative filter constant [s]
            - 'output_min', 'output_max': Output limits (default 0, 1)
        """
        super().__init__(config)

        self.gains = PIDGains(
            kp=config.get('kp', 1.0),
            ki=config.get('ki', 0.1),
            kd=config.get('kd', 0.5),
            anti_windup_gain=config.get('anti_windup_gain', 1.0),
            derivative_filter_time=config.get('derivative_filter_time', 0.0),
        )
        self.limits = OutputLimits(
            lower=config.get('output_min', 0.0),
            upper=config.get('output_max', 1.0),
        )

        self.state = ControllerState()

    @property
    def saturated(self) -> bool:
        return abs(self.state.saturation_error) > 1e-12

    def compute_control(self, error: float, dt: float) -> Tuple[float, Dict]:
        """
        Compute normalized thrust command.

        Parameters
        ----------
        error : float
            Altitude error, command minus feedback [m]
        dt : float
            Time step [s]

        Returns
        -------
        Tuple[float, Dict]
            - command: Normalized thrust command in [output_min, output_max]
            - metadata: Individual PID terms and saturation flag
        """
        u_p, u_i, u_d, u, self.state = _pid_terms(error, dt, self.state, self.gains, self.limits)

        metadata = {
            'u_p': u_p,
            'u_i': u_i,
            'u_d': u_d,
            'u_unsaturated': u,
            'integral': self.state.integral,
            'saturated': self.saturated,
        }
        return self.state.previous_output, metadata

    def reset(self) -> None:
        self.state = ControllerState()

    def get_state(self) -> Dict:
        return {
            'integral': self.state.integral,
            'previous_error': self.state.previous_error,
            'previous_output': self.state.previous_output,
            'saturation_error': self.state.saturation_error,
            'saturation_active': self.saturated,
        }


def create_altitude_controller(params: 'SimulationParameters') -> AltitudePIDController:
    """Build the altitude controller described by a parameter set."""
    return AltitudePIDController({
        'kp': params.kp,
        'ki': params.ki,
        'kd': params.kd,
        'anti_windup_gain': params.anti_windup_gain,
        'derivative_filter_time': params.derivative_filter_time,
        'output_min': params.output_min,
        'output_max': params.output_max,
    })
