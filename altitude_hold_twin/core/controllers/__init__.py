"""
Altitude controllers.

PID law with back-calculation anti-windup, available as a pure step
function (``pid_update``) and as a stateful controller class.
"""

from .control_laws import (
    AltitudePIDController,
    BaseController,
    ControllerState,
    OutputLimits,
    PIDGains,
    create_altitude_controller,
    pid_update,
)

__all__ = [
    'AltitudePIDController',
    'BaseController',
    'ControllerState',
    'OutputLimits',
    'PIDGains',
    'create_altitude_controller',
    'pid_update',
]
