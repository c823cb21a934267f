"""
Thrust actuator models (first-order lag with saturation and fault).
"""

from .thrust_actuator import (
    ActuatorState,
    ThrustActuatorModel,
    actuator_step,
    create_thrust_actuator,
)

__all__ = [
    'ActuatorState',
    'ThrustActuatorModel',
    'actuator_step',
    'create_thrust_actuator',
]
