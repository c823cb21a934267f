"""
Disturbance modeling package for the altitude-hold digital twin.

Step, impulse and bounded-random vertical gusts, injected either as an
additive force or as a vertical wind velocity coupled through drag:

    m * h_dd = F_thrust - m * g - b * (h_d - w) + F_dist
"""

from .disturbance_models import (
    DisturbanceCoupling,
    DisturbanceMode,
    VerticalDisturbanceModel,
    create_disturbance_model,
)

__all__ = [
    'DisturbanceCoupling',
    'DisturbanceMode',
    'VerticalDisturbanceModel',
    'create_disturbance_model',
]
