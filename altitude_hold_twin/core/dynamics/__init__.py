"""
Vertical point-mass plant dynamics.
"""

from .vertical_dynamics import (
    PlantState,
    VerticalPlantModel,
    create_vertical_plant,
    plant_step,
)

__all__ = [
    'PlantState',
    'VerticalPlantModel',
    'create_vertical_plant',
    'plant_step',
]
