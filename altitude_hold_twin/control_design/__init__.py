"""
Control Design Module for the Altitude-Hold Digital Twin

Gain synthesis for the altitude PID loop:
- Ziegler-Nichols ultimate-cycle rule
- Pole placement on the hover-linearized plant
- Simulation-based optimization (scipy.optimize)
"""

from .gain_tuning import (
    GainTuner,
    TuningResult,
    design_pid_for_vertical_plant,
    ziegler_nichols_gains,
)

__all__ = [
    "GainTuner",
    "TuningResult",
    "design_pid_for_vertical_plant",
    "ziegler_nichols_gains",
]
