"""
Altitude-Hold Digital Twin

Closed-loop simulation of a thrust-driven vehicle holding a commanded
altitude with a PID controller, and step-response analysis of the result.

Quick start:
    >>> from altitude_hold_twin import SimulationParameters, run_simulation, PerformanceAnalyzer
    >>> record = run_simulation(SimulationParameters())
    >>> metrics = PerformanceAnalyzer().analyze(record)
"""

from altitude_hold_twin.core.exceptions import (
    AltitudeHoldError,
    InvalidConfiguration,
    InvalidInput,
    NumericOverflow,
    SimulationStateError,
)
from altitude_hold_twin.core.parameters import SimulationParameters
from altitude_hold_twin.core.simulation.simulation_runner import (
    AltitudeHoldRunner,
    run_simulation,
    simulate_and_analyze,
)
from altitude_hold_twin.core.simulation.performance_analyzer import (
    PerformanceAnalyzer,
    PerformanceMetrics,
)

__version__ = "1.0.0"
__all__ = [
    "AltitudeHoldError",
    "InvalidConfiguration",
    "InvalidInput",
    "NumericOverflow",
    "SimulationStateError",
    "SimulationParameters",
    "AltitudeHoldRunner",
    "run_simulation",
    "simulate_and_analyze",
    "PerformanceAnalyzer",
    "PerformanceMetrics",
]
