"""
Simulation loop, telemetry, step-response analysis and batch execution.
"""

from .command_profiles import (
    ConstantCommand,
    PiecewiseConstantCommand,
    StepCommand,
    command_from_parameters,
)
from .telemetry import SimulationRecord, SimulationSample, TerminationReason
from .performance_analyzer import (
    AcceptanceCriteria,
    AcceptanceResult,
    PerformanceAnalyzer,
    PerformanceMetrics,
    RequirementCheck,
    check_oscillation_stability,
    compute_disturbance_deviation,
    compute_overshoot,
    compute_recovery_time,
    compute_rise_time,
    compute_settling_time,
    disturbance_window,
)
from .simulation_runner import (
    AltitudeHoldRunner,
    SimulationPhase,
    run_simulation,
    simulate_and_analyze,
)
from .monte_carlo_engine import (
    DistributionType,
    MonteCarloConfig,
    MonteCarloEngine,
    MonteCarloResults,
    MonteCarloRun,
    ParameterRandomizer,
    ParameterUncertainty,
    create_default_uncertainties,
    run_parameter_sweep,
)

__all__ = [
    'ConstantCommand',
    'PiecewiseConstantCommand',
    'StepCommand',
    'command_from_parameters',
    'SimulationRecord',
    'SimulationSample',
    'TerminationReason',
    'AcceptanceCriteria',
    'AcceptanceResult',
    'PerformanceAnalyzer',
    'PerformanceMetrics',
    'RequirementCheck',
    'check_oscillation_stability',
    'compute_disturbance_deviation',
    'compute_overshoot',
    'compute_recovery_time',
    'compute_rise_time',
    'compute_settling_time',
    'disturbance_window',
    'AltitudeHoldRunner',
    'SimulationPhase',
    'run_simulation',
    'simulate_and_analyze',
    'DistributionType',
    'MonteCarloConfig',
    'MonteCarloEngine',
    'MonteCarloResults',
    'MonteCarloRun',
    'ParameterRandomizer',
    'ParameterUncertainty',
    'create_default_uncertainties',
    'run_parameter_sweep',
]
