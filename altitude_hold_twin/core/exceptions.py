"""
Error Taxonomy for the Altitude-Hold Digital Twin

Failure classes:
---------------
- InvalidConfiguration: rejected parameters, raised before any step runs
- InvalidInput: bad per-call arguments (non-positive time step, empty record)
- NumericOverflow: plant state left the finite range; the simulation loop
  catches it and truncates the record
- SimulationStateError: lifecycle misuse (e.g. running a completed runner)

The value-type errors also derive from ValueError so callers that only know
about the built-in exceptions keep working.
"""


class AltitudeHoldError(Exception):
    """Base class for all altitude-hold twin errors."""


class InvalidConfiguration(AltitudeHoldError, ValueError):
    """Simulation parameters are non-finite or physically invalid."""


class InvalidInput(AltitudeHoldError, ValueError):
    """A component was called with an argument outside its domain."""


class NumericOverflow(AltitudeHoldError, ArithmeticError):
    """Plant integration produced a non-finite state."""

    def __init__(self, message: str, time: float = float('nan')):
        super().__init__(message)
        self.time = time


class SimulationStateError(AltitudeHoldError, RuntimeError):
    """Simulation runner used outside its Initialized -> Running -> Completed lifecycle."""
