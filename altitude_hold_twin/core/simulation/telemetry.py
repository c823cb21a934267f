"""
Simulation telemetry record.

Samples are logged column-wise (one list per signal) and exposed as numpy
arrays for analysis, or exported as a dictionary, JSON document or pandas
DataFrame. A record is append-only while the loop runs and frozen once the
loop finalizes it.

Sample k is taken at t_k = k * dt and pairs the plant state at t_k with the
command, controller output and actuator force applied over [t_k, t_k + dt).
"""

import json
from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional

import numpy as np
import pandas as pd

from altitude_hold_twin.core.exceptions import InvalidInput, SimulationStateError


SAMPLE_FIELDS = (
    'time',
    'commanded_altitude',
    'true_altitude',
    'sensed_altitude',
    'thrust_command',
    'thrust_force',
    'control_error',
    'vertical_velocity',
    'disturbance_force',
)


class TerminationReason(Enum):
    """Why the simulation loop stopped."""
    COMPLETED = "completed"
    UNSTABLE = "unstable"
    STOPPED = "stopped"


@dataclass(frozen=True)
class SimulationSample:
    """One logged instant of the closed loop."""
    time: float
    commanded_altitude: float
    true_altitude: float
    sensed_altitude: float
    thrust_command: float
    thrust_force: float
    control_error: float
    vertical_velocity: float = 0.0
    disturbance_force: float = 0.0


class SimulationRecord:
    """
    Time series produced by one simulation run.

    Attributes
    ----------
    time_step : float
        Integration step of the run [s]
    duration : float
        Requested duration of the run [s]
    termination : Optional[TerminationReason]
        Set when the loop finalizes the record
    parameters : Dict[str, Any]
        Plain-JSON copy of the run parameters
    """

    def __init__(self, time_step: float, duration: float,
                 parameters: Optional[Dict[str, Any]] = None):
        self.time_step = time_step
        self.duration = duration
        self.parameters: Dict[str, Any] = dict(parameters or {})
        self.termination: Optional[TerminationReason] = None
        self.message: str = ""
        self._data: Dict[str, List[float]] = defaultdict(list)
        self._length = 0

    def append(self, sample: SimulationSample) -> None:
        """Append one sample (only while the record is open)."""
        if self.termination is not None:
            raise SimulationStateError("Cannot append to a finalized simulation record")
        for name in SAMPLE_FIELDS:
            self._data[name].append(float(getattr(sample, name)))
        self._length += 1

    def finalize(self, termination: TerminationReason, message: str = "") -> None:
        """Close the record; no further samples can be appended."""
        if self.termination is not None:
            raise SimulationStateError("Simulation record already finalized")
        self.termination = termination
        self.message = message

    @property
    def is_final(self) -> bool:
        return self.termination is not None

    @property
    def truncated(self) -> bool:
        """True if the run ended before reaching its duration."""
        return self.termination in (TerminationReason.UNSTABLE, TerminationReason.STOPPED)

    @property
    def unstable(self) -> bool:
        return self.termination is TerminationReason.UNSTABLE

    def __len__(self) -> int:
        return self._length

    def __iter__(self) -> Iterator[SimulationSample]:
        for i in range(self._length):
            yield self[i]

    def __getitem__(self, index: int) -> SimulationSample:
        if index < 0:
            index += self._length
        if not 0 <= index < self._length:
            raise IndexError(f"Sample index {index} out of range for record of {self._length}")
        return SimulationSample(**{name: self._data[name][index] for name in SAMPLE_FIELDS})

    def column(self, name: str) -> np.ndarray:
        """Signal as a numpy array."""
        if name not in SAMPLE_FIELDS:
            raise InvalidInput(f"Unknown telemetry signal '{name}'")
        return np.array(self._data[name], dtype=float)

    @property
    def time(self) -> np.ndarray:
        return self.column('time')

    @property
    def commanded_altitude(self) -> np.ndarray:
        return self.column('commanded_altitude')

    @property
    def true_altitude(self) -> np.ndarray:
        return self.column('true_altitude')

    @property
    def sensed_altitude(self) -> np.ndarray:
        return self.column('sensed_altitude')

    @property
    def thrust_command(self) -> np.ndarray:
        return self.column('thrust_command')

    @property
    def thrust_force(self) -> np.ndarray:
        return self.column('thrust_force')

    @property
    def control_error(self) -> np.ndarray:
        return self.column('control_error')

    @property
    def vertical_velocity(self) -> np.ndarray:
        return self.column('vertical_velocity')

    @property
    def disturbance_force(self) -> np.ndarray:
        return self.column('disturbance_force')

    def to_dict(self) -> Dict[str, Any]:
        """Plain-JSON representation of the record."""
        return {
            'time_step': self.time_step,
            'duration': self.duration,
            'termination': self.termination.value if self.termination else None,
            'truncated': self.truncated,
            'message': self.message,
            'parameters': self.parameters,
            'samples': {name: list(self._data[name]) for name in SAMPLE_FIELDS},
        }

    def to_json(self, indent: Optional[int] = None) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SimulationRecord':
        """Rebuild a record exported with ``to_dict``."""
        record = cls(data['time_step'], data['duration'], data.get('parameters'))
        samples = data.get('samples', {})
        lengths = {len(samples.get(name, [])) for name in SAMPLE_FIELDS}
        if len(lengths) != 1:
            raise InvalidInput("Telemetry columns have inconsistent lengths")
        for i in range(lengths.pop()):
            record.append(SimulationSample(**{name: samples[name][i] for name in SAMPLE_FIELDS}))
        if data.get('termination') is not None:
            record.finalize(TerminationReason(data['termination']), data.get('message', ''))
        return record

    def to_dataframe(self) -> pd.DataFrame:
        """
        Convert telemetry to a pandas DataFrame (one row per sample).

        Returns
        -------
        pd.DataFrame
            Columns in logging order, indexed by sample number
        """
        return pd.DataFrame({name: self._data[name] for name in SAMPLE_FIELDS},
                            columns=list(SAMPLE_FIELDS))
