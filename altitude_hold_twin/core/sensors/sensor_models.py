"""
Sensor Models for the Altitude-Hold Digital Twin

Altitude measurement with the non-ideal effects of a sampled barometric or
ranging sensor:

- Additive white Gaussian noise (variance in m^2)
- Zero-order hold at the sensor sample period
- Quantization to the sensor resolution

All noise generation uses seeded random number generators to ensure
deterministic execution for debugging and continuous integration.
"""

from abc import ABC, abstractmethod
from typing import Dict, Optional, TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from altitude_hold_twin.core.parameters import SimulationParameters


_SAMPLE_EPSILON = 1e-9


class SensorModel(ABC):
    """
    Abstract base class for all sensor models.

    Defines the standard interface for sensor measurements including:
    - Configuration-driven initialization
    - Deterministic random number generation via seeding
    - True-to-measured value conversion
    """

    def __init__(self, config: dict, seed: int = 42):
        """
        Initialize the sensor model.

        Parameters
        ----------
        config : dict
            Configuration dictionary with sensor-specific parameters
        seed : int, optional
            Random number generator seed for deterministic execution
        """
        self.config = config
        self.seed = seed
        self.rng = np.random.default_rng(seed)

    @abstractmethod
    def measure(self, true_value: float, t: float) -> float:
        """
        Convert true physical value to measured sensor output.

        Parameters
        ----------
        true_value : float
            True physical quantity being measured
        t : float
            Simulation time of the measurement [s]

        Returns
        -------
        float
            Measured value including all non-ideal effects
        """
        pass

    @abstractmethod
    def reset(self) -> None:
        """
        Reset sensor to initial conditions.
        """
        pass


class AltitudeSensor(SensorModel):
    """
    Sampled altitude sensor.

    At each sample boundary the true altitude plus Gaussian noise is latched
    and held until the next boundary; the held value is quantized to the
    sensor resolution. With zero variance the output is the held, quantized
    true altitude.
    """

    def __init__(self, config: dict, seed: int = 12345):
        """
        Initialize altitude sensor.

        Parameters
        ----------
        config : dict
            Configuration containing:
            - 'noise_variance': White noise variance [m^2] (default 0)
            - 'sample_time': Sample period [s] (default 0.01)
            - 'resolution': Quantization step [m] (default 0, disabled)
        seed : int, optional
            RNG seed for deterministic noise generation
        """
        super().__init__(config, seed)

        self.noise_variance: float = config.get('noise_variance', 0.0)
        self.sample_time: float = config.get('sample_time', 0.01)
        self.resolution: float = config.get('resolution', 0.0)
        self.noise_std: float = float(np.sqrt(self.noise_variance))

        self._held_value: Optional[float] = None
        self._next_sample_time: float = 0.0

    def measure(self, true_value: float, t: float) -> float:
        """
        Measure altitude with noise, sample-and-hold and quantization.

        Parameters
        ----------
        true_value : float
            True altitude [m]
        t : float
            Simulation time [s]

        Returns
        -------
        float
            Measured altitude [m]
        """
        if self._held_value is None or t >= self._next_sample_time - _SAMPLE_EPSILON:
            noise = self.rng.normal(0.0, self.noise_std) if self.noise_std > 0.0 else 0.0
            self._held_value = self._quantize(true_value + noise)

            # Next boundary is the first sample instant strictly after t
            periods = np.floor(t / self.sample_time + _SAMPLE_EPSILON) + 1.0
            self._next_sample_time = periods * self.sample_time

        return self._held_value

    def _quantize(self, value: float) -> float:
        """Round to the nearest multiple of the resolution, halves away from zero."""
        if self.resolution <= 0.0:
            return float(value)
        levels = np.sign(value) * np.floor(np.abs(value) / self.resolution + 0.5)
        return float(levels * self.resolution)

    @property
    def held_value(self) -> Optional[float]:
        """Last latched measurement (None before the first sample)."""
        return self._held_value

    def reset(self) -> None:
        """
        Reset sensor to initial state.
        """
        self.rng = np.random.default_rng(self.seed)
        self._held_value = None
        self._next_sample_time = 0.0


def create_altitude_sensor(params: 'SimulationParameters') -> Optional[AltitudeSensor]:
    """
    Build the altitude sensor for a run, or None when the loop uses true altitude.

    Parameters
    ----------
    params : SimulationParameters
        Run configuration

    Returns
    -------
    Optional[AltitudeSensor]
        Configured sensor, None if ``params.sensor_enabled`` is False
    """
    if not params.sensor_enabled:
        return None
    config: Dict = {
        'noise_variance': params.sensor_noise_variance,
        'sample_time': params.sensor_sample_time,
        'resolution': params.sensor_resolution,
    }
    return AltitudeSensor(config, seed=params.sensor_seed)
