"""
Vertical Disturbance Models for the Altitude-Hold Digital Twin

External perturbations acting on the vehicle along the vertical axis:

1. Step: constant gust of fixed magnitude over a time window
2. Impulse: short pulse of fixed magnitude and width
3. Bounded random: zero-mean Gaussian gusts, clipped to ±magnitude and held
   for one disturbance sample period

Coupling into the plant:
-----------------------
- FORCE:         value is a force [N] added directly to the force balance
- WIND_VELOCITY: value is a vertical air velocity w [m/s]; relative-air drag
                 -b(v - w) contributes an extra force b·w

All random disturbances use seeded generators so repeated runs are identical.
"""

from enum import Enum
from typing import Dict, List, TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from altitude_hold_twin.core.parameters import SimulationParameters


# Time comparisons at window and sample boundaries tolerate float residue
_TIME_EPSILON = 1e-9


class DisturbanceMode(Enum):
    """Shape of the disturbance signal."""
    NONE = "none"
    STEP = "step"
    IMPULSE = "impulse"
    BOUNDED_RANDOM = "bounded-random"


class DisturbanceCoupling(Enum):
    """How the disturbance value enters the force balance."""
    FORCE = "force"
    WIND_VELOCITY = "wind_velocity"


class VerticalDisturbanceModel:
    """
    Time-indexed vertical disturbance generator.

    The signal is a function of simulation time only; the bounded-random
    sequence is generated lazily in sample-period order and cached, so the
    value at a given time does not depend on how often it was queried.

    Usage:
    ------
    >>> model = VerticalDisturbanceModel({'mode': 'step', 'magnitude': 2.0,
    ...                                   'start_time': 5.0, 'duration': 2.0})
    >>> model.value(6.0)
    2.0
    """

    def __init__(self, config: Dict):
        """
        Initialize disturbance model.

        Parameters
        ----------
        config : Dict
            Configuration:
            - 'mode': DisturbanceMode or its string value (default 'none')
            - 'magnitude': Gust magnitude [N or m/s]
            - 'start_time': Window start [s]
            - 'duration': Step window length [s]
            - 'impulse_width': Impulse window length [s]
            - 'sample_time': Bounded-random hold period [s]
            - 'coupling': DisturbanceCoupling or its string value
            - 'drag_coefficient': Drag coefficient for wind coupling [N·s/m]
            - 'seed': Random seed
        """
        self.mode = DisturbanceMode(config.get('mode', DisturbanceMode.NONE))
        self.coupling = DisturbanceCoupling(config.get('coupling', DisturbanceCoupling.FORCE))
        self.magnitude = float(config.get('magnitude', 0.0))
        self.start_time = float(config.get('start_time', 5.0))
        self.duration = float(config.get('duration', 2.0))
        self.impulse_width = float(config.get('impulse_width', 0.1))
        self.sample_time = float(config.get('sample_time', 0.01))
        self.drag_coefficient = float(config.get('drag_coefficient', 0.1))
        self.seed = config.get('seed', 54321)

        # Bounded-random gust: sigma = magnitude / 4, so clipping is rare
        self.noise_std = abs(self.magnitude) / 4.0

        self.rng = np.random.default_rng(self.seed)
        self._random_samples: List[float] = []

    def value(self, t: float) -> float:
        """
        Disturbance signal at time t, in its native unit.

        Parameters
        ----------
        t : float
            Simulation time [s]

        Returns
        -------
        float
            Force [N] or wind velocity [m/s], depending on coupling
        """
        if self.mode is DisturbanceMode.STEP:
            return self._windowed(t, self.duration)
        if self.mode is DisturbanceMode.IMPULSE:
            return self._windowed(t, self.impulse_width)
        if self.mode is DisturbanceMode.BOUNDED_RANDOM:
            return self._random_value(t)
        return 0.0

    def force(self, t: float) -> float:
        """Disturbance force [N] entering the plant at time t."""
        d = self.value(t)
        if self.coupling is DisturbanceCoupling.WIND_VELOCITY:
            return self.drag_coefficient * d
        return d

    def _windowed(self, t: float, width: float) -> float:
        """Magnitude inside [start_time, start_time + width), zero outside."""
        if self.start_time - _TIME_EPSILON <= t < self.start_time + width - _TIME_EPSILON:
            return self.magnitude
        return 0.0

    def _random_value(self, t: float) -> float:
        """Held Gaussian gust for the sample period containing t."""
        if self.noise_std == 0.0:
            return 0.0

        index = max(0, int(np.floor(t / self.sample_time + _TIME_EPSILON)))
        while len(self._random_samples) <= index:
            draw = self.rng.normal(0.0, self.noise_std)
            self._random_samples.append(float(np.clip(draw, -abs(self.magnitude), abs(self.magnitude))))
        return self._random_samples[index]

    def reset(self) -> None:
        """Reset to initial state (reseeds the random sequence)."""
        self.rng = np.random.default_rng(self.seed)
        self._random_samples = []


def create_disturbance_model(params: 'SimulationParameters') -> VerticalDisturbanceModel:
    """
    Build the disturbance model described by a parameter set.

    Parameters
    ----------
    params : SimulationParameters
        Run configuration

    Returns
    -------
    VerticalDisturbanceModel
        Configured model
    """
    return VerticalDisturbanceModel({
        'mode': params.disturbance_mode,
        'magnitude': params.disturbance_magnitude,
        'start_time': params.disturbance_start_time,
        'duration': params.disturbance_duration,
        'impulse_width': params.disturbance_impulse_width,
        'sample_time': params.disturbance_sample_time,
        'coupling': params.disturbance_coupling,
        'drag_coefficient': params.drag_coefficient,
        'seed': params.disturbance_seed,
    })
