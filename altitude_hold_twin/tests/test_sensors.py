"""
Unit tests for the altitude sensor.

This module verifies the non-ideal sensor effects: sample-and-hold at the
sensor period, quantization and seeded Gaussian noise.
"""

import numpy as np
import pytest

from altitude_hold_twin.core.parameters import SimulationParameters
from altitude_hold_twin.core.sensors.sensor_models import (
    AltitudeSensor,
    create_altitude_sensor,
)


class TestAltitudeSensor:
    """Test suite for AltitudeSensor."""

    @pytest.fixture
    def ideal_config(self):
        return {'noise_variance': 0.0, 'sample_time': 0.01, 'resolution': 0.0}

    @pytest.fixture
    def noisy_config(self):
        return {'noise_variance': 0.01, 'sample_time': 0.01, 'resolution': 0.0}

    def test_initialization(self, noisy_config):
        sensor = AltitudeSensor(noisy_config, seed=12345)

        assert sensor.noise_std == pytest.approx(0.1)
        assert sensor.held_value is None

    def test_ideal_sensor_passes_true_value_at_sample(self, ideal_config):
        sensor = AltitudeSensor(ideal_config)

        assert sensor.measure(1.234, 0.0) == 1.234

    def test_sample_and_hold(self, ideal_config):
        sensor = AltitudeSensor(ideal_config)

        assert sensor.measure(1.0, 0.0) == 1.0
        # Held between sample instants
        assert sensor.measure(2.0, 0.005) == 1.0
        assert sensor.measure(3.0, 0.009) == 1.0
        # Next sample instant latches the new value
        assert sensor.measure(4.0, 0.01) == 4.0

    def test_hold_on_simulation_grid(self, ideal_config):
        """With dt = 1 ms the value changes exactly every 10 samples."""
        sensor = AltitudeSensor(ideal_config)
        readings = [sensor.measure(float(k), k * 0.001) for k in range(100)]

        assert readings[:10] == [0.0] * 10
        assert readings[10:20] == [10.0] * 10
        assert readings[90:] == [90.0] * 10

    def test_quantization(self):
        sensor = AltitudeSensor({'sample_time': 0.001, 'resolution': 0.5})

        assert sensor.measure(0.74, 0.000) == 0.5
        assert sensor.measure(0.76, 0.001) == 1.0
        assert sensor.measure(0.25, 0.002) == 0.5
        assert sensor.measure(-0.25, 0.003) == -0.5
        assert sensor.measure(0.1, 0.004) == 0.0

    def test_noise_statistics(self, noisy_config):
        sensor = AltitudeSensor(noisy_config, seed=12345)
        readings = np.array([sensor.measure(5.0, k * 0.01) for k in range(5000)])

        assert np.mean(readings) == pytest.approx(5.0, abs=0.01)
        assert np.std(readings) == pytest.approx(0.1, rel=0.05)

    def test_deterministic_with_seed(self, noisy_config):
        sensor_a = AltitudeSensor(noisy_config, seed=12345)
        sensor_b = AltitudeSensor(noisy_config, seed=12345)

        for k in range(200):
            assert sensor_a.measure(5.0, k * 0.001) == sensor_b.measure(5.0, k * 0.001)

    def test_reset(self, noisy_config):
        sensor = AltitudeSensor(noisy_config, seed=12345)
        first = [sensor.measure(5.0, k * 0.01) for k in range(50)]

        sensor.reset()

        assert sensor.held_value is None
        second = [sensor.measure(5.0, k * 0.01) for k in range(50)]
        assert first == second


class TestSensorFactory:

    def test_disabled_sensor_returns_none(self):
        assert create_altitude_sensor(SimulationParameters()) is None

    def test_enabled_sensor(self):
        params = SimulationParameters(sensor_enabled=True, sensor_noise_variance=0.04,
                                      sensor_sample_time=0.02, sensor_resolution=0.1,
                                      sensor_seed=7)
        sensor = create_altitude_sensor(params)

        assert sensor.seed == 7
        assert sensor.noise_std == pytest.approx(0.2)
        assert sensor.sample_time == 0.02
        assert sensor.resolution == 0.1
