"""
Unit tests for vertical disturbance models.

Test coverage:
- Step and impulse windows (half-open, boundary behavior)
- Force vs wind-velocity coupling
- Bounded random gusts: bounds, hold, determinism, query-order independence
"""

import numpy as np
import pytest

from altitude_hold_twin.core.disturbances.disturbance_models import (
    DisturbanceCoupling,
    DisturbanceMode,
    VerticalDisturbanceModel,
    create_disturbance_model,
)
from altitude_hold_twin.core.parameters import SimulationParameters


class TestWindowedDisturbances:
    """Test suite for step and impulse disturbances."""

    @pytest.fixture
    def step_model(self):
        return VerticalDisturbanceModel({
            'mode': 'step',
            'magnitude': 2.0,
            'start_time': 5.0,
            'duration': 2.0,
        })

    def test_step_window(self, step_model):
        assert step_model.value(0.0) == 0.0
        assert step_model.value(4.999) == 0.0
        assert step_model.value(5.0) == 2.0
        assert step_model.value(6.0) == 2.0
        assert step_model.value(6.999) == 2.0
        assert step_model.value(7.0) == 0.0
        assert step_model.value(15.0) == 0.0

    def test_step_window_on_sample_grid(self, step_model):
        """Grid times k*dt hit the window edges despite float residue."""
        dt = 0.001
        active = [k for k in range(10001) if step_model.value(k * dt) != 0.0]

        assert active[0] == 5000
        assert active[-1] == 6999
        assert len(active) == 2000

    def test_impulse_window(self):
        model = VerticalDisturbanceModel({
            'mode': DisturbanceMode.IMPULSE,
            'magnitude': 2.0,
            'start_time': 12.0,
            'impulse_width': 0.1,
        })

        assert model.value(11.99) == 0.0
        assert model.value(12.0) == 2.0
        assert model.value(12.05) == 2.0
        assert model.value(12.1) == 0.0

    def test_none_mode_is_zero(self):
        model = VerticalDisturbanceModel({'mode': 'none', 'magnitude': 3.0})

        assert model.value(5.5) == 0.0
        assert model.force(5.5) == 0.0

    def test_force_coupling(self, step_model):
        assert step_model.coupling is DisturbanceCoupling.FORCE
        assert step_model.force(6.0) == 2.0

    def test_wind_velocity_coupling(self):
        model = VerticalDisturbanceModel({
            'mode': 'step',
            'magnitude': 2.0,
            'start_time': 5.0,
            'duration': 2.0,
            'coupling': 'wind_velocity',
            'drag_coefficient': 0.1,
        })

        assert model.value(6.0) == 2.0
        assert model.force(6.0) == pytest.approx(0.2)

    def test_invalid_mode(self):
        with pytest.raises(ValueError):
            VerticalDisturbanceModel({'mode': 'sinusoid'})


class TestBoundedRandomDisturbance:
    """Test suite for the bounded random gust."""

    @pytest.fixture
    def config(self):
        return {
            'mode': 'bounded-random',
            'magnitude': 2.0,
            'sample_time': 0.01,
            'seed': 54321,
        }

    def test_bounded(self, config):
        model = VerticalDisturbanceModel(config)
        values = np.array([model.value(k * 0.001) for k in range(20000)])

        assert np.all(np.abs(values) <= 2.0)
        assert np.std(values) > 0.0

    def test_standard_deviation(self, config):
        model = VerticalDisturbanceModel(config)
        values = np.array([model.value(k * 0.01) for k in range(20000)])

        # sigma = magnitude / 4
        assert np.std(values) == pytest.approx(0.5, rel=0.05)
        assert abs(np.mean(values)) < 0.05

    def test_held_within_sample_period(self, config):
        model = VerticalDisturbanceModel(config)

        assert model.value(0.0) == model.value(0.005) == model.value(0.009)
        assert model.value(0.01) == model.value(0.0199)

    def test_deterministic_with_seed(self, config):
        model_a = VerticalDisturbanceModel(config)
        model_b = VerticalDisturbanceModel(config)

        for k in range(1000):
            assert model_a.value(k * 0.003) == model_b.value(k * 0.003)

    def test_query_order_independent(self, config):
        forward = VerticalDisturbanceModel(config)
        backward = VerticalDisturbanceModel(config)

        times = [0.0, 0.5, 1.0, 3.7]
        expected = [forward.value(t) for t in times]
        actual = [backward.value(t) for t in reversed(times)][::-1]

        assert actual == expected

    def test_different_seed_differs(self, config):
        model_a = VerticalDisturbanceModel(config)
        model_b = VerticalDisturbanceModel({**config, 'seed': 1})

        a = [model_a.value(k * 0.01) for k in range(100)]
        b = [model_b.value(k * 0.01) for k in range(100)]
        assert a != b

    def test_reset_reproduces_sequence(self, config):
        model = VerticalDisturbanceModel(config)
        first = [model.value(k * 0.01) for k in range(100)]
        model.reset()
        second = [model.value(k * 0.01) for k in range(100)]

        assert first == second

    def test_zero_magnitude(self, config):
        model = VerticalDisturbanceModel({**config, 'magnitude': 0.0})

        assert model.value(1.0) == 0.0


def test_factory_uses_parameters():
    params = SimulationParameters(
        disturbance_mode='step',
        disturbance_magnitude=2.0,
        disturbance_coupling='wind_velocity',
        drag_coefficient=0.2,
    )
    model = create_disturbance_model(params)

    assert model.mode is DisturbanceMode.STEP
    assert model.coupling is DisturbanceCoupling.WIND_VELOCITY
    assert model.force(6.0) == pytest.approx(0.4)
