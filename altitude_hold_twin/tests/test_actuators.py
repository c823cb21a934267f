"""
Unit tests for the thrust actuator.

Verifies the first-order lag (monotone approach, no overshoot for any step
size), command and thrust saturation, and the loss-of-effectiveness fault.
"""

import numpy as np
import pytest

from altitude_hold_twin.core.actuators.thrust_actuator import (
    ActuatorState,
    ThrustActuatorModel,
    actuator_step,
    create_thrust_actuator,
)
from altitude_hold_twin.core.exceptions import InvalidInput
from altitude_hold_twin.core.parameters import SimulationParameters


class TestActuatorStep:
    """Test suite for the pure actuator lag step."""

    def test_first_step_from_rest(self):
        thrust, state = actuator_step(1.0, 0.001, ActuatorState(), gain=10.0, time_constant=0.1)

        assert state.level == pytest.approx(0.01)
        assert thrust == pytest.approx(0.1)

    def test_monotone_approach_without_overshoot(self):
        state = ActuatorState()
        levels = []
        for _ in range(2000):
            _, state = actuator_step(0.8, 0.001, state, gain=10.0, time_constant=0.1)
            levels.append(state.level)

        levels = np.array(levels)
        assert np.all(np.diff(levels) >= 0.0)
        assert np.all(levels <= 0.8)
        # 20 time constants: converged
        assert levels[-1] == pytest.approx(0.8, abs=1e-6)

    def test_large_step_size_lands_on_command(self):
        """dt larger than tau must not overshoot the command."""
        _, state = actuator_step(0.6, 0.5, ActuatorState(), gain=10.0, time_constant=0.1)

        assert state.level == pytest.approx(0.6)

    def test_command_clamped(self):
        _, high = actuator_step(5.0, 1.0, ActuatorState(), gain=10.0, time_constant=0.1)
        _, low = actuator_step(-5.0, 1.0, ActuatorState(level=0.5), gain=10.0, time_constant=0.1)

        assert high.level == 1.0
        assert low.level == 0.0

    def test_thrust_ceiling(self):
        thrust, _ = actuator_step(1.0, 1.0, ActuatorState(), gain=10.0,
                                  time_constant=0.1, max_thrust=0.7)

        assert thrust == pytest.approx(7.0)

    def test_effectiveness_scales_thrust(self):
        thrust, state = actuator_step(1.0, 1.0, ActuatorState(), gain=10.0,
                                      time_constant=0.1, effectiveness=0.5)

        assert state.level == 1.0
        assert thrust == pytest.approx(5.0)

    @pytest.mark.parametrize("dt", [0.0, -0.01])
    def test_invalid_time_step(self, dt):
        with pytest.raises(InvalidInput):
            actuator_step(1.0, dt, ActuatorState(), gain=10.0, time_constant=0.1)


class TestThrustActuatorModel:
    """Test suite for the stateful actuator."""

    @pytest.fixture
    def actuator_config(self):
        return {
            'gain': 10.0,
            'time_constant': 0.1,
            'max_thrust': 1.0,
            'fault_time': 1.0,
            'effectiveness': 0.5,
        }

    def test_initialization(self, actuator_config):
        actuator = ThrustActuatorModel(actuator_config)

        assert actuator.gain == 10.0
        assert actuator.time_constant == 0.1
        assert actuator.thrust == 0.0
        assert actuator.state.level == 0.0

    def test_thrust_never_negative(self, actuator_config):
        actuator = ThrustActuatorModel(actuator_config)
        for _ in range(100):
            assert actuator.step(-1.0, 0.01) >= 0.0

    def test_fault_halves_thrust(self, actuator_config):
        healthy = ThrustActuatorModel(actuator_config)
        faulty = ThrustActuatorModel(actuator_config)

        for _ in range(100):
            before = healthy.step(1.0, 0.01, t=0.5)
            after = faulty.step(1.0, 0.01, t=2.0)

        assert not healthy.fault_active(0.5)
        assert faulty.fault_active(2.0)
        assert after == pytest.approx(0.5 * before)

    def test_no_fault_configured(self):
        actuator = ThrustActuatorModel({'gain': 10.0, 'time_constant': 0.1})

        assert not actuator.fault_active(1e6)

    def test_reset(self, actuator_config):
        actuator = ThrustActuatorModel(actuator_config)
        for _ in range(50):
            actuator.step(1.0, 0.01)

        actuator.reset()

        assert actuator.get_state() == {'level': 0.0, 'thrust': 0.0}

    def test_factory_uses_parameters(self):
        params = SimulationParameters(actuator_gain=12.0, actuator_time_constant=0.05,
                                      actuator_fault_time=3.0, actuator_effectiveness=0.7)
        actuator = create_thrust_actuator(params)

        assert actuator.gain == 12.0
        assert actuator.time_constant == 0.05
        assert actuator.fault_time == 3.0
        assert actuator.effectiveness == 0.7
