"""
Unit tests for SimulationParameters validation and conversion.
"""

import pytest

from altitude_hold_twin.core.disturbances.disturbance_models import (
    DisturbanceCoupling,
    DisturbanceMode,
)
from altitude_hold_twin.core.exceptions import InvalidConfiguration
from altitude_hold_twin.core.parameters import SimulationParameters


class TestDefaults:

    def test_nominal_scenario_defaults(self):
        params = SimulationParameters()

        assert params.mass == 1.0
        assert params.gravity == 9.81
        assert params.actuator_gain == 10.0
        assert (params.kp, params.ki, params.kd) == (1.0, 0.1, 0.5)
        assert params.command_altitude == 5.0
        assert params.command_step_time == 2.0
        assert params.time_step == 0.001
        assert params.duration == 20.0
        assert params.disturbance_mode is DisturbanceMode.NONE
        assert not params.sensor_enabled

    def test_nominal_sample_count(self):
        params = SimulationParameters()

        assert params.num_steps == 20000
        assert params.num_samples == 20001

    def test_non_dividing_time_step_rounds_up(self):
        params = SimulationParameters(duration=1.0, time_step=0.3)

        assert params.num_steps == 4
        assert params.num_samples == 5

    @pytest.mark.parametrize("duration, time_step, expected", [
        (1.0, 0.001, 1000),
        (0.3, 0.1, 3),
        (2.0, 0.01, 200),
        (0.7, 0.1, 7),
    ])
    def test_exact_division_not_inflated_by_float_residue(self, duration, time_step, expected):
        params = SimulationParameters(duration=duration, time_step=time_step)

        assert params.num_steps == expected


class TestValidation:

    @pytest.mark.parametrize("name", ['mass', 'drag_coefficient', 'kp', 'time_step',
                                      'command_altitude', 'disturbance_magnitude'])
    @pytest.mark.parametrize("value", [float('nan'), float('inf'), -float('inf')])
    def test_non_finite_rejected(self, name, value):
        with pytest.raises(InvalidConfiguration):
            SimulationParameters(**{name: value})

    @pytest.mark.parametrize("name", ['mass', 'gravity', 'actuator_gain',
                                      'actuator_time_constant', 'time_step', 'duration'])
    def test_non_positive_rejected(self, name):
        with pytest.raises(InvalidConfiguration):
            SimulationParameters(**{name: 0.0})

    @pytest.mark.parametrize("name", ['drag_coefficient', 'anti_windup_gain',
                                      'sensor_noise_variance', 'sensor_resolution'])
    def test_negative_rejected(self, name):
        with pytest.raises(InvalidConfiguration):
            SimulationParameters(**{name: -0.1})

    def test_negative_gains_allowed(self):
        """Sign of the gains is a design choice, not a configuration error."""
        params = SimulationParameters(kp=-1.0)

        assert params.kp == -1.0

    def test_inverted_output_limits(self):
        with pytest.raises(InvalidConfiguration):
            SimulationParameters(output_min=1.0, output_max=1.0)

    @pytest.mark.parametrize("value", [-0.1, 1.5])
    def test_effectiveness_range(self, value):
        with pytest.raises(InvalidConfiguration):
            SimulationParameters(actuator_effectiveness=value)

    def test_negative_fault_time(self):
        with pytest.raises(InvalidConfiguration):
            SimulationParameters(actuator_fault_time=-1.0)

    def test_enum_strings_coerced(self):
        params = SimulationParameters(disturbance_mode='bounded-random',
                                      disturbance_coupling='wind_velocity')

        assert params.disturbance_mode is DisturbanceMode.BOUNDED_RANDOM
        assert params.disturbance_coupling is DisturbanceCoupling.WIND_VELOCITY

    def test_unknown_enum_string(self):
        with pytest.raises(InvalidConfiguration, match="disturbance_mode"):
            SimulationParameters(disturbance_mode='tornado')

    def test_configuration_error_is_value_error(self):
        with pytest.raises(ValueError):
            SimulationParameters(mass=-1.0)


class TestConversion:

    def test_with_updates_returns_validated_copy(self):
        base = SimulationParameters()
        updated = base.with_updates(kp=2.0, duration=5.0)

        assert updated.kp == 2.0
        assert updated.duration == 5.0
        assert base.kp == 1.0

        with pytest.raises(InvalidConfiguration):
            base.with_updates(mass=0.0)

    def test_with_updates_unknown_field(self):
        with pytest.raises(InvalidConfiguration, match="Unknown"):
            SimulationParameters().with_updates(rotor_count=4)

    def test_to_dict_is_plain_json(self):
        data = SimulationParameters(disturbance_mode='step').to_dict()

        assert data['disturbance_mode'] == 'step'
        assert data['disturbance_coupling'] == 'force'
        assert data['actuator_fault_time'] is None

    def test_from_dict_round_trip(self):
        params = SimulationParameters(kp=2.5, disturbance_mode='impulse', sensor_enabled=True)

        assert SimulationParameters.from_dict(params.to_dict()) == params

    def test_from_dict_partial(self):
        params = SimulationParameters.from_dict({'command_altitude': 0.0})

        assert params.command_altitude == 0.0
        assert params.mass == 1.0

    def test_from_dict_unknown_key(self):
        with pytest.raises(InvalidConfiguration):
            SimulationParameters.from_dict({'mass': 1.0, 'wingspan': 2.0})

    def test_frozen(self):
        params = SimulationParameters()

        with pytest.raises(AttributeError):
            params.mass = 2.0
