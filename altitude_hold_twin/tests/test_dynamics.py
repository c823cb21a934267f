"""
Unit tests for the vertical point-mass plant.
"""

import pytest

from altitude_hold_twin.core.dynamics.vertical_dynamics import (
    PlantState,
    VerticalPlantModel,
    create_vertical_plant,
    plant_step,
)
from altitude_hold_twin.core.exceptions import InvalidInput, NumericOverflow
from altitude_hold_twin.core.parameters import SimulationParameters


class TestPlantStep:
    """Test suite for one integration step."""

    def test_hover_equilibrium(self):
        state = PlantState(altitude=3.0, velocity=0.0)
        new = plant_step(9.81, 0.0, 0.001, state, mass=1.0, gravity=9.81,
                         drag_coefficient=0.1)

        assert new.altitude == pytest.approx(3.0)
        assert new.velocity == pytest.approx(0.0)
        assert new.acceleration == pytest.approx(0.0)

    def test_semi_implicit_update(self):
        """Velocity is updated first and then advances the altitude."""
        new = plant_step(11.81, 0.0, 0.1, PlantState(), mass=1.0, gravity=9.81,
                         drag_coefficient=0.0)

        assert new.acceleration == pytest.approx(2.0)
        assert new.velocity == pytest.approx(0.2)
        assert new.altitude == pytest.approx(0.02)

    def test_drag_opposes_velocity(self):
        state = PlantState(altitude=10.0, velocity=1.0)
        new = plant_step(9.81, 0.0, 0.001, state, mass=1.0, gravity=9.81,
                         drag_coefficient=0.1)

        assert new.acceleration == pytest.approx(-0.1)

    def test_disturbance_force_adds(self):
        new = plant_step(9.81, 0.5, 0.001, PlantState(altitude=1.0), mass=2.0,
                         gravity=4.905, drag_coefficient=0.0)

        assert new.acceleration == pytest.approx(0.25)

    def test_free_fall_without_ground_contact(self):
        new = plant_step(0.0, 0.0, 0.01, PlantState(), mass=1.0, gravity=9.81,
                         drag_coefficient=0.1, ground_contact=False)

        assert new.altitude < 0.0
        assert new.velocity < 0.0

    def test_ground_contact_holds_vehicle_on_pad(self):
        new = plant_step(0.0, 0.0, 0.01, PlantState(), mass=1.0, gravity=9.81,
                         drag_coefficient=0.1, ground_contact=True)

        assert new.altitude == 0.0
        assert new.velocity == 0.0

    def test_overflow_detected(self):
        with pytest.raises(NumericOverflow) as excinfo:
            plant_step(1e10, 0.0, 0.001, PlantState(), mass=1e-300, gravity=9.81,
                       drag_coefficient=0.1, time=1.25)

        assert excinfo.value.time == 1.25
        assert "t=1.250000" in str(excinfo.value)

    def test_invalid_time_step(self):
        with pytest.raises(InvalidInput):
            plant_step(9.81, 0.0, 0.0, PlantState(), mass=1.0, gravity=9.81,
                       drag_coefficient=0.1)


class TestVerticalPlantModel:
    """Test suite for the stateful plant."""

    @pytest.fixture
    def plant(self):
        return VerticalPlantModel(mass=1.0, gravity=9.81, drag_coefficient=0.1)

    def test_initialization(self, plant):
        assert plant.altitude == 0.0
        assert plant.velocity == 0.0
        assert plant.ground_contact
        assert plant.hover_thrust() == pytest.approx(9.81)

    def test_climbs_with_excess_thrust(self, plant):
        for _ in range(1000):
            plant.step(10.0, 0.0, 0.001)

        assert plant.altitude > 0.0
        assert plant.velocity > 0.0

    def test_stays_on_pad_without_thrust(self, plant):
        for _ in range(100):
            plant.step(0.0, 0.0, 0.001)

        assert plant.get_state()['altitude'] == 0.0
        assert plant.get_state()['velocity'] == 0.0

    def test_reset(self, plant):
        for _ in range(100):
            plant.step(10.0, 0.0, 0.001)
        plant.reset()

        assert plant.state == PlantState()

    def test_factory_uses_parameters(self):
        params = SimulationParameters(mass=0.8, drag_coefficient=0.2, ground_contact=False)
        plant = create_vertical_plant(params)

        assert plant.mass == 0.8
        assert plant.drag_coefficient == 0.2
        assert not plant.ground_contact
