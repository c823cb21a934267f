import numpy as np
from dataclasses import dataclass
from typing import Optional, TYPE_CHECKING

from altitude_hold_twin.core.exceptions import InvalidInput, NumericOverflow

if TYPE_CHECKING:
    from altitude_hold_twin.core.parameters import SimulationParameters


@dataclass(frozen=True)
class PlantState:
    """Vertical state of the vehicle."""
    altitude: float = 0.0      # m
    velocity: float = 0.0      # m/s
    acceleration: float = 0.0  # m/s^2, from the last step


def plant_step(
    thrust_force: float,
    disturbance: float,
    dt: float,
    state: PlantState,
    mass: float,
    gravity: float,
    drag_coefficient: float,
    ground_contact: bool = False,
    time: Optional[float] = None
) -> PlantState:
    """
    Integrate the vertical point-mass dynamics over one step.

    Force balance:
        m * a = F_thrust - m * g - b * v + F_dist

    Velocity is updated first and the new velocity advances the altitude.

    Args:
        thrust_force (float): Actuator thrust [N]
        disturbance (float): External disturbance force [N]
        dt (float): Time step [s]
        state (PlantState): State before the step
        mass (float): Vehicle mass [kg]
        gravity (float): Gravitational acceleration [m/s^2]
        drag_coefficient (float): Linear drag coefficient [N·s/m]
        ground_contact (bool): Clamp altitude at zero (vehicle on the pad)
        time (float, optional): Simulation time, reported on overflow

    Returns:
        PlantState: State after the step

    Raises:
        NumericOverflow: If the integrated state is not finite
    """
    if not dt > 0.0:
        raise InvalidInput(f"Time step must be positive, got {dt}")

    with np.errstate(over='ignore', invalid='ignore', divide='ignore'):
        net_force = (np.float64(thrust_force) - mass * gravity
                     - drag_coefficient * state.velocity + disturbance)
        acceleration = net_force / mass
        velocity = state.velocity + acceleration * dt
        altitude = state.altitude + velocity * dt

    if not (np.isfinite(acceleration) and np.isfinite(velocity) and np.isfinite(altitude)):
        where = f" at t={time:.6f} s" if time is not None else ""
        raise NumericOverflow(
            f"Plant state diverged{where}: altitude={altitude}, velocity={velocity}",
            time=time if time is not None else float('nan')
        )

    if ground_contact and altitude < 0.0:
        altitude = 0.0
        velocity = max(velocity, 0.0)

    return PlantState(altitude=float(altitude), velocity=float(velocity),
                      acceleration=float(acceleration))


class VerticalPlantModel:
    """
    Single-axis vertical dynamics of a thrust-driven vehicle.

    System Description:
    - Point mass moving along the vertical axis, altitude positive up.
    - Thrust acts upward, gravity downward, linear drag opposes velocity.
    - Disturbances enter as an additive force (wind gusts are converted to
      force upstream, see the disturbance models).
    - Optional ground contact: the vehicle cannot sink below h = 0, which
      keeps it resting on the pad while the thrust command is zero.

    Equation of motion:
    m * h_dd = F_thrust - m * g - b * h_d + F_dist
    """

    def __init__(self,
                 mass: float = 1.0,
                 gravity: float = 9.81,
                 drag_coefficient: float = 0.1,
                 ground_contact: bool = True):
        """
        Initialize the vertical plant with physical parameters.

        Args:
            mass (float): Vehicle mass [kg]
            gravity (float): Gravitational acceleration [m/s^2]. Default 9.81.
            drag_coefficient (float): Linear drag coefficient [N·s/m]
            ground_contact (bool): Clamp altitude at zero
        """
        self.mass = mass
        self.gravity = gravity
        self.drag_coefficient = drag_coefficient
        self.ground_contact = ground_contact

        self.state = PlantState()

    @property
    def altitude(self) -> float:
        return self.state.altitude

    @property
    def velocity(self) -> float:
        return self.state.velocity

    def hover_thrust(self) -> float:
        """Thrust [N] that balances gravity at zero velocity."""
        return self.mass * self.gravity

    def step(self, thrust_force: float, disturbance: float, dt: float,
             time: Optional[float] = None) -> PlantState:
        """
        Advance the plant by one time step.

        Args:
            thrust_force (float): Actuator thrust [N]
            disturbance (float): Disturbance force [N]
            dt (float): Time step [s]
            time (float, optional): Simulation time for diagnostics

        Returns:
            PlantState: New plant state
        """
        self.state = plant_step(
            thrust_force, disturbance, dt, self.state,
            self.mass, self.gravity, self.drag_coefficient,
            ground_contact=self.ground_contact, time=time
        )
        return self.state

    def reset(self) -> None:
        """Return the vehicle to rest at zero altitude."""
        self.state = PlantState()

    def get_state(self) -> dict:
        return {
            'altitude': self.state.altitude,
            'velocity': self.state.velocity,
            'acceleration': self.state.acceleration,
        }


def create_vertical_plant(params: 'SimulationParameters') -> VerticalPlantModel:
    """Build the vertical plant described by a parameter set."""
    return VerticalPlantModel(
        mass=params.mass,
        gravity=params.gravity,
        drag_coefficient=params.drag_coefficient,
        ground_contact=params.ground_contact,
    )
