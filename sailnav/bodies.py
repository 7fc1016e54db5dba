import csv
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Iterator, Optional

import numpy as np
import pydantic
from pydantic import ConfigDict, Field

from sailnav.astrodynamics import elements_to_cartesian
from sailnav.cartesian_state import CartesianState
from sailnav.constants import KMPAU, MU_SUN
from sailnav.ephemerides_jax import keplerian_states
from sailnav.orbital_elements import OrbitalElements


class Body(pydantic.BaseModel):
    """
    Represents a celestial body the ship can encounter.

    Attributes:
        name: Name of the body (e.g., "EARTH", "LUNA")
        mu: Gravitational parameter GM (AU^3/day^2)
        radius: Physical radius of the body (AU)
        soi_radius: Sphere of influence radius (AU), 0 when the body has no SOI
        elements: Orbital elements relative to ``parent`` (the Sun when None)
        parent: Name of the body the elements are relative to
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)  # Allow OrbitalElements (NamedTuple)

    name: str
    mu: float = Field(..., ge=0.0)
    radius: float = Field(..., ge=0.0)
    soi_radius: float = Field(0.0, ge=0.0)
    elements: OrbitalElements
    parent: Optional[str] = None

    @property
    def has_soi(self) -> bool:
        return self.soi_radius > 0.0

    def get_state(self, t: float, registry: Optional["BodyRegistry"] = None) -> CartesianState:
        """
        Get the Cartesian state of the body at Julian date ``t``.

        Without a registry the state is relative to the parent body.  With a
        registry, the parent's heliocentric state is added so the result is
        heliocentric.
        """
        state = elements_to_cartesian(self.elements, t)
        if self.parent is None or registry is None:
            return state
        parent_state = registry.state_of(self.parent, t)
        return CartesianState(r=state.r + parent_state.r, v=state.v + parent_state.v)

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class BodyRegistry:
    """Read-only mapping of body name to :class:`Body`."""
    bodies: Dict[str, Body]

    def __getitem__(self, name: str) -> Body:
        return self.bodies[name]

    def __contains__(self, name: object) -> bool:
        return name in self.bodies

    def __iter__(self) -> Iterator[Body]:
        return iter(self.bodies.values())

    def __len__(self) -> int:
        return len(self.bodies)

    @property
    def names(self) -> list[str]:
        return list(self.bodies)

    def get(self, name: Optional[str]) -> Optional[Body]:
        if name is None:
            return None
        return self.bodies.get(name)

    def soi_bodies(self) -> list[Body]:
        """Heliocentric bodies that own a sphere of influence."""
        return [b for b in self.bodies.values() if b.has_soi and b.parent is None]

    def state_of(self, name: str, t: float) -> CartesianState:
        """Heliocentric state of ``name`` at Julian date ``t``, recursing through parents."""
        return self.bodies[name].get_state(t, self)

    def _with_ancestors(self, names: Iterable[str]) -> list[str]:
        ordered: list[str] = []
        for name in names:
            chain = []
            current: Optional[str] = name
            while current is not None and current not in ordered and current not in chain:
                chain.append(current)
                current = self.bodies[current].parent
            ordered.extend(reversed(chain))
        return ordered

    def states_at(self, times, names: Optional[Iterable[str]] = None) -> Dict[str, CartesianState]:
        """
        Heliocentric states of several bodies at every time in ``times``.

        All bodies (and their parents) are evaluated in one vectorised call.
        Each returned state holds arrays of shape (len(times), 3).
        """
        requested = self.names if names is None else list(names)
        if not requested:
            return {}
        needed = self._with_ancestors(requested)

        elements = np.array([list(self.bodies[n].elements[:7]) for n in needed], dtype=float)
        mu = np.array([self.bodies[n].elements.mu for n in needed], dtype=float)
        r, v = keplerian_states(elements, mu, np.asarray(times, dtype=float))
        r = np.asarray(r)
        v = np.asarray(v)

        helio: Dict[str, CartesianState] = {}
        for k, name in enumerate(needed):
            parent = self.bodies[name].parent
            if parent is None:
                helio[name] = CartesianState(r=r[k], v=v[k])
            else:
                helio[name] = CartesianState(r=r[k] + helio[parent].r, v=v[k] + helio[parent].v)
        return {name: helio[name] for name in requested}


def load_bodies_data(path: Optional[Path] = None) -> BodyRegistry:
    """
    Load planets, dwarf planets and moons from the bundled CSV file.

    Returns:
        BodyRegistry mapping body name to Body object
    """
    if path is None:
        # Hardcode data directory to be in the same directory as this file
        path = Path(__file__).parent / 'data' / 'solar_system_bodies.csv'

    rows = []
    with open(path, 'r', encoding='utf-8') as f:
        reader = csv.DictReader(f)
        for row in reader:
            rows.append(row)

    gm = {row['Name']: float(row['GM (AU3/day2)']) for row in rows}

    bodies = {}
    for row in rows:
        name = row['Name']
        parent = row['Parent'] or None
        if parent is not None and parent not in gm:
            raise ValueError(f"Body {name} references unknown parent {parent}")

        elements = OrbitalElements(
            a=float(row['Semi-Major Axis (AU)']),
            e=float(row['Eccentricity ()']),
            i=np.deg2rad(float(row['Inclination (deg)'])),
            Omega=np.deg2rad(float(row['Longitude of the Ascending Node (deg)'])),
            omega=np.deg2rad(float(row['Argument of Periapsis (deg)'])),
            M0=np.deg2rad(float(row['Mean Anomaly at Epoch (deg)'])),
            epoch=float(row['Epoch (JD)']),
            mu=gm[parent] if parent is not None else MU_SUN,
        ).validate()

        bodies[name] = Body(
            name=name,
            mu=gm[name],
            radius=float(row['Radius (km)']) / KMPAU,
            soi_radius=float(row['SOI Radius (AU)']),
            elements=elements,
            parent=parent,
        )

    return BodyRegistry(bodies=bodies)
