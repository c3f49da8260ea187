"""Event generation helpers: particle guns, an eta filter and the beam magnetic field."""

from __future__ import annotations

import math
import random
import threading
from dataclasses import dataclass, field

from drcalo.geometry import Rotation, Vector3

MILLIMETER = 1.0
TESLA = 0.001

_TINY = 1e-20
_NEUTRINOS = frozenset({12, 14, 16})


@dataclass
class Particle:
    """One entry of a generated event record."""

    id: int
    status: int
    px: float
    py: float
    pz: float
    e: float
    m: float = 0.0
    col: int = 0
    acol: int = 0
    scale: float = 0.0

    @property
    def id_abs(self) -> int:
        return abs(self.id)

    @property
    def is_final(self) -> bool:
        return self.status > 0

    @property
    def pt(self) -> float:
        return math.hypot(self.px, self.py)

    @property
    def p_abs(self) -> float:
        return math.sqrt(self.px * self.px + self.py * self.py + self.pz * self.pz)

    def eta(self) -> float:
        """Pseudorapidity."""
        value = math.log((self.p_abs + abs(self.pz)) / max(_TINY, self.pt))
        return value if self.pz > 0 else -value


@dataclass
class EtaFilter:
    """Rejects events that put too much energy beyond ``eta_max``."""

    on: bool
    eta_max: float
    thres: float

    def accept(self, particles, e_cm: float) -> bool:
        """True unless forward energy exceeds ``thres`` times the collision energy."""
        if not self.on:
            return True
        abs_thres = self.thres * e_cm
        total = 0.0
        for particle in particles:
            if not particle.is_final or particle.id_abs in _NEUTRINOS:
                continue
            if abs(particle.eta()) > self.eta_max:
                total += particle.e
            if abs_thres < total:
                return False
        return True


@dataclass
class ParticleGun:
    """Shoots single resonances or back-to-back parton pairs at fixed angles."""

    id: int
    energy: float
    theta: float
    phi: float = 0.0

    def _momentum(self, mass: float, at_rest: bool) -> tuple[float, float, float]:
        pp = math.sqrt(max(0.0, self.energy * self.energy - mass * mass))
        if at_rest:
            self.energy = mass
            pp = 0.0
        s_the = math.sin(self.theta)
        return (
            pp * s_the * math.cos(self.phi),
            pp * s_the * math.sin(self.phi),
            pp * math.cos(self.theta),
        )

    def fill_resonance(self, mass: float, at_rest: bool = False) -> list[Particle]:
        """A single colour-singlet particle of the given mass."""
        px, py, pz = self._momentum(mass, at_rest)
        return [Particle(self.id, 1, px, py, pz, self.energy, mass)]

    def fill_parton(self, mass: float, at_rest: bool = False, scale: float = 20.0) -> list[Particle]:
        """A colour-connected parton pair, back to back."""
        px, py, pz = self._momentum(mass, at_rest)
        if self.id == 21:
            col1, acol1, col2, acol2, aid = 101, 102, 102, 101, self.id
        else:
            col1, acol1, col2, acol2, aid = 101, 0, 0, 101, -self.id
        return [
            Particle(self.id, 23, px, py, pz, self.energy, mass, col1, acol1, scale),
            Particle(aid, 23, -px, -py, -pz, self.energy, mass, col2, acol2, scale),
        ]


@dataclass(frozen=True)
class GunShot:
    """Start point, direction and sequence number of one primary."""

    event_index: int
    position: Vector3
    direction: Vector3


@dataclass
class BeamGun:
    """Test-beam style primary generator with a smeared square spot."""

    theta: float = -0.01111
    phi: float = 0.0
    rand_x: float = 10.0 * MILLIMETER
    rand_y: float = 10.0 * MILLIMETER
    y0: float = 0.0
    z0: float = 0.0
    use_calib: bool = False
    num_events: int = field(default=0, init=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def _rotate(self, vector: Vector3) -> Vector3:
        return Rotation.about_z(self.phi).apply(Rotation.zyx(0.0, self.theta, 0.0).apply(vector))

    def direction(self) -> Vector3:
        """Unit beam direction: along x, tilted by theta about y and phi about z."""
        polar = 2.0 * math.atan(math.exp(-0.0))
        base = Vector3(math.sin(polar), 0.0, math.cos(polar))
        return self._rotate(base)

    def origin(self, rng: random.Random) -> Vector3:
        """Smeared start point in the plane x = 0."""
        y = (rng.random() - 0.5) * self.rand_x + self.y0
        z = (rng.random() - 0.5) * self.rand_y + self.z0
        return Vector3(0.0, y, z)

    def calibration_origin(self, rng: random.Random) -> Vector3:
        """Start point shifted so the beam aims at the front face of the tower."""
        y = (rng.random() - 0.5) * self.rand_x
        z = (rng.random() - 0.5) * self.rand_y
        gun = self._rotate(Vector3(0.0, y, z))

        angle = -self.theta - 1.5 * math.pi / 180.0
        if -self.theta < 0.98:
            x_front = 180.0
            z_front = 180.0 * math.tan(angle)
        else:
            ref_len = 180.0 / math.cos(0.95077)
            x_front = ref_len * math.cos(angle)
            z_front = ref_len * math.sin(angle)
        y_front = 0.0

        x_rel = x_front
        y_rel = y_front - self.y0 / 10.0
        z_rel = z_front - self.z0 / 10.0
        norm = math.sqrt(x_rel * x_rel + y_rel * y_rel + z_rel * z_rel)
        ratio = 1.0 - 180.0 / norm

        return Vector3(
            gun.x + 10.0 * ratio * x_rel,
            gun.y + self.y0 + 10.0 * ratio * y_rel,
            gun.z + self.z0 + 10.0 * ratio * z_rel,
        )

    def generate(self, rng: random.Random | None = None) -> GunShot:
        """Produce the next primary and give it the next event number."""
        rng = rng or random.Random()
        position = self.calibration_origin(rng) if self.use_calib else self.origin(rng)
        direction = self.direction()
        with self._lock:
            index = self.num_events
            self.num_events += 1
        return GunShot(index, position, direction)


@dataclass
class MagneticField:
    """Uniform field along y."""

    by: float = 0.5 * TESLA

    def field_value(self, point=None) -> tuple[float, float, float]:
        """Field components at ``point``; the field is the same everywhere."""
        return (0.0, self.by, 0.0)