"""Small 3D vector, rotation and rigid-transform types used by the tower geometry."""

from __future__ import annotations

import math
from dataclasses import dataclass, field

_IDENTITY = ((1.0, 0.0, 0.0), (0.0, 1.0, 0.0), (0.0, 0.0, 1.0))


@dataclass(frozen=True)
class Vector3:
    """A point or direction in three dimensions."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def mag(self) -> float:
        """Euclidean length of the vector."""
        return math.sqrt(self.x * self.x + self.y * self.y + self.z * self.z)

    def __add__(self, other: Vector3) -> Vector3:
        if not isinstance(other, Vector3):
            return NotImplemented
        return Vector3(self.x + other.x, self.y + other.y, self.z + other.z)

    def scaled(self, factor: float) -> Vector3:
        """Return the vector multiplied by ``factor``."""
        return Vector3(self.x * factor, self.y * factor, self.z * factor)

    def __iter__(self):
        yield self.x
        yield self.y
        yield self.z


@dataclass(frozen=True)
class Rotation:
    """A 3x3 rotation matrix, stored row by row."""

    matrix: tuple[tuple[float, float, float], ...] = _IDENTITY

    @classmethod
    def zyx(cls, phi: float, theta: float, psi: float) -> Rotation:
        """Rotation by ``phi`` about Z, then ``theta`` about the new Y, then ``psi`` about the new X."""
        c1, s1 = math.cos(phi), math.sin(phi)
        c2, s2 = math.cos(theta), math.sin(theta)
        c3, s3 = math.cos(psi), math.sin(psi)
        return cls(
            (
                (c1 * c2, c1 * s2 * s3 - s1 * c3, c1 * s2 * c3 + s1 * s3),
                (s1 * c2, s1 * s2 * s3 + c1 * c3, s1 * s2 * c3 - c1 * s3),
                (-s2, c2 * s3, c2 * c3),
            )
        )

    @classmethod
    def about_z(cls, angle: float) -> Rotation:
        """Rotation by ``angle`` about the Z axis."""
        c, s = math.cos(angle), math.sin(angle)
        return cls(((c, -s, 0.0), (s, c, 0.0), (0.0, 0.0, 1.0)))

    def __mul__(self, other):
        if isinstance(other, Rotation):
            columns = list(zip(*other.matrix))
            return Rotation(
                tuple(
                    tuple(sum(a * b for a, b in zip(row, col)) for col in columns)
                    for row in self.matrix
                )
            )
        if isinstance(other, Vector3):
            return self.apply(other)
        return NotImplemented

    def apply(self, vector: Vector3) -> Vector3:
        """Rotate ``vector``."""
        return Vector3(*(sum(a * b for a, b in zip(row, vector)) for row in self.matrix))


@dataclass(frozen=True)
class Transform3D:
    """A rotation followed by a translation."""

    rotation: Rotation = field(default_factory=Rotation)
    translation: Vector3 = field(default_factory=Vector3)

    def __mul__(self, other):
        if isinstance(other, Transform3D):
            return Transform3D(
                self.rotation * other.rotation,
                self.rotation.apply(other.translation) + self.translation,
            )
        if isinstance(other, Vector3):
            return self.apply(other)
        return NotImplemented

    def apply(self, point: Vector3) -> Vector3:
        """Map ``point`` through the transform."""
        return self.rotation.apply(point) + self.translation