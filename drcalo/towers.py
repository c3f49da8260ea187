"""Parameterisation of projective calorimeter towers in the barrel and the endcap."""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from drcalo.geometry import Rotation, Transform3D, Vector3


def _lookup(values: list[float], index: int) -> float:
    if not 0 <= index < len(values):
        raise IndexError(f"tower index {index} out of range (0..{len(values) - 1})")
    return values[index]


@dataclass
class TowerParam:
    """Shape and placement of one tower ring, shared by barrel and endcap."""

    is_rhs: bool = False
    inner_x: float = 0.0
    tower_h: float = 0.0
    num_z_rot: int = 0
    sipm_height: float = 0.0
    delta_theta: float = 0.0
    theta_of_center: float = 0.0
    tot_tower_num: int = 0
    phi_z_rot: float = field(default=0.0, init=False)
    current_inner_r: float = field(default=0.0, init=False)
    current_center: Vector3 = field(default_factory=Vector3, init=False)
    v1: Vector3 = field(default_factory=Vector3, init=False)
    v2: Vector3 = field(default_factory=Vector3, init=False)
    v3: Vector3 = field(default_factory=Vector3, init=False)
    v4: Vector3 = field(default_factory=Vector3, init=False)
    v2_sipm: Vector3 = field(default_factory=Vector3, init=False)
    v4_sipm: Vector3 = field(default_factory=Vector3, init=False)
    current_inner_half: float = field(default=0.0, init=False)
    current_outer_half: float = field(default=0.0, init=False)
    current_outer_half_sipm: float = field(default=0.0, init=False)
    delta_theta_list: list[float] = field(default_factory=list, init=False)
    theta_of_center_list: list[float] = field(default_factory=list, init=False)
    filled: bool = field(default=False, init=False)
    finalized: bool = field(default=False, init=False)

    def __post_init__(self) -> None:
        if self.num_z_rot:
            self.set_num_z_rot(self.num_z_rot)

    def set_num_z_rot(self, num: int) -> None:
        """Set the number of towers around the beam axis."""
        self.num_z_rot = num
        self.phi_z_rot = 2 * math.pi / num

    @property
    def _half_phi_tan(self) -> float:
        return math.tan(self.phi_z_rot / 2.0)

    @property
    def h1(self) -> float:
        return self.current_inner_half

    @property
    def bl1(self) -> float:
        return self.v3.x * self._half_phi_tan

    @property
    def tl1(self) -> float:
        return self.v1.x * self._half_phi_tan

    @property
    def h2(self) -> float:
        return self.current_outer_half

    @property
    def bl2(self) -> float:
        return self.v4.x * self._half_phi_tan

    @property
    def tl2(self) -> float:
        return self.v2.x * self._half_phi_tan

    @property
    def h2_sipm(self) -> float:
        return self.current_outer_half_sipm

    @property
    def bl2_sipm(self) -> float:
        return self.v4_sipm.x * self._half_phi_tan

    @property
    def tl2_sipm(self) -> float:
        return self.v2_sipm.x * self._half_phi_tan

    def signed_tower_no(self, unsigned_tower_no: int) -> int:
        """Tower number carrying the side: non-negative on the right, negative on the left."""
        return unsigned_tower_no if self.is_rhs else -unsigned_tower_no - 1

    def unsigned_tower_no(self, signed_tower_no: int) -> int:
        """Tower number without the side."""
        return signed_tower_no if signed_tower_no >= 0 else -signed_tower_no - 1

    def set_rhs_by_tower_no(self, signed_tower_no: int) -> None:
        self.is_rhs = signed_tower_no >= 0

    def set_delta_theta_by_tower_no(self, signed_tower_no: int, be_trans: int) -> None:
        """Restore the angular width of a recorded tower; a no-op for the base class."""

    def set_theta_of_center_by_tower_no(self, signed_tower_no: int, be_trans: int) -> None:
        """Restore the centre angle of a recorded tower; a no-op for the base class."""

    def init(self) -> None:
        """Recompute the tower shape; the base class has no shape of its own."""

    def mark_filled(self) -> None:
        self.filled = True

    def mark_finalized(self) -> None:
        self.finalized = True

    def _build_shape(self) -> None:
        theta = self.theta_of_center
        cos_t, sin_t = math.cos(theta), math.sin(theta)
        tan_half = math.tan(self.delta_theta / 2.0)
        inner_r = self.current_inner_r
        outer_r = inner_r + self.tower_h
        sipm_r = outer_r + self.sipm_height

        trns_length = self.tower_h / 2.0 + inner_r
        self.current_center = Vector3(cos_t * trns_length, 0.0, sin_t * trns_length)

        self.current_inner_half = inner_r * tan_half
        self.current_outer_half = outer_r * tan_half
        self.current_outer_half_sipm = sipm_r * tan_half

        def upper(r: float) -> Vector3:
            return Vector3(cos_t * r + sin_t * r * tan_half, 0.0, sin_t * r - cos_t * r * tan_half)

        def lower(r: float) -> Vector3:
            return Vector3(cos_t * r - sin_t * r * tan_half, 0.0, sin_t * r + cos_t * r * tan_half)

        self.v1 = upper(inner_r)
        self.v2 = upper(outer_r)
        self.v3 = lower(inner_r)
        self.v4 = lower(outer_r)
        self.v2_sipm = upper(sipm_r)
        self.v4_sipm = lower(sipm_r)

        if not self.filled:
            self.delta_theta_list.append(self.delta_theta)
            self.theta_of_center_list.append(self.theta_of_center)

    def _require_filled(self, part: str) -> None:
        if not self.filled:
            raise RuntimeError(
                f"Attempt to set by tower num while {part} parameter is not filled!"
            )

    def rotation(self, num_phi: int) -> Rotation:
        """Orientation of the tower at position ``num_phi`` around the beam axis."""
        x_rot = -self.theta_of_center if self.is_rhs else self.theta_of_center
        z_rot = -math.pi / 2.0 if self.is_rhs else math.pi / 2.0
        rot = Rotation.zyx(z_rot, math.pi / 2.0 + x_rot, 0.0)
        return Rotation.about_z(num_phi * self.phi_z_rot) * rot

    def _placed(self, num_phi: int, radial_factor: float) -> Vector3:
        angle = num_phi * self.phi_z_rot
        c = self.current_center
        z_abs = c.z * radial_factor
        return Vector3(
            math.cos(angle) * c.x * radial_factor,
            math.sin(angle) * c.x * radial_factor,
            z_abs if self.is_rhs else -z_abs,
        )

    def tower_pos(self, num_phi: int) -> Vector3:
        return self._placed(num_phi, 1.0)

    def assemble_pos(self, num_phi: int) -> Vector3:
        mag = self.current_center.mag()
        return self._placed(num_phi, (mag + self.sipm_height / 2.0) / mag)

    def sipm_layer_pos(self, num_phi: int) -> Vector3:
        mag = self.current_center.mag()
        return self._placed(
            num_phi, (mag + self.tower_h / 2.0 + self.sipm_height / 2.0) / mag
        )

    def transform(self, num_phi: int) -> Transform3D:
        return Transform3D(self.rotation(num_phi), self.tower_pos(num_phi))

    def assemble_transform(self, num_phi: int) -> Transform3D:
        return Transform3D(self.rotation(num_phi), self.assemble_pos(num_phi))

    def sipm_transform(self, num_phi: int) -> Transform3D:
        return Transform3D(self.rotation(num_phi), self.sipm_layer_pos(num_phi))


@dataclass
class BarrelParam(TowerParam):
    """Towers whose inner face sits at a fixed transverse distance."""

    def init(self) -> None:
        self.current_inner_r = self.inner_x / math.cos(self.theta_of_center)
        self._build_shape()

    def set_delta_theta_by_tower_no(self, signed_tower_no: int, be_trans: int = 0) -> None:
        self._require_filled("barrel")
        self.delta_theta = _lookup(self.delta_theta_list, self.unsigned_tower_no(signed_tower_no))

    def set_theta_of_center_by_tower_no(self, signed_tower_no: int, be_trans: int = 0) -> None:
        self._require_filled("barrel")
        self.theta_of_center = _lookup(
            self.theta_of_center_list, self.unsigned_tower_no(signed_tower_no)
        )


@dataclass
class EndcapParam(TowerParam):
    """Towers whose inner face sits at a fixed distance along the beam."""

    def init(self) -> None:
        self.current_inner_r = self.inner_x / math.sin(self.theta_of_center)
        self._build_shape()

    def _index(self, signed_tower_no: int, be_trans: int) -> int:
        return self.unsigned_tower_no(signed_tower_no) - self.unsigned_tower_no(be_trans)

    def set_delta_theta_by_tower_no(self, signed_tower_no: int, be_trans: int) -> None:
        self._require_filled("endcap")
        self.delta_theta = _lookup(self.delta_theta_list, self._index(signed_tower_no, be_trans))

    def set_theta_of_center_by_tower_no(self, signed_tower_no: int, be_trans: int) -> None:
        self._require_filled("endcap")
        self.theta_of_center = _lookup(
            self.theta_of_center_list, self._index(signed_tower_no, be_trans)
        )