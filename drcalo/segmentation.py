"""Cell-ID segmentation of the dual-readout calorimeter: towers, fibres and SiPMs."""

from __future__ import annotations

import math
import struct
from dataclasses import dataclass

from drcalo.geometry import Rotation, Transform3D, Vector3
from drcalo.towers import BarrelParam, EndcapParam, TowerParam

_MASK64 = (1 << 64) - 1
_MASK32 = (1 << 32) - 1


def _to_float32(value: float) -> float:
    return struct.unpack("f", struct.pack("f", value))[0]


def _to_int32(value: int) -> int:
    value &= _MASK32
    return value - (1 << 32) if value >= 1 << 31 else value


def _half(n: int) -> int:
    """Integer half, truncated toward zero."""
    return int(n / 2) if n < 0 else n // 2


@dataclass(frozen=True)
class _Field:
    name: str
    offset: int
    width: int
    signed: bool

    @property
    def mask(self) -> int:
        return ((1 << self.width) - 1) << self.offset

    @property
    def min_value(self) -> int:
        return -(1 << (self.width - 1)) if self.signed else 0

    @property
    def max_value(self) -> int:
        return (1 << (self.width - 1)) - 1 if self.signed else (1 << self.width) - 1


class BitFieldCoder:
    """Packs named integer fields into a 64-bit identifier.

    The description is a comma separated list of ``name:width`` or
    ``name:offset:width`` entries; a negative width marks a signed field.
    """

    def __init__(self, description: str) -> None:
        self.description = description
        self._fields: dict[str, _Field] = {}
        used = 0
        offset = 0
        for token in description.split(","):
            token = token.strip()
            if not token:
                continue
            parts = [part.strip() for part in token.split(":")]
            if len(parts) == 2:
                name, width_text = parts
            elif len(parts) == 3:
                name, offset_text, width_text = parts
                offset = int(offset_text)
            else:
                raise ValueError(f"invalid field description: {token!r}")
            width = int(width_text)
            signed = width < 0
            width = abs(width)
            if width == 0 or offset < 0 or offset + width > 64:
                raise ValueError(f"field {name!r} does not fit into 64 bits")
            if name in self._fields:
                raise ValueError(f"duplicate field {name!r}")
            field = _Field(name, offset, width, signed)
            if used & field.mask:
                raise ValueError(f"field {name!r} overlaps another field")
            used |= field.mask
            self._fields[name] = field
            offset += width

    @property
    def fields(self) -> list[str]:
        """Field names in the order they were declared."""
        return list(self._fields)

    def _field(self, name: str) -> _Field:
        try:
            return self._fields[name]
        except KeyError:
            raise KeyError(f"unknown field {name!r}") from None

    def get(self, value: int, name: str) -> int:
        """Value of field ``name`` in the identifier ``value``."""
        field = self._field(name)
        raw = (value & field.mask) >> field.offset
        if field.signed and raw & (1 << (field.width - 1)):
            raw -= 1 << field.width
        return raw

    def set(self, value: int, name: str, field_value: int) -> int:
        """Return ``value`` with field ``name`` replaced by ``field_value``."""
        field = self._field(name)
        if not field.min_value <= field_value <= field.max_value:
            raise ValueError(
                f"value {field_value} out of range for field {name!r} "
                f"({field.min_value}..{field.max_value})"
            )
        value &= _MASK64 & ~field.mask
        return value | ((field_value << field.offset) & field.mask)

    def __str__(self) -> str:
        return self.description


class GridDRcalo:
    """Segmentation following the tower / fibre / SiPM hierarchy."""

    type_name = "GridDRcalo"
    description = (
        "DRcalo segmentation based on the tower / (Cerenkov or Scintillation) "
        "fiber / SiPM hierarchy"
    )

    def __init__(
        self,
        encoding: str | BitFieldCoder,
        grid_size: float = 0.0,
        sipm_size: float = 0.0,
    ) -> None:
        self.decoder = encoding if isinstance(encoding, BitFieldCoder) else BitFieldCoder(encoding)
        self.grid_size = grid_size
        self.sipm_size = sipm_size
        self.eta_field = "eta"
        self.phi_field = "phi"
        self.x_field = "x"
        self.y_field = "y"
        self.cerenkov_field = "c"
        self.module_field = "module"
        self.param_barrel = BarrelParam()
        self.param_endcap = EndcapParam()

    def _param_for(self, num_eta: int) -> TowerParam:
        barrel_towers = self.param_barrel.tot_tower_num
        if self.param_endcap.unsigned_tower_no(num_eta) >= barrel_towers:
            param: TowerParam = self.param_endcap
        else:
            param = self.param_barrel
        if not param.finalized:
            raise RuntimeError(
                "GridDRcalo position should not be called while building detector geometry!"
            )
        param.set_delta_theta_by_tower_no(num_eta, barrel_towers)
        param.set_theta_of_center_by_tower_no(num_eta, barrel_towers)
        param.set_rhs_by_tower_no(num_eta)
        param.init()
        return param

    def position(self, cell_id: int) -> Vector3:
        """Global position of a tower's SiPM layer, or of one SiPM on it."""
        param = self._param_for(self.num_eta(cell_id))
        transform_a = param.sipm_transform(self.num_phi(cell_id))
        local = self.local_position(cell_id) if self.is_sipm(cell_id) else Vector3()
        transform_b = Transform3D(Rotation.zyx(math.pi, 0.0, 0.0), local)
        return (transform_a * transform_b).translation

    def tower_position(self, num_eta: int, num_phi: int) -> Vector3:
        """Centre of the tower at the given eta and phi numbers."""
        return self._param_for(num_eta).tower_pos(num_phi)

    def tower_position_from_cell_id(self, cell_id: int) -> Vector3:
        """Centre of the tower that holds ``cell_id``."""
        return self.tower_position(self.num_eta(cell_id), self.num_phi(cell_id))

    def tower_height_from_cell_id(self, cell_id: int) -> float:
        """Height of the tower that holds ``cell_id``."""
        return self._param_for(self.num_eta(cell_id)).tower_h

    def local_position(self, cell_id: int) -> Vector3:
        """Position of a SiPM within its tower's SiPM layer."""
        return self.local_position_grid(
            self.num_x(cell_id), self.num_y(cell_id), self.x(cell_id), self.y(cell_id)
        )

    def local_position_grid(self, numx: int, numy: int, x: int, y: int) -> Vector3:
        """Position of grid point ``(x, y)`` on a ``numx`` by ``numy`` grid centred at the origin."""
        grid = self.grid_size
        pt_x = -grid * _half(numx) + x * grid + (grid / 2.0 if numx % 2 == 0 else 0.0)
        pt_y = -grid * _half(numy) + y * grid + (grid / 2.0 if numy % 2 == 0 else 0.0)
        return Vector3(_to_float32(pt_x), _to_float32(pt_y), 0.0)

    def cell_id(self, local: Vector3, global_: Vector3, volume_id: int) -> int:
        """Cell identifier of the SiPM hit at ``local`` in the tower ``volume_id``."""
        numx = self.num_x(volume_id)
        numy = self.num_y(volume_id)
        grid = self.grid_size
        x = math.floor((local.x + (0.0 if numx % 2 == 0 else grid / 2.0)) / grid) + _half(numx)
        y = math.floor((local.y + (0.0 if numy % 2 == 0 else grid / 2.0)) / grid) + _half(numy)
        return self.set_cell_id(self.num_eta(volume_id), self.num_phi(volume_id), x, y)

    def set_volume_id(self, num_eta: int, num_phi: int) -> int:
        """Identifier of a whole tower."""
        vid = self.decoder.set(0, self.eta_field, num_eta)
        vid = self.decoder.set(vid, self.phi_field, num_phi)
        return self.decoder.set(vid, self.module_field, 0)

    def set_cell_id(self, num_eta: int, num_phi: int, x: int, y: int) -> int:
        """Identifier of one fibre or SiPM in a tower."""
        cid = self.decoder.set(0, self.eta_field, num_eta)
        cid = self.decoder.set(cid, self.phi_field, num_phi)
        cid = self.decoder.set(cid, self.x_field, x)
        cid = self.decoder.set(cid, self.y_field, y)
        cid = self.decoder.set(cid, self.module_field, 1)
        return self.decoder.set(cid, self.cerenkov_field, int(self.is_cerenkov_grid(x, y)))

    def num_eta(self, cell_id: int) -> int:
        return self.decoder.get(cell_id, self.eta_field)

    def num_phi(self, cell_id: int) -> int:
        return self.decoder.get(cell_id, self.phi_field)

    def num_x(self, cell_id: int) -> int:
        """Number of SiPMs across the tower top in the phi direction."""
        param = self._param_for(self.num_eta(cell_id))
        return math.floor((param.tl2 * 2.0 - self.sipm_size) / self.grid_size) + 1

    def num_y(self, cell_id: int) -> int:
        """Number of SiPMs across the tower top in the eta direction."""
        param = self._param_for(self.num_eta(cell_id))
        return math.floor((param.h2 * 2.0 - self.sipm_size) / self.grid_size) + 1

    def x(self, cell_id: int) -> int:
        return self.decoder.get(cell_id, self.x_field)

    def y(self, cell_id: int) -> int:
        return self.decoder.get(cell_id, self.y_field)

    def is_cerenkov(self, cell_id: int) -> bool:
        return bool(self.decoder.get(cell_id, self.cerenkov_field))

    def is_cerenkov_grid(self, col: int, row: int) -> bool:
        """Cerenkov and scintillation fibres alternate in a checkerboard."""
        is_ceren = False
        if col > 0 and col % 2 == 1:
            is_ceren = not is_ceren
        if row > 0 and row % 2 == 1:
            is_ceren = not is_ceren
        return is_ceren

    def is_tower(self, cell_id: int) -> bool:
        return self.decoder.get(cell_id, self.module_field) == 0

    def is_sipm(self, cell_id: int) -> bool:
        return self.decoder.get(cell_id, self.module_field) == 1

    def first_32_bits(self, cell_id: int) -> int:
        """Lower half of the identifier as a signed 32-bit number."""
        return _to_int32(cell_id)

    def last_32_bits(self, cell_id: int) -> int:
        """Upper half of the identifier as a signed 32-bit number."""
        return _to_int32((cell_id & _MASK64) >> 32)

    def first_32_to_64(self, id32: int) -> int:
        """Widen a lower-half identifier back to 64 bits."""
        return id32 & _MASK64

    def last_32_to_64(self, id32: int) -> int:
        """Move an upper-half identifier back into the high 32 bits."""
        return ((id32 & _MASK64) << 32) & _MASK64