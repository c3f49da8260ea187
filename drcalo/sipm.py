"""SiPM hits and the sensitive detector that collects optical photons on them."""

from __future__ import annotations

import struct
from collections import Counter
from dataclasses import dataclass, field

from drcalo.geometry import Vector3
from drcalo.segmentation import GridDRcalo

# Internal units: millimetre, nanosecond, MeV.
NANOMETER = 1.0e-6
NANOSECOND = 1.0
MM_TO_CM = 0.1

_H_PLANCK = 6.62606896e-34 * (1.0e-6 / 1.602176487e-19) * 1.0e9  # MeV * ns
_C_LIGHT = 299.792458  # mm / ns

UNBOUNDED = 99999.0

BinRange = tuple[float, float]


def _f32(value: float) -> float:
    return struct.unpack("f", struct.pack("f", value))[0]


def wavelength_to_energy(wavelength: float) -> float:
    """Photon energy in MeV for a wavelength given in millimetres."""
    return _H_PLANCK * _C_LIGHT / wavelength


def _first_bin(count: int, reached) -> int:
    """Index of the first edge in ``0..count`` that ``reached`` accepts, else ``count + 1``."""
    return next((i for i in range(count + 1) if reached(i)), count + 1)


@dataclass(eq=False)
class SiPMHit:
    """Photons counted by one SiPM, with wavelength and arrival-time histograms."""

    wav_bin: int
    time_bin: int
    sipm_num: int = 0
    photons: int = 0
    wavelength_spectrum: Counter = field(default_factory=Counter)
    time_struct: Counter = field(default_factory=Counter)

    def count_photon(self) -> None:
        self.photons += 1

    def count_wavelength(self, bin_range: BinRange) -> None:
        """Add one photon to the wavelength bin ``bin_range``."""
        self.wavelength_spectrum[bin_range] += 1

    def count_time(self, bin_range: BinRange) -> None:
        """Add one photon to the time bin ``bin_range``."""
        self.time_struct[bin_range] += 1

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SiPMHit):
            return NotImplemented
        return self.sipm_num == other.sipm_num


class SiPMSensitiveDetector:
    """Turns optical photons reaching a SiPM wafer into per-SiPM hits."""

    def __init__(self, name: str, readout_name: str, segmentation: GridDRcalo) -> None:
        self.name = name
        self.readout_name = readout_name
        self.segmentation = segmentation
        self.wav_bin = 120
        self.time_bin = 600
        self.wavlen_start = _f32(900.0)
        self.wavlen_end = _f32(300.0)
        self.time_start = _f32(10.0)
        self.time_end = _f32(70.0)
        self.wavlen_step = _f32((self.wavlen_start - self.wavlen_end) / _f32(float(self.wav_bin)))
        self.time_step = _f32((self.time_end - self.time_start) / _f32(float(self.time_bin)))
        self.hits: list[SiPMHit] | None = None
        self._by_cell: dict[int, SiPMHit] = {}

    def initialize(self) -> list[SiPMHit]:
        """Start a new event with an empty hits collection and return it."""
        self.hits = []
        self._by_cell = {}
        return self.hits

    def _wav_edge(self, i: int) -> float:
        return _f32(self.wavlen_start - _f32(_f32(float(i)) * self.wavlen_step))

    def _time_edge(self, i: int) -> float:
        return _f32(self.time_start + _f32(_f32(float(i)) * self.time_step))

    def wavelength_range(self, energy: float) -> BinRange:
        """Wavelength bin, in nm, of a photon of the given energy in MeV."""
        i = _first_bin(
            self.wav_bin,
            lambda k: energy < wavelength_to_energy(self._wav_edge(k) * NANOMETER),
        )
        if i == 0:
            return (self.wavlen_start, UNBOUNDED)
        if i == self.wav_bin + 1:
            return (0.0, self.wavlen_end)
        return (self._wav_edge(i), self._wav_edge(i - 1))

    def time_range(self, time: float) -> BinRange:
        """Arrival-time bin, in ns, of a photon arriving at ``time``."""
        i = _first_bin(self.time_bin, lambda k: time < self._time_edge(k) * NANOSECOND)
        if i == 0:
            return (0.0, self.time_start)
        if i == self.time_bin + 1:
            return (self.time_end, UNBOUNDED)
        return (self._time_edge(i - 1), self._time_edge(i))

    def process_hit(
        self,
        local: Vector3,
        global_: Vector3,
        volume_id: int,
        time: float,
        energy: float,
        optical: bool,
    ) -> bool:
        """Record a photon arriving at ``local`` (mm) in the wafer ``volume_id``.

        Returns False for anything that is not an optical photon.
        """
        if not optical:
            return False
        if self.hits is None:
            raise RuntimeError("sensitive detector used before initialize()")

        cell = self.segmentation.cell_id(
            local.scaled(MM_TO_CM), global_.scaled(MM_TO_CM), volume_id
        )
        hit = self._by_cell.get(cell)
        if hit is None:
            hit = SiPMHit(self.wav_bin, self.time_bin, sipm_num=cell)
            self._by_cell[cell] = hit
            self.hits.append(hit)

        hit.count_photon()
        hit.count_wavelength(self.wavelength_range(energy))
        hit.count_time(self.time_range(time))
        return True