# drcalo

Pure-Python building blocks for describing a dual-readout fibre
calorimeter: the projective tower geometry of its barrel and endcaps, the
64-bit cell-ID segmentation of towers, fibres and SiPMs, per-SiPM photon
counting with wavelength and time histograms, simple particle guns and an
event filter, and conversion of generator particle lists into an event
graph and from there into primary vertices.

The package has no dependencies outside the standard library.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Modules

### `drcalo.geometry`

`Vector3` (with `mag()`, `+` and `scaled()`), `Rotation` (built with
`Rotation.zyx(phi, theta, psi)` or `Rotation.about_z(angle)`, composed
with `*`, applied with `apply()`) and `Transform3D` (a rotation followed
by a translation; `*` composes transforms, `apply()` maps a point).

### `drcalo.towers`

`TowerParam` and its two variants `BarrelParam` (inner face at a fixed
transverse distance `inner_x`) and `EndcapParam` (inner face at a fixed
distance along the beam). Set `inner_x`, `tower_h`, `sipm_height`,
`delta_theta`, `theta_of_center` and the number of towers around the beam
(`set_num_z_rot`), then call `init()` to compute the trapezoid
half-lengths, read as properties: `h1`, `bl1`, `tl1`, `h2`, `bl2`, `tl2`,
`h2_sipm`, `bl2_sipm`, `tl2_sipm`. Placement around the beam axis is given
by `rotation`, `tower_pos`, `assemble_pos`, `sipm_layer_pos` and the
matching `transform`, `assemble_transform` and `sipm_transform`.

While a parameter object is not yet marked filled, each `init()` records
the tower's `delta_theta` and `theta_of_center`. After `mark_filled()`,
`set_delta_theta_by_tower_no` and `set_theta_of_center_by_tower_no`
restore those values for a signed tower number (negative numbers are the
left-hand side, see `signed_tower_no` / `unsigned_tower_no`); calling them
before that raises `RuntimeError`, and an unknown tower raises
`IndexError`.

### `drcalo.segmentation`

`BitFieldCoder` packs named integer fields into a 64-bit value from a
description such as `"eta:-10,phi:10"` (`name:width` or
`name:offset:width`; a negative width marks a signed field). `get()` reads
a field, `set()` returns a new value with one field replaced and raises
`ValueError` when the value does not fit.

`GridDRcalo` uses the fields `eta`, `phi`, `x`, `y`, `c` and `module`:

- `set_volume_id(num_eta, num_phi)` and `set_cell_id(num_eta, num_phi, x, y)`
  build tower and fibre/SiPM identifiers; `num_eta`, `num_phi`, `x`, `y`,
  `is_cerenkov`, `is_tower` and `is_sipm` read them back.
- `is_cerenkov_grid(col, row)` gives the Cherenkov/scintillation
  checkerboard pattern.
- `local_position_grid(numx, numy, x, y)` places a grid point on a grid
  centred at the origin with spacing `grid_size`.
- `first_32_bits`, `last_32_bits`, `first_32_to_64` and `last_32_to_64`
  split identifiers into signed 32-bit halves and back.
- `num_x`, `num_y`, `local_position`, `cell_id`, `position`,
  `tower_position`, `tower_position_from_cell_id` and
  `tower_height_from_cell_id` use the tower parameters in `param_barrel`
  and `param_endcap`; these must be filled and finalized
  (`mark_filled()`, `mark_finalized()`, `tot_tower_num` set), otherwise a
  `RuntimeError` is raised.

### `drcalo.sipm`

`SiPMHit` counts photons for one SiPM, with `Counter` histograms
`wavelength_spectrum` and `time_struct` keyed by `(low, high)` bin
ranges. Two hits compare equal when their `sipm_num` is the same.

`SiPMSensitiveDetector(name, readout_name, segmentation)` collects hits
per event: `initialize()` starts an empty list of hits, and
`process_hit(local, global_, volume_id, time, energy, optical)` finds the
SiPM cell from the local position (mm), creates or updates its hit and
fills the histograms. It returns `False` for non-optical particles and
raises `RuntimeError` if used before `initialize()`. Wavelengths are
binned in 120 bins from 900 nm down to 300 nm (`wavelength_range`,
energies in MeV) and arrival times in 600 bins from 10 ns to 70 ns
(`time_range`); out-of-range values land in open-ended bins bounded by
`UNBOUNDED`.

### `drcalo.generator`

- `Particle` — an event-record entry with `eta()`, `pt`, `p_abs`,
  `is_final` and `id_abs`.
- `EtaFilter(on, eta_max, thres)` — `accept(particles, e_cm)` rejects an
  event once the energy of final-state, non-neutrino particles beyond
  `eta_max` exceeds `thres * e_cm`.
- `ParticleGun(id, energy, theta, phi)` — `fill_resonance(mass, at_rest)`
  returns a single particle; `fill_parton(mass, at_rest, scale)` returns a
  colour-connected back-to-back pair (gluon pairs for id 21, quark and
  antiquark otherwise).
- `BeamGun` — test-beam primaries: `direction()`, `origin(rng)` (smeared
  spot in the plane x = 0), `calibration_origin(rng)` (shifted toward the
  tower front face) and `generate(rng)`, which returns a `GunShot` with a
  thread-safe running event number.
- `MagneticField(by)` — uniform field along y; `field_value(point)`
  returns `(0, by, 0)`.

### `drcalo.hepmc`

A small event-graph model: `GenParticle`, `GenVertex`
(`add_particle_in`, `add_particle_out`) and `GenEvent` (`add_tree` adds
all connected particles and vertices in topological order and raises
`ValueError` on a cycle).

`Pythia8ToHepMC3().fill_next_event(particles, event, event_number, info, hadronize)`
builds an event from a list of `PythiaParticle` entries (the first two
are taken as the beams), adds colour-flow attributes, warns about free
gluons and quarks (`RuntimeWarning`, or `RuntimeError` when
`crash_on_problem` is set) and stores PDF, process, cross-section (in pb)
and weight information from a `PythiaInfo`.

`to_primary_vertices(event, inside_world)` turns the real vertices of an
event into `PrimaryVertex` objects holding `PrimaryParticle` entries
(momenta in MeV, positions in mm, time in ns), optionally dropping
vertices that `inside_world` rejects.

## Example

```python
from drcalo.segmentation import GridDRcalo

seg = GridDRcalo("module:2,eta:-10,phi:10,x:-16,y:-16,c:2")
cell = seg.set_cell_id(3, 10, 4, 7)
assert seg.num_eta(cell) == 3
assert seg.num_phi(cell) == 10
assert seg.is_sipm(cell)
assert seg.is_cerenkov(cell) == seg.is_cerenkov_grid(4, 7)
```

## What this package does not do

It is a library only: there is no command-line program, no detector
construction from XML descriptions, no particle transport or physics
simulation, no event generator of its own, and no reading or writing of
event or hit files. Callers supply particles, photons and positions and
keep the results themselves.