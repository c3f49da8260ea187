"""Event-record conversion: generator particles to a HepMC-style graph, and that graph to primaries."""

from __future__ import annotations

import warnings
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Iterable, Sequence

from drcalo.geometry import Vector3

MILLIMETER = 1.0
GEV = 1000.0  # MeV per GeV
C_LIGHT = 299.792458  # mm / ns
MILLIBARN_TO_PICOBARN = 1e9

FourVector = tuple[float, float, float, float]
_ZERO4: FourVector = (0.0, 0.0, 0.0, 0.0)


def _is_zero(vector: FourVector) -> bool:
    return all(component == 0.0 for component in vector)


@dataclass
class PythiaParticle:
    """One entry of a generator event record, as handed over for conversion."""

    id: int
    status: int
    px: float
    py: float
    pz: float
    e: float
    m: float = 0.0
    mothers: Sequence[int] = ()
    col: int = 0
    acol: int = 0
    col_type: int = 0
    x_prod: float = 0.0
    y_prod: float = 0.0
    z_prod: float = 0.0
    t_prod: float = 0.0


@dataclass
class PythiaInfo:
    """Per-event generator information: PDFs, couplings, cross section and weights."""

    id1pdf: int = 0
    id2pdf: int = 0
    x1pdf: float = 0.0
    x2pdf: float = 0.0
    q_fac: float = 0.0
    pdf1: float = 0.0
    pdf2: float = 0.0
    code: int = 0
    q_ren: float = 0.0
    alpha_s: float = 0.0
    alpha_em: float = 0.0
    sigma_gen: float = 0.0
    sigma_err: float = 0.0
    weights: Sequence[float] = ()


@dataclass
class GenPdfInfo:
    """Flavours, momentum fractions and PDF values of the incoming partons."""

    id1: int
    id2: int
    x1: float
    x2: float
    scale: float
    pdf1: float
    pdf2: float


@dataclass
class GenCrossSection:
    """Cross section and its error, in picobarn."""

    cross_section: float
    cross_section_error: float


@dataclass(eq=False)
class GenParticle:
    """A particle in the event graph."""

    px: float
    py: float
    pz: float
    e: float
    pid: int
    status: int
    generated_mass: float = 0.0
    production_vertex: GenVertex | None = field(default=None, repr=False)
    end_vertex: GenVertex | None = field(default=None, repr=False)
    attributes: dict = field(default_factory=dict)

    @property
    def momentum(self) -> FourVector:
        return (self.px, self.py, self.pz, self.e)


@dataclass(eq=False)
class GenVertex:
    """A vertex joining incoming and outgoing particles."""

    position: FourVector = _ZERO4
    particles_in: list[GenParticle] = field(default_factory=list, repr=False)
    particles_out: list[GenParticle] = field(default_factory=list, repr=False)

    def add_particle_in(self, particle: GenParticle) -> None:
        """Make this vertex the end of ``particle``."""
        if any(p is particle for p in self.particles_in):
            return
        old = particle.end_vertex
        if old is not None and old is not self:
            old.particles_in = [p for p in old.particles_in if p is not particle]
        self.particles_in.append(particle)
        particle.end_vertex = self

    def add_particle_out(self, particle: GenParticle) -> None:
        """Make this vertex the origin of ``particle``."""
        if any(p is particle for p in self.particles_out):
            return
        old = particle.production_vertex
        if old is not None and old is not self:
            old.particles_out = [p for p in old.particles_out if p is not particle]
        self.particles_out.append(particle)
        particle.production_vertex = self


@dataclass(eq=False)
class GenEvent:
    """A generated event: particles and vertices in topological order plus metadata."""

    event_number: int = 0
    momentum_unit: str = "GEV"
    length_unit: str = "MM"
    particles: list[GenParticle] = field(default_factory=list)
    vertices: list[GenVertex] = field(default_factory=list)
    attributes: dict = field(default_factory=dict)
    pdf_info: GenPdfInfo | None = None
    cross_section: GenCrossSection | None = None
    weights: list[float] = field(default_factory=list)

    def add_tree(self, roots: Iterable[GenParticle]) -> None:
        """Add everything connected to ``roots``, each vertex after all its incoming particles."""
        seen_particles: dict[int, GenParticle] = {}
        seen_vertices: dict[int, GenVertex] = {}
        queue = deque(roots)
        while queue:
            particle = queue.popleft()
            if id(particle) in seen_particles:
                continue
            seen_particles[id(particle)] = particle
            for vertex in (particle.production_vertex, particle.end_vertex):
                if vertex is not None and id(vertex) not in seen_vertices:
                    seen_vertices[id(vertex)] = vertex
                    queue.extend(vertex.particles_in)
                    queue.extend(vertex.particles_out)

        placed = {id(p) for p in self.particles}
        known_vertices = {id(v) for v in self.vertices}

        def place(particle: GenParticle) -> None:
            if id(particle) not in placed:
                placed.add(id(particle))
                self.particles.append(particle)

        for particle in seen_particles.values():
            if particle.production_vertex is None:
                place(particle)

        pending = [v for v in seen_vertices.values() if id(v) not in known_vertices]
        while pending:
            ready = [v for v in pending if all(id(p) in placed for p in v.particles_in)]
            if not ready:
                raise ValueError("event graph has a cycle; no topological order exists")
            for vertex in ready:
                self.vertices.append(vertex)
                for particle in vertex.particles_out:
                    place(particle)
            ready_ids = {id(v) for v in ready}
            pending = [v for v in pending if id(v) not in ready_ids]


@dataclass
class PrimaryParticle:
    """A primary particle for the simulation, momentum in MeV."""

    pdg_code: int
    px: float
    py: float
    pz: float


@dataclass
class PrimaryVertex:
    """A primary vertex for the simulation, position in mm and time in ns."""

    x: float
    y: float
    z: float
    t: float
    particles: list[PrimaryParticle] = field(default_factory=list)


@dataclass
class Pythia8ToHepMC3:
    """Converts generator event records into :class:`GenEvent` graphs."""

    internal_event_number: int = 0
    print_inconsistency: bool = True
    free_parton_warnings: bool = True
    crash_on_problem: bool = False
    convert_gluon_to_0: bool = False
    store_pdf: bool = True
    store_proc: bool = True
    store_xsec: bool = True
    store_weights: bool = True

    def _problem(self, message: str) -> None:
        warnings.warn(message, RuntimeWarning, stacklevel=3)
        if self.crash_on_problem:
            raise RuntimeError(message)

    def fill_next_event(
        self,
        particles: Sequence[PythiaParticle],
        event: GenEvent,
        event_number: int = -1,
        info: PythiaInfo | None = None,
        hadronize: bool | None = None,
    ) -> bool:
        """Fill ``event`` from ``particles``; the first two entries are taken as the beams.

        ``hadronize`` tells whether hadronisation was on; when it is None the
        free-parton warning switch decides.
        """
        if event is None:
            raise ValueError("fill_next_event: passed null event")
        if len(particles) < 2:
            raise ValueError("fill_next_event: event record needs at least two beam particles")

        if event_number >= 0:
            event.event_number = event_number
            self.internal_event_number = event_number
        else:
            event.event_number = self.internal_event_number
            self.internal_event_number += 1

        event.momentum_unit = "GEV"
        event.length_unit = "MM"

        gen = [
            GenParticle(p.px, p.py, p.pz, p.e, p.id, p.status, generated_mass=p.m)
            for p in particles
        ]

        for source, particle in zip(particles[1:], gen[1:]):
            mothers = list(source.mothers)
            if not mothers:
                continue
            vertex = gen[mothers[0]].end_vertex
            if vertex is None:
                vertex = GenVertex()
                for mother in mothers:
                    vertex.add_particle_in(gen[mother])
            position = (source.x_prod, source.y_prod, source.z_prod, source.t_prod)
            if not _is_zero(position) and _is_zero(vertex.position):
                vertex.position = position
            vertex.add_particle_out(particle)

        event.add_tree([gen[0], gen[1]])

        for source, particle in zip(particles, gen):
            if source.col_type in (-1, 1, 2):
                particle.attributes["flow1"] = source.col if source.col_type in (1, 2) else 0
                particle.attributes["flow2"] = source.acol if source.col_type in (-1, 2) else 0

        do_hadr = self.free_parton_warnings if hadronize is None else hadronize
        if do_hadr and self.free_parton_warnings:
            for i, particle in enumerate(gen[1:], start=1):
                if particle.end_vertex is not None:
                    continue
                if particle.pid == 21:
                    self._problem(f"gluon without end vertex {i}")
                if abs(particle.pid) <= 6:
                    self._problem(f"quark without end vertex {i}")

        if info is not None:
            if self.store_pdf:
                id1, id2 = info.id1pdf, info.id2pdf
                if self.convert_gluon_to_0:
                    id1 = 0 if id1 == 21 else id1
                    id2 = 0 if id2 == 21 else id2
                event.pdf_info = GenPdfInfo(
                    id1, id2, info.x1pdf, info.x2pdf, info.q_fac, info.pdf1, info.pdf2
                )
            if self.store_proc:
                event.attributes["signal_process_id"] = info.code
                event.attributes["event_scale"] = info.q_ren
                event.attributes["alphaQCD"] = info.alpha_s
                event.attributes["alphaQED"] = info.alpha_em
            if self.store_xsec:
                event.cross_section = GenCrossSection(
                    info.sigma_gen * MILLIBARN_TO_PICOBARN,
                    info.sigma_err * MILLIBARN_TO_PICOBARN,
                )
            if self.store_weights:
                event.weights = list(info.weights)

        return True


def to_primary_vertices(
    event: GenEvent | None,
    inside_world: Callable[[Vector3], bool] | None = None,
) -> list[PrimaryVertex]:
    """Primary vertices for every real vertex of ``event`` that lies inside the world.

    A vertex is real when it emits at least one final-state particle that
    does not decay. ``inside_world`` receives the vertex position in mm; by
    default every position is accepted.
    """
    if event is None:
        raise ValueError("no generated particles; run terminated")

    primaries: list[PrimaryVertex] = []
    for vertex in event.vertices:
        if not any(p.end_vertex is None and p.status == 1 for p in vertex.particles_out):
            continue
        x, y, z, t = vertex.position
        position = Vector3(x * MILLIMETER, y * MILLIMETER, z * MILLIMETER)
        if inside_world is not None and not inside_world(position):
            continue
        primary = PrimaryVertex(position.x, position.y, position.z, t * MILLIMETER / C_LIGHT)
        primary.particles = [
            PrimaryParticle(p.pid, p.px * GEV, p.py * GEV, p.pz * GEV)
            for p in vertex.particles_out
            if p.status == 1
        ]
        primaries.append(primary)
    return primaries