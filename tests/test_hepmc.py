import warnings

import pytest

from drcalo.hepmc import (
    C_LIGHT,
    GEV,
    MILLIBARN_TO_PICOBARN,
    GenEvent,
    GenParticle,
    GenVertex,
    Pythia8ToHepMC3,
    PythiaInfo,
    PythiaParticle,
    to_primary_vertices,
)


def _record():
    return [
        PythiaParticle(2212, 4, 0.0, 0.0, 10.0, 10.0, m=0.938),
        PythiaParticle(2212, 4, 0.0, 0.0, -10.0, 10.0, m=0.938),
        PythiaParticle(21, 2, 0.5, 0.0, 0.0, 5.0, mothers=[0, 1], col=101, acol=102, col_type=2),
        PythiaParticle(211, 1, 0.3, 0.1, 0.2, 2.0, mothers=[2],
                       x_prod=1.0, y_prod=2.0, z_prod=3.0, t_prod=4.0),
        PythiaParticle(-211, 1, 0.2, -0.1, -0.2, 3.0, mothers=[2]),
    ]


def _convert(converter=None, **kwargs):
    converter = converter or Pythia8ToHepMC3()
    event = GenEvent()
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        assert converter.fill_next_event(_record(), event, **kwargs) is True
    return event


def test_graph_shape():
    event = _convert()
    assert len(event.particles) == 5
    assert len(event.vertices) == 2
    assert [p.pid for p in event.vertices[0].particles_in] == [2212, 2212]
    assert [p.pid for p in event.vertices[1].particles_out] == [211, -211]
    assert event.vertices[1].position == (1.0, 2.0, 3.0, 4.0)
    assert event.vertices[0].position == (0.0, 0.0, 0.0, 0.0)


def test_topological_order():
    event = _convert()
    index = {id(p): i for i, p in enumerate(event.particles)}
    for particle in event.particles:
        vertex = particle.production_vertex
        if vertex is None:
            continue
        for parent in vertex.particles_in:
            assert index[id(parent)] < index[id(particle)]


def test_event_numbers():
    converter = Pythia8ToHepMC3()
    assert _convert(converter).event_number == 0
    assert _convert(converter).event_number == 1
    assert _convert(converter, event_number=7).event_number == 7
    assert _convert(converter).event_number == 7
    assert converter.internal_event_number == 8


def test_colour_flow_attributes():
    event = _convert()
    gluon = next(p for p in event.particles if p.pid == 21)
    assert gluon.attributes == {"flow1": 101, "flow2": 102}
    pion = next(p for p in event.particles if p.pid == 211)
    assert pion.attributes == {}


def test_generator_info_stored():
    info = PythiaInfo(id1pdf=21, id2pdf=2, x1pdf=0.1, x2pdf=0.2, code=101,
                      q_ren=91.0, alpha_s=0.12, alpha_em=0.0078,
                      sigma_gen=2.5, sigma_err=0.5, weights=[1.0, 0.5])
    event = _convert(Pythia8ToHepMC3(convert_gluon_to_0=True), info=info)
    assert event.pdf_info.id1 == 0
    assert event.pdf_info.id2 == 2
    assert event.attributes["signal_process_id"] == 101
    assert event.attributes["event_scale"] == 91.0
    assert event.cross_section.cross_section == pytest.approx(2.5 * MILLIBARN_TO_PICOBARN)
    assert event.cross_section.cross_section_error == pytest.approx(0.5 * MILLIBARN_TO_PICOBARN)
    assert event.weights == [1.0, 0.5]


def test_storage_switches():
    info = PythiaInfo(id1pdf=21, code=5, sigma_gen=1.0, weights=[2.0])
    converter = Pythia8ToHepMC3(store_pdf=False, store_proc=False,
                                store_xsec=False, store_weights=False)
    event = _convert(converter, info=info)
    assert event.pdf_info is None
    assert event.cross_section is None
    assert event.attributes == {}
    assert event.weights == []


def test_null_event_raises():
    with pytest.raises(ValueError):
        Pythia8ToHepMC3().fill_next_event(_record(), None)


def test_too_few_particles_raises():
    with pytest.raises(ValueError):
        Pythia8ToHepMC3().fill_next_event(_record()[:1], GenEvent())


def _free_gluon_record():
    record = _record()
    record.append(PythiaParticle(21, 1, 0.1, 0.1, 0.1, 1.0, mothers=[2], col=103, col_type=2))
    return record


def test_free_gluon_warns():
    with pytest.warns(RuntimeWarning, match="gluon without end vertex 5"):
        Pythia8ToHepMC3().fill_next_event(_free_gluon_record(), GenEvent())


def test_free_gluon_not_checked_without_hadronisation():
    event = GenEvent()
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        assert Pythia8ToHepMC3().fill_next_event(_free_gluon_record(), event, hadronize=False)
    assert len(event.particles) == 6


def test_crash_on_problem_raises():
    converter = Pythia8ToHepMC3(crash_on_problem=True)
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        with pytest.raises(RuntimeError):
            converter.fill_next_event(_free_gluon_record(), GenEvent())


def test_vertex_reassigns_particle():
    particle = GenParticle(0.0, 0.0, 1.0, 1.0, 22, 1)
    first, second = GenVertex(), GenVertex()
    first.add_particle_out(particle)
    second.add_particle_out(particle)
    assert particle.production_vertex is second
    assert first.particles_out == []
    first.add_particle_in(particle)
    first.add_particle_in(particle)
    assert first.particles_in == [particle]


def test_add_tree_rejects_cycle():
    a = GenParticle(0.0, 0.0, 1.0, 1.0, 1, 2)
    b = GenParticle(0.0, 0.0, 1.0, 1.0, 2, 2)
    root = GenParticle(0.0, 0.0, 1.0, 1.0, 3, 4)
    v1, v2 = GenVertex(), GenVertex()
    v1.add_particle_in(a)
    v1.add_particle_out(b)
    v2.add_particle_in(b)
    v2.add_particle_out(a)
    v1.add_particle_in(root)
    with pytest.raises(ValueError):
        GenEvent().add_tree([root])


def test_primary_vertices():
    event = _convert()
    primaries = to_primary_vertices(event)
    assert len(primaries) == 1
    vertex = primaries[0]
    assert (vertex.x, vertex.y, vertex.z) == (1.0, 2.0, 3.0)
    assert vertex.t * C_LIGHT == pytest.approx(4.0)
    assert [p.pdg_code for p in vertex.particles] == [211, -211]
    assert vertex.particles[0].px == pytest.approx(0.3 * GEV)
    assert vertex.particles[1].pz == pytest.approx(-0.2 * GEV)


def test_primary_vertices_outside_world_dropped():
    event = _convert()
    seen = []

    def inside(position):
        seen.append(position)
        return position.mag() < 1.0

    assert to_primary_vertices(event, inside) == []
    assert len(seen) == 1


def test_primary_vertices_without_event_raises():
    with pytest.raises(ValueError):
        to_primary_vertices(None)