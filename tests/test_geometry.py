import math

import pytest

from drcalo.geometry import Rotation, Transform3D, Vector3


def test_vector_mag():
    assert Vector3(3.0, 4.0, 0.0).mag() == pytest.approx(5.0)


def test_vector_add_and_scale():
    v = Vector3(1.0, 2.0, 3.0) + Vector3(0.5, -2.0, 1.0)
    assert v == Vector3(1.5, 0.0, 4.0)
    assert v.scaled(2.0) == Vector3(3.0, 0.0, 8.0)


def test_about_z_quarter_turn():
    r = Rotation.about_z(math.pi / 2)
    result = tuple(r.apply(Vector3(1.0, 0.0, 0.0)))
    assert result == pytest.approx((0.0, 1.0, 0.0), abs=1e-12)


def test_zyx_with_only_phi_matches_about_z():
    a = 0.7
    zyx = sum(Rotation.zyx(a, 0.0, 0.0).matrix, ())
    about = sum(Rotation.about_z(a).matrix, ())
    assert zyx == pytest.approx(about, abs=1e-12)


@pytest.mark.parametrize("angles", [(0.3, -1.1, 2.0), (1.0, 0.5, 0.0), (-2.2, 0.1, 0.9)])
def test_rotation_preserves_length(angles):
    v = Vector3(1.2, -0.4, 3.3)
    assert Rotation.zyx(*angles).apply(v).mag() == pytest.approx(v.mag())


def test_rotation_composition_matches_sequential_apply():
    r1 = Rotation.zyx(0.4, 0.2, -0.3)
    r2 = Rotation.about_z(1.3)
    v = Vector3(0.1, 2.0, -1.0)
    composed = tuple((r2 * r1).apply(v))
    sequential = tuple(r2.apply(r1.apply(v)))
    assert composed == pytest.approx(sequential, abs=1e-12)
    assert tuple(r2 * v) == pytest.approx(tuple(r2.apply(v)), abs=1e-12)


def test_rotation_inverse_by_opposite_angle():
    r = Rotation.about_z(0.8) * Rotation.about_z(-0.8)
    assert sum(r.matrix, ()) == pytest.approx((1.0, 0.0, 0.0, 0.0, 1.0, 0.0, 0.0, 0.0, 1.0), abs=1e-12)


def test_transform_applies_rotation_then_translation():
    t = Transform3D(Rotation.about_z(0.5), Vector3(1.0, 2.0, 3.0))
    p = Vector3(0.3, -0.7, 2.0)
    expected = Rotation.about_z(0.5).apply(p) + Vector3(1.0, 2.0, 3.0)
    assert tuple(t.apply(p)) == pytest.approx(tuple(expected), abs=1e-12)


def test_transform_composition():
    t1 = Transform3D(Rotation.zyx(0.1, 0.2, 0.3), Vector3(1.0, 0.0, -1.0))
    t2 = Transform3D(Rotation.about_z(-0.9), Vector3(0.0, 5.0, 2.0))
    p = Vector3(2.0, 1.0, 0.5)
    assert tuple((t1 * t2).apply(p)) == pytest.approx(tuple(t1.apply(t2.apply(p))), abs=1e-12)
    assert tuple((t1 * t2).translation) == pytest.approx(tuple(t1.apply(t2.translation)), abs=1e-12)


def test_default_transform_is_identity():
    p = Vector3(4.0, -3.0, 1.0)
    assert Transform3D().apply(p) == p