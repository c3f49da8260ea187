import math

import pytest

from drcalo.geometry import Vector3
from drcalo.towers import BarrelParam, EndcapParam, TowerParam


def _barrel(theta=0.3, delta=0.02, rhs=True):
    p = BarrelParam(
        is_rhs=rhs, inner_x=180.0, tower_h=200.0, num_z_rot=283, sipm_height=1.5,
        delta_theta=delta, theta_of_center=theta,
    )
    p.init()
    return p


def test_set_num_z_rot():
    p = TowerParam()
    p.set_num_z_rot(4)
    assert p.num_z_rot == 4
    assert p.phi_z_rot == pytest.approx(math.pi / 2)


def test_barrel_inner_radius_projects_to_inner_x():
    p = _barrel()
    assert p.current_inner_r * math.cos(0.3) == pytest.approx(180.0)
    assert p.current_center.mag() == pytest.approx(p.current_inner_r + 100.0)


def test_endcap_inner_radius_projects_to_inner_x():
    p = EndcapParam(inner_x=250.0, tower_h=200.0, num_z_rot=283,
                    delta_theta=0.02, theta_of_center=1.2, is_rhs=True)
    p.init()
    assert p.current_inner_r * math.sin(1.2) == pytest.approx(250.0)


def test_half_heights_scale_with_radius():
    p = _barrel()
    r = p.current_inner_r
    assert p.h2 / p.h1 == pytest.approx((r + 200.0) / r)
    assert p.h2_sipm / p.h1 == pytest.approx((r + 201.5) / r)
    assert p.h1 == pytest.approx(r * math.tan(0.01))


def test_trapezoid_widths():
    p = _barrel()
    t = math.tan(p.phi_z_rot / 2)
    assert p.bl1 == pytest.approx(p.v3.x * t)
    assert p.tl1 == pytest.approx(p.v1.x * t)
    assert p.bl2 == pytest.approx(p.v4.x * t)
    assert p.tl2 == pytest.approx(p.v2.x * t)
    assert p.bl2_sipm == pytest.approx(p.v4_sipm.x * t)
    assert p.tl2_sipm == pytest.approx(p.v2_sipm.x * t)
    assert p.tl2 > p.tl1
    assert p.bl2 > p.bl1


def test_tower_no_round_trip():
    p = TowerParam(is_rhs=False)
    for n in range(5):
        s = p.signed_tower_no(n)
        assert s < 0
        assert p.unsigned_tower_no(s) == n
    p.is_rhs = True
    assert p.signed_tower_no(3) == 3
    assert p.unsigned_tower_no(3) == 3


def test_set_rhs_by_tower_no():
    p = TowerParam()
    p.set_rhs_by_tower_no(0)
    assert p.is_rhs is True
    p.set_rhs_by_tower_no(-1)
    assert p.is_rhs is False


def test_barrel_lookup_requires_filled():
    p = _barrel()
    with pytest.raises(RuntimeError):
        p.set_delta_theta_by_tower_no(0, 0)
    with pytest.raises(RuntimeError):
        p.set_theta_of_center_by_tower_no(0, 0)


def test_endcap_lookup_requires_filled():
    p = EndcapParam(inner_x=250.0, tower_h=200.0, num_z_rot=10,
                    delta_theta=0.02, theta_of_center=1.2)
    p.init()
    with pytest.raises(RuntimeError):
        p.set_delta_theta_by_tower_no(5, 0)


def test_barrel_records_towers_until_filled():
    p = BarrelParam(inner_x=180.0, tower_h=200.0, num_z_rot=100)
    thetas = [0.01, 0.03, 0.05]
    for t in thetas:
        p.delta_theta = 0.02
        p.theta_of_center = t
        p.init()
    p.mark_filled()
    p.init()
    assert p.theta_of_center_list == thetas
    p.set_theta_of_center_by_tower_no(-2, 0)
    p.set_delta_theta_by_tower_no(-2, 0)
    assert p.theta_of_center == thetas[1]
    assert p.delta_theta == 0.02
    with pytest.raises(IndexError):
        p.set_theta_of_center_by_tower_no(3, 0)


def test_endcap_lookup_offsets_by_barrel_count():
    p = EndcapParam(inner_x=250.0, tower_h=200.0, num_z_rot=100)
    thetas = [1.0, 1.1]
    for t in thetas:
        p.delta_theta = 0.02
        p.theta_of_center = t
        p.init()
    p.mark_filled()
    p.set_theta_of_center_by_tower_no(-5, 3)
    assert p.theta_of_center == thetas[1]
    p.set_theta_of_center_by_tower_no(3, 3)
    assert p.theta_of_center == thetas[0]
    with pytest.raises(IndexError):
        p.set_delta_theta_by_tower_no(2, 3)


def test_mark_finalized():
    p = _barrel()
    assert p.finalized is False
    p.mark_finalized()
    assert p.finalized is True


def test_tower_positions_share_radius_and_flip_side():
    right = _barrel(rhs=True)
    left = _barrel(rhs=False)
    c = right.current_center
    for n in (0, 7, 100):
        pos = right.tower_pos(n)
        assert math.hypot(pos.x, pos.y) == pytest.approx(c.x)
        assert pos.z == pytest.approx(c.z)
        assert left.tower_pos(n).z == pytest.approx(-c.z)


def test_assemble_and_sipm_positions_lie_further_out():
    p = _barrel()
    mag = p.current_center.mag()
    assert p.assemble_pos(5).mag() == pytest.approx(mag + 0.75)
    assert p.sipm_layer_pos(5).mag() == pytest.approx(mag + 100.0 + 0.75)


def test_transforms_place_origin_at_positions():
    p = _barrel()
    origin = Vector3()
    assert tuple(p.transform(3).apply(origin)) == pytest.approx(tuple(p.tower_pos(3)), abs=1e-9)
    assert tuple(p.assemble_transform(3).apply(origin)) == pytest.approx(
        tuple(p.assemble_pos(3)), abs=1e-9
    )
    assert tuple(p.sipm_transform(3).apply(origin)) == pytest.approx(
        tuple(p.sipm_layer_pos(3)), abs=1e-9
    )


def test_rotation_steps_by_phi():
    p = _barrel()
    axis = Vector3(0.0, 0.0, 1.0)
    a0 = p.rotation(0).apply(axis)
    a1 = p.rotation(1).apply(axis)
    assert a0.mag() == pytest.approx(1.0)
    assert a1.z == pytest.approx(a0.z)
    assert math.atan2(a1.y, a1.x) - math.atan2(a0.y, a0.x) == pytest.approx(p.phi_z_rot)