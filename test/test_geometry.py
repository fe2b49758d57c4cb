import pytest
import numpy as np

from psr.mesh.geometry import (Sphere, bounding_sphere, enlarge_sphere, icosahedron_points,
                               signed_volume, signed_volumes, triangle_area, circumcenter,
                               circumcenters, triangle_circumcenter, sub_volumes,
                               has_on_unbounded_side)


@pytest.fixture
def unit_tetrahedron():
    return np.array([[0.0, 0.0, 0.0],
                     [1.0, 0.0, 0.0],
                     [0.0, 1.0, 0.0],
                     [0.0, 0.0, 1.0]])


def test_bounding_sphere_cube_corners():
    """The sphere around the corners of the unit cube is centered at the cube center."""
    corners = np.array([[i, j, k] for i in (0, 1) for j in (0, 1) for k in (0, 1)], dtype=float)
    sphere = bounding_sphere(corners)
    np.testing.assert_allclose(sphere.center, [0.5, 0.5, 0.5])
    assert np.isclose(sphere.squared_radius, 0.75)
    assert np.isclose(sphere.radius, np.sqrt(0.75))


def test_bounding_sphere_empty():
    sphere = bounding_sphere(np.zeros((0, 3)))
    np.testing.assert_allclose(sphere.center, np.zeros(3))
    assert sphere.squared_radius == 0.0


def test_enlarge_sphere():
    sphere = enlarge_sphere(Sphere(np.ones(3), 4.0), 1.5)
    np.testing.assert_allclose(sphere.center, np.ones(3))
    assert np.isclose(sphere.radius, 3.0)


def test_icosahedron_points_on_sphere():
    sphere = Sphere(np.array([1.0, -2.0, 0.5]), 9.0)
    points = icosahedron_points(sphere)
    assert points.shape == (12, 3)
    distances = np.linalg.norm(points - sphere.center, axis=1)
    np.testing.assert_allclose(distances, 3.0, err_msg="Icosahedron vertices must lie on the sphere")


def test_signed_volume_orientation(unit_tetrahedron):
    a, b, c, d = unit_tetrahedron
    assert np.isclose(signed_volume(a, b, c, d), 1.0 / 6.0)
    assert np.isclose(signed_volume(b, a, c, d), -1.0 / 6.0)
    volumes = signed_volumes(np.array([unit_tetrahedron, unit_tetrahedron[[1, 0, 2, 3]]]))
    np.testing.assert_allclose(volumes, [1.0 / 6.0, -1.0 / 6.0])


def test_triangle_area():
    assert np.isclose(triangle_area([0, 0, 0], [2, 0, 0], [0, 2, 0]), 2.0)
    assert triangle_area([0, 0, 0], [1, 1, 1], [2, 2, 2]) == 0.0


def test_circumcenter_equidistant(unit_tetrahedron):
    center = circumcenter(*unit_tetrahedron)
    np.testing.assert_allclose(center, [0.5, 0.5, 0.5])
    rng = np.random.default_rng(3)
    tetrahedra = rng.random((20, 4, 3))
    centers = circumcenters(tetrahedra)
    distances = np.linalg.norm(tetrahedra - centers[:, None, :], axis=2)
    np.testing.assert_allclose(distances, distances[:, :1].repeat(4, axis=1), rtol=1e-6)


def test_circumcenter_flat_tetrahedron_falls_back_to_centroid():
    flat = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [1.0, 1.0, 0.0]])
    np.testing.assert_allclose(circumcenter(*flat), [0.5, 0.5, 0.0])


def test_triangle_circumcenter():
    center = triangle_circumcenter([0.0, 0.0, 0.0], [2.0, 0.0, 0.0], [0.0, 2.0, 0.0])
    np.testing.assert_allclose(center, [1.0, 1.0, 0.0])
    collinear = triangle_circumcenter([0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [2.0, 0.0, 0.0])
    np.testing.assert_allclose(collinear, [1.0, 0.0, 0.0])


def test_sub_volumes_partition(unit_tetrahedron):
    parts, volume = sub_volumes([0.1, 0.2, 0.3], unit_tetrahedron)
    assert np.isclose(np.sum(parts), volume)
    assert np.all(parts > 0.0)


def test_has_on_unbounded_side(unit_tetrahedron):
    assert not has_on_unbounded_side(unit_tetrahedron, [0.25, 0.25, 0.25])
    assert not has_on_unbounded_side(unit_tetrahedron, unit_tetrahedron[2])
    assert has_on_unbounded_side(unit_tetrahedron, [1.0, 1.0, 1.0])
    # orientation of the tetrahedron does not matter
    assert not has_on_unbounded_side(unit_tetrahedron[[1, 0, 2, 3]], [0.25, 0.25, 0.25])
