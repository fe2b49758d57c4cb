import pytest
import numpy as np

from psr.mesh.geometry import Sphere, bounding_sphere, enlarge_sphere
from psr.mesh.refine import cell_quality, refine_triangulation, select_steiner_points
from psr.mesh.triangulation import ReconstructionTriangulation, VertexType


@pytest.fixture
def triangulation():
    rng = np.random.default_rng(1)
    points = rng.random((40, 3))
    tr = ReconstructionTriangulation()
    tr.insert(points, np.tile([0.0, 0.0, 1.0], (40, 1)))
    return tr


def test_cell_quality_single_tetrahedron():
    tr = ReconstructionTriangulation()
    tr.insert(np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]]))
    radii, ratios = cell_quality(tr)
    np.testing.assert_allclose(radii, [np.sqrt(3.0) / 2.0])
    np.testing.assert_allclose(ratios, [np.sqrt(3.0) / 2.0])


def test_select_steiner_points_rejects_conflicts():
    centers = np.array([[0.0, 0.0, 0.0], [0.5, 0.0, 0.0], [5.0, 0.0, 0.0]])
    radii = np.array([1.0, 2.0, 1.0])
    selected = select_steiner_points(centers, radii, budget=10)
    # the largest circumsphere wins and the overlapping candidate is dropped
    np.testing.assert_allclose(selected, [[0.5, 0.0, 0.0], [5.0, 0.0, 0.0]])
    assert select_steiner_points(centers, radii, budget=1).shape[0] == 1


def test_refinement_inserts_steiner_points(triangulation):
    tr = triangulation
    sphere = enlarge_sphere(tr.input_points_bounding_sphere(), 1.5)
    inserted = refine_triangulation(tr, 2.5, 0.3, 3000, sphere)
    assert inserted > 0
    assert tr.number_of_vertices() == 40 + inserted
    steiner = tr.types == VertexType.STEINER
    assert np.count_nonzero(steiner) == inserted
    np.testing.assert_allclose(tr.normals[steiner], 0.0)
    assert not np.any(tr.constrained)
    distances = np.linalg.norm(tr.points[steiner] - sphere.center, axis=1)
    assert np.all(distances <= sphere.radius * (1.0 + 1e-9)), "Steiner points must stay in the enlarged sphere"


def test_refinement_meets_size_bound(triangulation):
    tr = triangulation
    sphere = enlarge_sphere(tr.input_points_bounding_sphere(), 1.5)
    bound = 0.25
    refine_triangulation(tr, 0.0, bound, 100000, sphere)
    radii, _ = cell_quality(tr)
    inside = np.sum(np.square(tr.duals - sphere.center), axis=1) < sphere.squared_radius
    assert np.all(radii[inside] <= bound), "No cell with a circumcenter in the sphere may exceed the size bound"


def test_refinement_meets_ratio_bound(triangulation):
    tr = triangulation
    sphere = enlarge_sphere(tr.input_points_bounding_sphere(), 1.5)
    bound = 2.5
    refine_triangulation(tr, bound, 0.0, 20000, sphere)
    assert tr.number_of_vertices() < 20000, "Shape refinement must terminate before the budget"
    _, ratios = cell_quality(tr)
    inside = np.sum(np.square(tr.duals - sphere.center), axis=1) < sphere.squared_radius
    assert np.all(ratios[inside] <= bound), "No cell with a circumcenter in the sphere may exceed the ratio bound"


def test_refinement_with_disabled_bounds(triangulation):
    tr = triangulation
    sphere = enlarge_sphere(tr.input_points_bounding_sphere(), 1.5)
    assert refine_triangulation(tr, 0.0, 0.0, 1000, sphere) == 0
    assert tr.number_of_vertices() == 40
    assert not np.any(tr.types == VertexType.STEINER)


def test_refinement_seeds_enlarged_sphere(triangulation):
    tr = triangulation
    sphere = enlarge_sphere(tr.input_points_bounding_sphere(), 1.5)
    inserted = refine_triangulation(tr, 0.0, 0.0, 1000, sphere, seed_sphere=True)
    assert inserted == 12
    steiner = tr.types == VertexType.STEINER
    distances = np.linalg.norm(tr.points[steiner] - sphere.center, axis=1)
    np.testing.assert_allclose(distances, sphere.radius)
    # the shell encloses every input point
    assert np.all(steiner[tr.hull_vertices()])


def test_refinement_respects_vertex_budget(triangulation):
    tr = triangulation
    sphere = enlarge_sphere(tr.input_points_bounding_sphere(), 1.5)
    refine_triangulation(tr, 2.5, 0.05, 100, sphere)
    assert tr.number_of_vertices() <= 100


def test_refinement_without_room():
    tr = ReconstructionTriangulation()
    assert refine_triangulation(tr, 2.5, 0.1, 1000, Sphere(np.zeros(3), 1.0)) == 0
    rng = np.random.default_rng(2)
    tr.insert(rng.random((10, 3)))
    empty_sphere = Sphere(bounding_sphere(tr.points).center, 0.0)
    assert refine_triangulation(tr, 2.5, 0.1, 1000, empty_sphere) == 0
    assert tr.number_of_vertices() == 10
