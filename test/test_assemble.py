import pytest
import numpy as np

from psr.mesh.triangulation import ReconstructionTriangulation, VertexType
from psr.reconstruction.assemble import (assemble_poisson_system, assemble_poisson_row,
                                         edge_weight, sorted_edge)
from psr.reconstruction.normalize import constrain_one_vertex_on_convex_hull
from psr.reconstruction.operators import divergence
from psr.reconstruction.solver import SparseSolver


@pytest.fixture
def triangulation():
    rng = np.random.default_rng(6)
    points = rng.random((50, 3))
    normals = points - 0.5
    normals /= np.linalg.norm(normals, axis=1).reshape(-1, 1)
    tr = ReconstructionTriangulation()
    tr.insert(points, normals)
    tr.insert_steiner(rng.random((10, 3)) * 0.5 + 0.25)
    constrain_one_vertex_on_convex_hull(tr)
    tr.index_unconstrained_vertices()
    return tr


def test_matrix_symmetric(triangulation):
    solver, B = assemble_poisson_system(triangulation, 0.1)
    A = solver.matrix()
    assert A.shape == (59, 59)
    assert abs(A - A.T).max() == 0.0, "Edge weights must be shared by both rows"
    assert np.all(np.isfinite(B))


def test_diagonal_positive(triangulation):
    solver, _ = assemble_poisson_system(triangulation, 0.1)
    assert np.all(solver.matrix().diagonal() > 0.0)


def test_row_sums(triangulation):
    """Row sums are the regularization plus the weights of constrained neighbors."""
    tr = triangulation
    lam = 0.1
    solver, _ = assemble_poisson_system(tr, lam)
    A = solver.matrix().toarray()
    constrained = int(np.flatnonzero(tr.constrained)[0])
    weights = {}
    for vi in np.flatnonzero(tr.index >= 0):
        expected = lam if tr.types[vi] == VertexType.INPUT else 0.0
        if constrained in tr.incident_vertices(vi):
            expected += edge_weight(tr, int(vi), constrained, weights)
        assert np.isclose(A[tr.index[vi]].sum(), expected, atol=1e-10)


def test_constrained_neighbors_fold_into_rhs(triangulation):
    tr = triangulation
    constrained = int(np.flatnonzero(tr.constrained)[0])
    _, B0 = assemble_poisson_system(tr, 0.1)
    tr.f[constrained] = 2.0
    _, B1 = assemble_poisson_system(tr, 0.1)
    weights = {}
    for vi in np.flatnonzero(tr.index >= 0):
        row = tr.index[vi]
        if constrained in tr.incident_vertices(vi):
            cij = edge_weight(tr, int(vi), constrained, weights)
            assert np.isclose(B1[row] - B0[row], -2.0 * cij)
        else:
            assert B1[row] == B0[row]


def test_rhs_is_divergence(triangulation):
    tr = triangulation
    _, B = assemble_poisson_system(tr, 0.1)
    for vi in np.flatnonzero(tr.index >= 0)[:10]:
        assert np.isclose(B[tr.index[vi]], divergence(tr, int(vi)))


def test_normalized_divergence_rhs(triangulation):
    solver, B = assemble_poisson_system(triangulation, 0.1, is_normalized=True)
    assert np.all(np.isfinite(B))
    assert solver.factorize()


def test_sorted_edge_is_order_independent(triangulation):
    tr = triangulation
    v = int(np.flatnonzero(tr.index >= 0)[0])
    u = int(tr.incident_vertices(v)[0])
    cell, i, j = sorted_edge(tr, v, u)
    other = sorted_edge(tr, u, v)
    assert (cell, i, j) == other
    assert {tr.cells[cell, i], tr.cells[cell, j]} == {u, v}


def test_single_row_without_neighbors():
    tr = ReconstructionTriangulation()
    tr.insert(np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0]]))
    constrain_one_vertex_on_convex_hull(tr)
    assert tr.index_unconstrained_vertices() == 1
    solver = SparseSolver(1)
    B = np.zeros(1)
    assemble_poisson_row(tr, solver, 1, B, 0.1, {})
    assert solver.matrix()[0, 0] == 0.1
    assert B[0] == 0.0
