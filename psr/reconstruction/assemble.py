import numpy as np
from tqdm import tqdm
from psr.mesh.triangulation import VertexType
from psr.reconstruction.operators import (cell_normals, cotan_geometric, divergence,
                                          divergence_normalized)
from psr.reconstruction.solver import SparseSolver


def sorted_edge(triangulation, vi, vj):
    """
    Edge (cell, i, j) joining `vi` and `vj`, always looked up from the
    vertex with the larger system index so that both orientations of the
    pair resolve to the same edge.
    """
    if triangulation.index[vi] > triangulation.index[vj]:
        found, cell, i, j = triangulation.is_edge(vi, vj)
    else:
        found, cell, i, j = triangulation.is_edge(vj, vi)
    if not found:
        raise RuntimeError("Vertices {} and {} are not joined by an edge.".format(vi, vj))
    return cell, i, j


def edge_weight(triangulation, vi, vj, weights):
    """Cotangent weight of the edge (vi, vj), memoized per unordered pair."""
    key = (vi, vj) if vi < vj else (vj, vi)
    cij = weights.get(key)
    if cij is None:
        cij = cotan_geometric(triangulation, sorted_edge(triangulation, vi, vj))
        weights[key] = cij
    return cij


def assemble_poisson_row(triangulation, solver, vi, B, lam, weights):
    """
    Assemble the row of the unconstrained vertex `vi`.

    Off-diagonal coefficients are the negated cotangent weights of the
    edges to unconstrained neighbors. Constrained neighbors contribute
    to the right-hand side instead. The diagonal is the sum of all weights,
    plus `lam` when `vi` is an INPUT vertex.

    Parameters
    ----------
    triangulation : ReconstructionTriangulation
    solver : SparseSolver
        Solver receiving the row.
    vi : int
        Vertex id.
    B : ndarray
        Right-hand side. ``B[index[vi]]`` must already hold the divergence
        at `vi`.
    lam : float
        Regularization of INPUT vertices.
    weights : dict
        Memo of edge weights shared across rows.
    """
    row = triangulation.index[vi]
    solver.begin_row()
    diagonal = 0.0
    for vj in triangulation.incident_vertices(vi):
        if triangulation.is_infinite_vertex(vj):
            continue
        cij = edge_weight(triangulation, int(vi), int(vj), weights)
        if triangulation.constrained[vj]:
            B[row] -= cij * triangulation.f[vj]
        else:
            solver.add_value(triangulation.index[vj], -cij)
        diagonal += cij
    if triangulation.types[vi] == VertexType.INPUT:
        solver.add_value(row, diagonal + lam)
    else:
        solver.add_value(row, diagonal)
    solver.end_row()
    return None


def assemble_poisson_system(triangulation, lam, is_normalized=False, nnz_per_row=9, verbose=False):
    """
    Build the discrete Poisson system of the unconstrained vertices.

    :meth:`ReconstructionTriangulation.index_unconstrained_vertices` must
    have been called beforehand.

    Parameters
    ----------
    triangulation : ReconstructionTriangulation
    lam : float
        Regularization of INPUT vertices.
    is_normalized : bool, optional
        Use :func:`divergence_normalized` for the right-hand side.
    nnz_per_row : int, optional
        Preallocation hint of the solver.
    verbose : bool, optional
        Display a progress bar.

    Returns
    -------
    solver : SparseSolver
        Solver holding the assembled matrix.
    B : ndarray
        Right-hand side.
    """
    unknowns = np.flatnonzero(triangulation.index >= 0)
    unknowns = unknowns[np.argsort(triangulation.index[unknowns])]
    solver = SparseSolver(unknowns.shape[0], nnz_per_row=nnz_per_row)
    B = np.zeros(unknowns.shape[0])
    normals = cell_normals(triangulation)
    operator = divergence_normalized if is_normalized else divergence
    weights = {}
    for vi in tqdm(unknowns, desc='Assembling system ', unit='row', leave=False, disable=not verbose):
        B[triangulation.index[vi]] = operator(triangulation, vi, normals=normals)
        assemble_poisson_row(triangulation, solver, vi, B, lam, weights)
    return solver, B
