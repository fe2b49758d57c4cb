import numpy as np
from psr.mesh.geometry import (centroid, has_on_unbounded_side, triangle_area,
                               triangle_circumcenter)


def cell_normal(triangulation, cell):
    """
    Average of the normals of the four vertices of `cell`, normalized to
    unit length. Returns None when the sum of the normals vanishes.
    """
    n = np.sum(triangulation.normals[triangulation.cells[cell]], axis=0)
    sq_norm = float(np.dot(n, n))
    if sq_norm == 0.0:
        return None
    return n / np.sqrt(sq_norm)


def cell_normals(triangulation):
    """
    Unit average normal of every finite cell.

    Returns
    -------
    normals : ndarray of shape (n_cells, 3)
        Rows are zero for cells whose vertex normals sum to zero.
    """
    n = np.sum(triangulation.normals[triangulation.cells], axis=1)
    norms = np.linalg.norm(n, axis=1)
    normals = np.zeros_like(n)
    nonzero = norms > 0.0
    normals[nonzero] = n[nonzero] / norms[nonzero].reshape(-1, 1)
    return normals


def _opposite_face(triangulation, cell, vertex):
    index = triangulation.cell_index(cell, vertex)
    row = triangulation.cells[cell]
    a = triangulation.points[row[(index + 1) % 4]]
    b = triangulation.points[row[(index + 2) % 4]]
    c = triangulation.points[row[(index + 3) % 4]]
    # the parity of the local index keeps the face normal pointing away
    # from the vertex
    if index % 2 == 0:
        nn = np.cross(b - a, c - a)
    else:
        nn = np.cross(c - a, b - a)
    return a, b, c, nn


def _incident_normals(triangulation, vertex, normals):
    for cell in triangulation.incident_cells(vertex):
        if triangulation.is_infinite(cell):
            continue
        if normals is None:
            n = cell_normal(triangulation, cell)
        else:
            n = normals[cell]
            if not np.any(n):
                n = None
        if n is None:
            continue
        yield cell, n


def divergence(triangulation, vertex, normals=None):
    """
    Divergence of the normal field at a vertex.

    Sums, over the finite cells incident to `vertex` with a non-zero
    average normal, the flux of that normal through the face opposite
    `vertex`.

    Parameters
    ----------
    triangulation : ReconstructionTriangulation
    vertex : int
        Vertex id.
    normals : ndarray of shape (n_cells, 3), optional
        Precomputed result of :func:`cell_normals`.

    Returns
    -------
    div : float
    """
    div = 0.0
    for cell, n in _incident_normals(triangulation, vertex, normals):
        a, b, c, nn = _opposite_face(triangulation, cell, vertex)
        norm = np.linalg.norm(nn)
        if norm == 0.0:
            continue
        area = 0.5 * norm
        div += float(np.dot(n, nn / norm)) * area
    return div


def solid_angle(x, a, b, c):
    """
    Solid angle subtended at `x` by the triangle (a, b, c), computed with
    the Van Oosterom and Strackee formula.
    """
    p = a - x
    q = b - x
    r = c - x
    p_n = np.linalg.norm(p)
    q_n = np.linalg.norm(q)
    r_n = np.linalg.norm(r)
    numerator = abs(float(np.dot(p, np.cross(q, r))))
    denominator = p_n * q_n * r_n + np.dot(p, q) * r_n + np.dot(q, r) * p_n + np.dot(r, p) * q_n
    return 2.0 * float(np.arctan2(numerator, denominator))


def divergence_normalized(triangulation, vertex, normals=None):
    """
    Alternate divergence where the flux through each opposite face is
    scaled by ``3 / (|x - a| + |x - b| + |x - c|)`` and by the solid angle
    the face subtends at the vertex.
    """
    div = 0.0
    x = triangulation.points[vertex]
    for cell, n in _incident_normals(triangulation, vertex, normals):
        a, b, c, nn = _opposite_face(triangulation, cell, vertex)
        norm = np.linalg.norm(nn)
        if norm == 0.0:
            continue
        area = 0.5 * norm
        length = np.linalg.norm(x - a) + np.linalg.norm(x - b) + np.linalg.norm(x - c)
        div += float(np.dot(n, nn / norm)) * area * 3.0 / length * solid_angle(x, a, b, c)
    return div


def other_two_indices(i, j):
    """Return the two local indices of a cell different from `i` and `j`."""
    if i == j:
        raise ValueError("Local indices must differ, got {} twice.".format(i))
    k, l = [index for index in range(4) if index != i and index != j]
    return k, l


def area_voronoi_face(triangulation, edge):
    """
    Area of the Voronoi face dual to `edge`.

    The circumcenters of the cells around the edge are fan triangulated
    from the first one. When the edge lies on the convex hull the area is
    approximated by :func:`area_voronoi_face_boundary`.

    Parameters
    ----------
    triangulation : ReconstructionTriangulation
    edge : tuple of int
        ``(cell, i, j)``, a finite cell and the local indices of the edge
        endpoints.
    """
    cell, i, j = edge
    ring = triangulation.incident_cells_around_edge(cell, i, j)
    if any(triangulation.is_infinite(c) for c in ring):
        return area_voronoi_face_boundary(triangulation, edge, ring)
    if len(ring) < 3:
        return 0.0
    voronoi_points = triangulation.duals[ring]
    a = voronoi_points[0]
    area = 0.0
    for k in range(1, len(ring) - 1):
        area += triangle_area(a, voronoi_points[k], voronoi_points[k + 1])
    return area


def area_voronoi_face_boundary(triangulation, edge, ring=None):
    """
    Approximate the area of the Voronoi face of an edge on the convex hull.

    For every finite cell around the edge, the cell circumcenter ``c``
    (or the cell centroid when ``c`` falls outside the cell) is joined to
    the edge midpoint ``m`` and to the circumcenters ``ck`` and ``cl`` of
    the two cell faces containing the edge. The areas of the triangles
    ``(m, c, ck)`` and ``(m, c, cl)`` are accumulated.
    """
    cell, i, j = edge
    vi = triangulation.vertex(cell, i)
    vj = triangulation.vertex(cell, j)
    pi = triangulation.points[vi]
    pj = triangulation.points[vj]
    m = 0.5 * (pi + pj)
    if ring is None:
        ring = triangulation.incident_cells_around_edge(cell, i, j)
    area = 0.0
    for c_id in ring:
        if triangulation.is_infinite(c_id):
            continue
        tet = triangulation.tetrahedron(c_id)
        c = triangulation.dual(c_id)
        k, l = other_two_indices(triangulation.cell_index(c_id, vi), triangulation.cell_index(c_id, vj))
        pk = tet[k]
        pl = tet[l]
        if has_on_unbounded_side(tet, c):
            c = centroid(tet)
        ck = triangle_circumcenter(pi, pj, pk)
        cl = triangle_circumcenter(pi, pj, pl)
        area += triangle_area(m, c, ck)
        area += triangle_area(m, c, cl)
    return area


def cotan_geometric(triangulation, edge):
    """
    Cotangent weight of `edge`: area of the dual Voronoi face divided by
    the length of the primal edge.
    """
    cell, i, j = edge
    pi = triangulation.points[triangulation.vertex(cell, i)]
    pj = triangulation.points[triangulation.vertex(cell, j)]
    return area_voronoi_face(triangulation, edge) / float(np.linalg.norm(pj - pi))
