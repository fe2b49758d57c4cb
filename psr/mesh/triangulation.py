import enum
import numpy as np
import pyvista as pv
from scipy.spatial import Delaunay, QhullError, cKDTree
from psr.mesh.geometry import bounding_sphere, circumcenters, signed_volumes


INFINITE = -1


class VertexType(enum.IntEnum):
    INPUT = 0
    STEINER = 1


class ReconstructionTriangulation(object):
    """
    3D Delaunay triangulation of oriented points carrying the per-vertex
    state needed to solve for an implicit function.

    Vertices are stored as an arena of parallel arrays indexed by an
    integer vertex id. The tetrahedralization itself is delegated to
    Qhull through :class:`scipy.spatial.Delaunay` and rebuilt after every
    insertion. Finite cells are reordered to be positively oriented.
    The unbounded region outside the convex hull is represented by the
    reserved id ``INFINITE``.

    Attributes
    ----------
    points : ndarray of shape (n_vertices, 3)
        Vertex positions.
    normals : ndarray of shape (n_vertices, 3)
        Vertex normals (zero for Steiner points).
    types : ndarray of shape (n_vertices,)
        :class:`VertexType` discriminant of each vertex.
    constrained : ndarray of shape (n_vertices,) of bool
        True when the field value of the vertex is fixed.
    f : ndarray of shape (n_vertices,)
        Field value at each vertex.
    index : ndarray of shape (n_vertices,) of int
        Linear-system index of the unconstrained vertices, -1 otherwise.
    cells : ndarray of shape (n_cells, 4) of int
        Vertex ids of each finite cell.
    neighbors : ndarray of shape (n_cells, 4) of int
        Neighbor cell opposite to each local vertex, -1 across hull facets.
    """
    def __init__(self):
        self.clear()

    def clear(self):
        """Remove all vertices and cells."""
        self.points = np.zeros((0, 3))
        self.normals = np.zeros((0, 3))
        self.types = np.zeros(0, dtype=np.int8)
        self.constrained = np.zeros(0, dtype=bool)
        self.f = np.zeros(0)
        self.index = np.zeros(0, dtype=np.int64)
        self._reset_cells()
        return None

    def _reset_cells(self):
        self.delaunay = None
        self.cells = np.zeros((0, 4), dtype=np.int64)
        self.neighbors = np.zeros((0, 4), dtype=np.int64)
        self.duals = np.zeros((0, 3))
        self._dimension = -1 if self.points.shape[0] == 0 else 0
        self._finite = np.ones(self.points.shape[0], dtype=bool)
        self._hull = np.ones(self.points.shape[0], dtype=bool)
        self._vertex_cells_ptr = np.zeros(self.points.shape[0] + 1, dtype=np.int64)
        self._vertex_cells = np.zeros(0, dtype=np.int64)
        self._vertex_neighbors_ptr = np.zeros(self.points.shape[0] + 1, dtype=np.int64)
        self._vertex_neighbors = np.zeros(0, dtype=np.int64)

    # ---------------------------
    # Insertion
    # ---------------------------
    def insert(self, points, normals=None, vertex_type=VertexType.INPUT):
        """
        Insert points into the triangulation.

        Parameters
        ----------
        points : array_like of shape (n_points, 3)
            Point coordinates.
        normals : array_like of shape (n_points, 3), optional
            Oriented normals of the points. Zero normals are used when
            omitted.
        vertex_type : VertexType, optional
            Role given to the new vertices. Default INPUT.

        Returns
        -------
        count : int
            Number of vertices created. Points identical to an existing
            vertex (or to an earlier point of the same batch) are skipped.
            An INPUT point identical to a STEINER vertex does not create a
            vertex either: the existing vertex becomes INPUT and takes the
            normal of the point.
        """
        points = np.asarray(points, dtype=float)
        if points.size == 0:
            return 0
        if points.ndim != 2 or points.shape[1] != 3:
            raise ValueError("Points must be an array of shape (n, 3).")
        if normals is None:
            normals = np.zeros_like(points)
        else:
            normals = np.asarray(normals, dtype=float)
            if normals.shape != points.shape:
                raise ValueError("Normals must have the same shape as points.")
        _, first = np.unique(points, axis=0, return_index=True)
        keep = np.sort(first)
        if self.points.shape[0] > 0:
            distances, nearest = cKDTree(self.points).query(points[keep], k=1)
            if vertex_type == VertexType.INPUT:
                upgrade = (distances == 0.0) & (self.types[nearest] == VertexType.STEINER)
                self.types[nearest[upgrade]] = VertexType.INPUT
                self.normals[nearest[upgrade]] = normals[keep[upgrade]]
            keep = keep[distances > 0.0]
        if keep.shape[0] == 0:
            return 0
        n_new = keep.shape[0]
        self.points = np.vstack((self.points, points[keep]))
        self.normals = np.vstack((self.normals, normals[keep]))
        self.types = np.concatenate((self.types, np.full(n_new, int(vertex_type), dtype=np.int8)))
        self.constrained = np.concatenate((self.constrained, np.zeros(n_new, dtype=bool)))
        self.f = np.concatenate((self.f, np.zeros(n_new)))
        self.index = np.concatenate((self.index, np.full(n_new, -1, dtype=np.int64)))
        self._triangulate()
        return int(n_new)

    def insert_steiner(self, points):
        """Insert Steiner points (zero normal, STEINER role, unconstrained)."""
        return self.insert(points, None, vertex_type=VertexType.STEINER)

    def _triangulate(self):
        self._reset_cells()
        if self.points.shape[0] < 4:
            self._dimension = self._affine_dimension()
            return None
        try:
            tri = Delaunay(self.points)
        except QhullError:
            self._dimension = self._affine_dimension()
            return None
        cells = np.array(tri.simplices, dtype=np.int64)
        neighbors = np.array(tri.neighbors, dtype=np.int64)
        # positive orientation: swap the first two vertices (and the
        # neighbors facing them) of negatively oriented cells
        negative = signed_volumes(self.points[cells]) < 0.0
        cells[negative, 0], cells[negative, 1] = cells[negative, 1], cells[negative, 0].copy()
        neighbors[negative, 0], neighbors[negative, 1] = neighbors[negative, 1], neighbors[negative, 0].copy()
        self.delaunay = tri
        self.cells = cells
        self.neighbors = neighbors
        self.duals = circumcenters(self.points[cells])
        self._dimension = 3
        n_vertices = self.points.shape[0]
        self._finite = np.zeros(n_vertices, dtype=bool)
        self._finite[cells.ravel()] = True
        self._hull = np.zeros(n_vertices, dtype=bool)
        self._hull[np.unique(tri.convex_hull)] = True
        flat = cells.ravel()
        order = np.argsort(flat, kind='stable')
        counts = np.bincount(flat, minlength=n_vertices)
        self._vertex_cells_ptr = np.concatenate(([0], np.cumsum(counts))).astype(np.int64)
        self._vertex_cells = (order // 4).astype(np.int64)
        indptr, indices = tri.vertex_neighbor_vertices
        self._vertex_neighbors_ptr = np.array(indptr, dtype=np.int64)
        self._vertex_neighbors = np.array(indices, dtype=np.int64)
        return None

    def _affine_dimension(self):
        if self.points.shape[0] == 0:
            return -1
        centered = self.points - self.points[0]
        return int(np.linalg.matrix_rank(centered)) if centered.shape[0] > 1 else 0

    # ---------------------------
    # Sizes and iteration
    # ---------------------------
    def dimension(self):
        return self._dimension

    def number_of_vertices(self):
        """Number of finite vertices, i.e. vertices belonging to the mesh."""
        return int(np.count_nonzero(self._finite))

    def number_of_cells(self):
        return int(self.cells.shape[0])

    def finite_vertices(self):
        return np.flatnonzero(self._finite)

    def finite_cells(self):
        return np.arange(self.cells.shape[0])

    def is_infinite(self, cell):
        return cell < 0

    def is_infinite_vertex(self, vertex):
        return vertex < 0

    def hull_vertices(self):
        return np.flatnonzero(self._hull & self._finite)

    def is_on_convex_hull(self, vertex):
        return bool(self._hull[vertex])

    def any_vertex_on_convex_hull(self):
        """
        Return a vertex incident to the infinite region, or None when the
        triangulation is empty. The hull vertex farthest from the center of
        the sphere bounding the input points is chosen, the lowest id on
        ties, so the answer is stable across calls.
        """
        vertices = self.hull_vertices()
        if vertices.shape[0] == 0:
            return None
        center = self.input_points_bounding_sphere().center
        distances = np.sum(np.square(self.points[vertices] - center), axis=1)
        return int(vertices[np.argmax(distances)])

    def index_unconstrained_vertices(self):
        """
        Assign dense linear-system indices 0..n-1 to the unconstrained
        finite vertices, in increasing vertex id order.

        Returns
        -------
        n : int
            Number of unconstrained vertices.
        """
        self.index = np.full(self.points.shape[0], -1, dtype=np.int64)
        unconstrained = np.flatnonzero(self._finite & ~self.constrained)
        self.index[unconstrained] = np.arange(unconstrained.shape[0])
        return int(unconstrained.shape[0])

    # ---------------------------
    # Incidence queries
    # ---------------------------
    def incident_cells(self, vertex):
        """
        Cells incident to `vertex`. ``INFINITE`` is appended when the
        vertex lies on the convex hull.
        """
        start, end = self._vertex_cells_ptr[vertex], self._vertex_cells_ptr[vertex + 1]
        cells = self._vertex_cells[start:end]
        if self._hull[vertex]:
            cells = np.append(cells, INFINITE)
        return cells

    def incident_vertices(self, vertex):
        """
        Vertices sharing an edge with `vertex`. ``INFINITE`` is appended
        when the vertex lies on the convex hull.
        """
        start, end = self._vertex_neighbors_ptr[vertex], self._vertex_neighbors_ptr[vertex + 1]
        vertices = self._vertex_neighbors[start:end]
        if self._hull[vertex]:
            vertices = np.append(vertices, INFINITE)
        return vertices

    def cell_index(self, cell, vertex):
        """Local index (0..3) of `vertex` in `cell`."""
        local = np.flatnonzero(self.cells[cell] == vertex)
        if local.shape[0] == 0:
            raise ValueError("Vertex {} is not a vertex of cell {}.".format(vertex, cell))
        return int(local[0])

    def vertex(self, cell, i):
        return int(self.cells[cell, i])

    def is_edge(self, u, v):
        """
        Test whether (u, v) is an edge of the triangulation.

        Returns
        -------
        found : bool
        cell : int
            A finite cell containing the edge (-1 if not found).
        i, j : int
            Local indices of `u` and `v` in `cell`.
        """
        if u < 0 or v < 0 or u == v:
            return False, -1, -1, -1
        for cell in self._vertex_cells[self._vertex_cells_ptr[u]:self._vertex_cells_ptr[u + 1]]:
            row = self.cells[cell]
            if v in row:
                return True, int(cell), int(np.flatnonzero(row == u)[0]), int(np.flatnonzero(row == v)[0])
        return False, -1, -1, -1

    def _walk_around_edge(self, start, a, b, exit_vertex, keep_vertex):
        visited = []
        current, x, y = start, exit_vertex, keep_vertex
        for _ in range(self.cells.shape[0] + 1):
            nxt = int(self.neighbors[current, self.cell_index(current, x)])
            if nxt == -1:
                return visited, False
            if nxt == start:
                return visited, True
            visited.append(nxt)
            row = self.cells[nxt]
            z = int(row[(row != a) & (row != b) & (row != y)][0])
            current, x, y = nxt, y, z
        raise RuntimeError("Circulation around edge ({}, {}) did not terminate.".format(a, b))

    def incident_cells_around_edge(self, cell, i, j):
        """
        Cells sharing the edge given by local indices (i, j) of `cell`,
        in circular order starting from `cell`.

        For an edge on the convex hull the two infinite cells closing the
        ring are reported as ``INFINITE`` entries.
        """
        row = self.cells[cell]
        a, b = int(row[i]), int(row[j])
        others = [int(row[k]) for k in range(4) if k != i and k != j]
        forward, closed = self._walk_around_edge(cell, a, b, others[0], others[1])
        if closed:
            return [int(cell)] + forward
        backward, _ = self._walk_around_edge(cell, a, b, others[1], others[0])
        return list(reversed(backward)) + [int(cell)] + forward + [INFINITE, INFINITE]

    # ---------------------------
    # Geometry
    # ---------------------------
    def point(self, vertex):
        return self.points[vertex]

    def tetrahedron(self, cell):
        return self.points[self.cells[cell]]

    def dual(self, cell):
        """Circumcenter of a finite cell."""
        return self.duals[cell]

    def contains(self, cell, point, tolerance=1e-12):
        """Test whether `point` lies in the finite `cell` (boundary included)."""
        transform = self.delaunay.transform[cell]
        c = transform[:3].dot(np.asarray(point, dtype=float) - transform[3])
        bary = np.append(c, 1.0 - np.sum(c))
        return bool(np.all(bary >= -tolerance))

    def locate(self, point, hint=None):
        """
        Find the finite cell containing `point`.

        Parameters
        ----------
        point : array_like of shape (3,)
        hint : int, optional
            Cell checked first, typically the result of the previous call.

        Returns
        -------
        cell : int
            Containing cell, or ``INFINITE`` when the point is outside the
            mesh.
        """
        if self.delaunay is None:
            return INFINITE
        point = np.asarray(point, dtype=float).reshape(3)
        if hint is not None and 0 <= hint < self.cells.shape[0] and self.contains(hint, point):
            return int(hint)
        cell = int(self.delaunay.find_simplex(point.reshape(1, 3))[0])
        if cell < 0:
            return INFINITE
        return cell

    def input_points_bounding_sphere(self):
        """Sphere bounding the INPUT vertices."""
        return bounding_sphere(self.points[self.types == VertexType.INPUT])

    def to_pyvista(self):
        """
        Export the finite cells as a PyVista unstructured grid.

        The grid carries the point arrays ``f``, ``normals``, ``type`` and
        ``constrained`` so that an external stage can contour the implicit
        function, e.g. ``grid.contour([0.0], scalars='f')``.
        """
        n_cells = self.cells.shape[0]
        cells = np.hstack([np.full((n_cells, 1), 4, dtype=np.int64), self.cells]).ravel()
        celltypes = np.full(n_cells, pv.CellType.TETRA, dtype=np.uint8)
        grid = pv.UnstructuredGrid(cells, celltypes, self.points.copy())
        grid.point_data['f'] = self.f.copy()
        grid.point_data['normals'] = self.normals.copy()
        grid.point_data['type'] = self.types.astype(np.int64)
        grid.point_data['constrained'] = self.constrained.astype(np.int64)
        return grid
