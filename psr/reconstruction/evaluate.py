import numpy as np
from psr.mesh.geometry import sub_volumes


UNDEFINED = 1e38


def barycentric_coordinates(point, tetrahedron):
    """
    Barycentric coordinates of `point` in `tetrahedron`.

    Each coordinate is the absolute ratio between the volume of the
    tetrahedron obtained by replacing one vertex with `point` and the
    volume of `tetrahedron`, so the result does not depend on the vertex
    order. For a point inside the tetrahedron the four coordinates lie in
    [0, 1] and sum to one.

    Parameters
    ----------
    point : array_like of shape (3,)
    tetrahedron : array_like of shape (4, 3)

    Returns
    -------
    weights : ndarray of shape (4,)
        Coordinates, or None for a flat tetrahedron.
    """
    parts, volume = sub_volumes(point, tetrahedron)
    if volume == 0.0:
        return None
    return np.abs(parts / volume)


class FieldEvaluator(object):
    """
    Piecewise-linear evaluation of the vertex field of a triangulation.

    Each evaluator keeps the cell found by the last query as a hint for
    the next one. The hint only speeds up location and never changes the
    returned values. An evaluator must not be shared between threads.

    Attributes
    ----------
    triangulation : ReconstructionTriangulation
    hint : int or None
        Cell located by the previous query.
    sink : ndarray of shape (3,)
        Position of the vertex with the lowest field value, set by the
        last normalization of the field.
    """
    def __init__(self, triangulation):
        self.triangulation = triangulation
        self.hint = None
        self.sink = np.zeros(3)

    def reset(self):
        self.hint = None

    def evaluate(self, point):
        """
        Field value at `point`, or ``UNDEFINED`` outside the mesh.
        """
        point = np.asarray(point, dtype=float).reshape(3)
        tr = self.triangulation
        cell = tr.locate(point, hint=self.hint)
        if tr.is_infinite(cell):
            return UNDEFINED
        self.hint = cell
        row = tr.cells[cell]
        tet = tr.points[row]
        coincident = np.flatnonzero(np.all(tet == point, axis=1))
        if coincident.shape[0] > 0:
            return float(tr.f[row[coincident[0]]])
        weights = barycentric_coordinates(point, tet)
        if weights is None:
            return float(np.mean(tr.f[row]))
        return float(np.dot(weights, tr.f[row]))

    def __call__(self, points):
        """
        Evaluate the field at a single point of shape (3,) or at an array
        of points of shape (n, 3).
        """
        points = np.asarray(points, dtype=float)
        if points.ndim == 1:
            return self.evaluate(points)
        values = np.empty(points.shape[0])
        for k in range(points.shape[0]):
            values[k] = self.evaluate(points[k])
        return values
