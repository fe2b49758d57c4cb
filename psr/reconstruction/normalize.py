import warnings
import numpy as np
from psr.mesh.triangulation import VertexType
from psr.reconstruction.evaluate import UNDEFINED


def median_value_at_input_vertices(triangulation):
    """
    Median of the field over the INPUT vertices.

    For an even number of values the two middle values are averaged.
    Without INPUT vertices a warning is emitted and 0 is returned.
    """
    finite = np.zeros(triangulation.points.shape[0], dtype=bool)
    finite[triangulation.finite_vertices()] = True
    values = triangulation.f[finite & (triangulation.types == VertexType.INPUT)]
    if values.shape[0] == 0:
        warnings.warn("Contouring: no input points", UserWarning)
        return 0.0
    return float(np.median(values))


def shift_f(triangulation, shift):
    triangulation.f += shift
    return None


def flip_f(triangulation):
    triangulation.f *= -1.0
    return None


def constrain_one_vertex_on_convex_hull(triangulation, value=0.0):
    """
    Fix the field value of one convex-hull vertex.

    Returns
    -------
    vertex : int or None
        Constrained vertex, None for an empty triangulation.
    """
    vertex = triangulation.any_vertex_on_convex_hull()
    if vertex is None:
        return None
    triangulation.constrained[vertex] = True
    triangulation.f[vertex] = value
    return vertex


def find_sink(triangulation):
    """
    Vertex position with the lowest field value and that value.

    An empty triangulation yields the origin and ``UNDEFINED``.
    """
    vertices = triangulation.finite_vertices()
    if vertices.shape[0] == 0:
        return np.zeros(3), UNDEFINED
    sink = vertices[np.argmin(triangulation.f[vertices])]
    return triangulation.points[sink].copy(), float(triangulation.f[sink])


def set_contouring_value(triangulation, evaluator, contouring_value):
    """
    Shift the field so that `contouring_value` becomes zero and orient it
    negative inside the solid.

    The field is flipped when a convex-hull vertex ends up negative. The
    sink of `evaluator` is updated.

    Returns
    -------
    minimum : float
        Lowest field value after normalization.
    """
    shift_f(triangulation, -contouring_value)
    vertex = triangulation.any_vertex_on_convex_hull()
    if vertex is not None and triangulation.f[vertex] < 0.0:
        flip_f(triangulation)
    evaluator.sink, minimum = find_sink(triangulation)
    return minimum
