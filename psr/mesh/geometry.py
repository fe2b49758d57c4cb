import numpy as np
from typing import NamedTuple


class Sphere(NamedTuple):
    """
    Sphere given by its center and squared radius.
    """
    center: np.ndarray
    squared_radius: float

    @property
    def radius(self):
        return float(np.sqrt(self.squared_radius))


def bounding_sphere(points):
    """
    Compute a sphere enclosing a set of points.

    The center is the center of the axis-aligned bounding box of the
    points and the radius is the distance to the farthest point.

    Parameters
    ----------
    points : ndarray of shape (n_points, 3)
        Point coordinates.

    Returns
    -------
    sphere : Sphere
        Enclosing sphere. An empty point set yields a sphere of zero
        radius centered at the origin.
    """
    points = np.asarray(points, dtype=float).reshape(-1, 3)
    if points.shape[0] == 0:
        return Sphere(np.zeros(3), 0.0)
    center = 0.5 * (np.min(points, axis=0) + np.max(points, axis=0))
    squared_radius = float(np.max(np.sum(np.square(points - center), axis=1)))
    return Sphere(center, squared_radius)


def enlarge_sphere(sphere, ratio):
    """Scale the radius of a sphere by `ratio`, keeping its center."""
    return Sphere(np.array(sphere.center, dtype=float), sphere.squared_radius * ratio * ratio)


def icosahedron_points(sphere):
    """
    Return the 12 vertices of a regular icosahedron inscribed in `sphere`.
    """
    phi = (1.0 + np.sqrt(5.0)) / 2.0
    vertices = np.array([[-1, phi, 0], [1, phi, 0], [-1, -phi, 0], [1, -phi, 0],
                         [0, -1, phi], [0, 1, phi], [0, -1, -phi], [0, 1, -phi],
                         [phi, 0, -1], [phi, 0, 1], [-phi, 0, -1], [-phi, 0, 1]], dtype=float)
    vertices /= np.linalg.norm(vertices, axis=1).reshape(-1, 1)
    return np.asarray(sphere.center, dtype=float) + sphere.radius * vertices


def signed_volume(a, b, c, d):
    """
    Signed volume of the tetrahedron (a, b, c, d).

    The volume is positive when (a, b, c, d) is positively oriented,
    i.e. when d lies on the side of the plane (a, b, c) pointed to by
    (b - a) x (c - a).
    """
    a = np.asarray(a, dtype=float)
    return float(np.dot(np.cross(np.asarray(b) - a, np.asarray(c) - a), np.asarray(d) - a)) / 6.0


def signed_volumes(tetrahedra):
    """
    Signed volumes of a batch of tetrahedra.

    Parameters
    ----------
    tetrahedra : ndarray of shape (n, 4, 3)

    Returns
    -------
    volumes : ndarray of shape (n,)
    """
    tetrahedra = np.asarray(tetrahedra, dtype=float)
    u = tetrahedra[:, 1] - tetrahedra[:, 0]
    v = tetrahedra[:, 2] - tetrahedra[:, 0]
    w = tetrahedra[:, 3] - tetrahedra[:, 0]
    return np.einsum('ij,ij->i', np.cross(u, v), w) / 6.0


def triangle_area(a, b, c):
    a = np.asarray(a, dtype=float)
    return 0.5 * float(np.linalg.norm(np.cross(np.asarray(b) - a, np.asarray(c) - a)))


def circumcenters(tetrahedra, tolerance=1e-12):
    """
    Circumcenters of a batch of tetrahedra.

    Parameters
    ----------
    tetrahedra : ndarray of shape (n, 4, 3)
        Vertex coordinates of each tetrahedron.
    tolerance : float, optional
        Relative threshold on the scaled volume below which a tetrahedron
        is treated as flat. Flat tetrahedra have no finite circumcenter and
        their centroid is returned instead.

    Returns
    -------
    centers : ndarray of shape (n, 3)

    Notes
    -----
    With u, v, w the edge vectors from the first vertex `a`, the
    circumcenter is

    .. math::

        c = a + \\frac{|u|^2 (v \\times w) + |v|^2 (w \\times u) + |w|^2 (u \\times v)}
                     {2\\, u \\cdot (v \\times w)}
    """
    tetrahedra = np.asarray(tetrahedra, dtype=float).reshape(-1, 4, 3)
    a = tetrahedra[:, 0]
    u = tetrahedra[:, 1] - a
    v = tetrahedra[:, 2] - a
    w = tetrahedra[:, 3] - a
    vxw = np.cross(v, w)
    det = np.einsum('ij,ij->i', u, vxw)
    numerator = (np.sum(u * u, axis=1).reshape(-1, 1) * vxw +
                 np.sum(v * v, axis=1).reshape(-1, 1) * np.cross(w, u) +
                 np.sum(w * w, axis=1).reshape(-1, 1) * np.cross(u, v))
    scale = np.max(np.stack([np.linalg.norm(u, axis=1),
                             np.linalg.norm(v, axis=1),
                             np.linalg.norm(w, axis=1)]), axis=0)
    flat = np.abs(det) <= tolerance * scale ** 3
    centers = np.mean(tetrahedra, axis=1)
    good = ~flat
    centers[good] = a[good] + numerator[good] / (2.0 * det[good]).reshape(-1, 1)
    return centers


def circumcenter(a, b, c, d):
    return circumcenters(np.array([a, b, c, d], dtype=float).reshape(1, 4, 3))[0]


def triangle_circumcenter(a, b, c):
    """
    Circumcenter of the triangle (a, b, c) in 3D.

    Falls back to the centroid for a degenerate (collinear) triangle.
    """
    a = np.asarray(a, dtype=float)
    ab = np.asarray(b, dtype=float) - a
    ac = np.asarray(c, dtype=float) - a
    n = np.cross(ab, ac)
    sq_n = float(np.dot(n, n))
    if sq_n == 0.0:
        return (a + np.asarray(b) + np.asarray(c)) / 3.0
    offset = (np.dot(ac, ac) * np.cross(n, ab) + np.dot(ab, ab) * np.cross(ac, n)) / (2.0 * sq_n)
    return a + offset


def centroid(points):
    return np.mean(np.asarray(points, dtype=float), axis=0)


def sub_volumes(point, tetrahedron):
    """
    Signed volumes of the four tetrahedra obtained by replacing each
    vertex of `tetrahedron` with `point`, together with the signed volume
    of `tetrahedron` itself.

    The sub-tetrahedra keep the orientation of the input tetrahedron so that
    for a point strictly inside all four volumes share the sign of `volume`.
    """
    pa, pb, pc, pd = np.asarray(tetrahedron, dtype=float)
    p = np.asarray(point, dtype=float)
    volume = signed_volume(pa, pb, pc, pd)
    parts = np.array([signed_volume(p, pb, pc, pd),
                      signed_volume(pa, p, pc, pd),
                      signed_volume(pa, pb, p, pd),
                      signed_volume(pa, pb, pc, p)])
    return parts, volume


def has_on_unbounded_side(tetrahedron, point):
    """
    Return True when `point` lies strictly outside `tetrahedron`.

    Points on the boundary of the tetrahedron are not on its unbounded
    side.
    """
    parts, volume = sub_volumes(point, tetrahedron)
    if volume == 0.0:
        return True
    return bool(np.any(parts * np.sign(volume) < 0.0))
