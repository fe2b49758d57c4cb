import numpy
import pyvista


def read(data, **kwargs):
    """
    Extract oriented points from a surface mesh.

    Parameters:
        data: pyvista.PolyData
            Surface sampled by the points. Point normals are computed by
            PyVista and oriented consistently outward.
        **kwargs:
            feature_angle: float
                Angle used to determine sharp edges for normal computation.

    Returns:
        points: numpy.ndarray
            Array of point coordinates from the mesh.
        normals: numpy.ndarray
            Array of computed unit point normals from the mesh.
    """
    feature_angle = kwargs.get("feature_angle", 30.0)

    if not isinstance(data, pyvista.PolyData):
        raise TypeError("Input data must be a PyVista PolyData object.")

    data = data.compute_normals(split_vertices=True, feature_angle=feature_angle,
                                auto_orient_normals=True)

    points = numpy.asarray(data.points, dtype=numpy.float64)
    normals = numpy.asarray(data.point_data['Normals'], dtype=numpy.float64)
    return points, normals
