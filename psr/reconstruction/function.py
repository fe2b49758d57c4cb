import warnings
import numpy as np
from time import perf_counter
from typing import Optional
from psr.mesh.geometry import enlarge_sphere
from psr.mesh.refine import refine_triangulation
from psr.mesh.triangulation import ReconstructionTriangulation
from psr.reconstruction.assemble import assemble_poisson_system
from psr.reconstruction.evaluate import FieldEvaluator
from psr.reconstruction.normalize import (constrain_one_vertex_on_convex_hull,
                                          median_value_at_input_vertices,
                                          set_contouring_value)
from psr.reconstruction.parameters import ReconstructionParameters


class PoissonReconstructionFunction(object):
    def __init__(self, triangulation: Optional[ReconstructionTriangulation] = None,
                 points=None, normals=None, *, parameters: Optional[ReconstructionParameters] = None):
        """
        The PoissonReconstructionFunction class defines an implicit
        function whose zero level-set approximates the surface sampled by
        a set of oriented points. The function is negative inside the
        inferred solid and positive outside.

        Parameters
        ----------
        triangulation : ReconstructionTriangulation, optional
            Triangulation holding the points. A new one is created when
            omitted.
        points : array_like of shape (n_points, 3), optional
            Points inserted at construction.
        normals : array_like of shape (n_points, 3), optional
            Oriented normals of `points`.
        parameters : ReconstructionParameters, optional
            Numerical settings, defaults when omitted.
        """
        if triangulation is None:
            triangulation = ReconstructionTriangulation()
        self.triangulation = triangulation
        if parameters is None:
            self.parameters = ReconstructionParameters()
        else:
            self.parameters = parameters
        self.evaluator = FieldEvaluator(self.triangulation)
        self.times = {'refinement': 0.0,
                      'assembly': 0.0,
                      'factorization': 0.0,
                      'solve': 0.0}
        if points is not None:
            self.insert(points, normals)

    def insert(self, points, normals):
        """
        Insert oriented points.

        :meth:`compute_implicit_function` must be called again after each
        insertion.

        Returns
        -------
        count : int
            Number of points inserted.
        """
        self.evaluator.reset()
        return self.triangulation.insert(points, normals)

    def clear(self):
        """Remove all points."""
        self.triangulation.clear()
        self.evaluator.reset()
        self.evaluator.sink = np.zeros(3)
        return None

    def bounding_sphere(self):
        """Sphere bounding the input points."""
        return self.triangulation.input_points_bounding_sphere()

    def enlarged_bounding_sphere(self, ratio):
        return enlarge_sphere(self.bounding_sphere(), ratio)

    def compute_implicit_function(self):
        """
        Compute the implicit function at every vertex of the triangulation.

        The triangulation is refined, the Poisson equation is solved for
        the vertex values, and the field is shifted and oriented so that
        it vanishes at the input points (in the median sense) and is
        negative inside the inferred surface.

        Returns
        -------
        success : bool
            False when the triangulation is empty or the linear solver
            fails.
        """
        if self.triangulation.number_of_vertices() == 0:
            warnings.warn("Cannot compute an implicit function without points.", UserWarning)
            return False
        parameters = self.parameters
        size = self.bounding_sphere().radius
        start = perf_counter()
        nb_vertices_added = self.delaunay_refinement(parameters.radius_edge_ratio_bound,
                                                     parameters.cell_radius_factor * size,
                                                     parameters.max_vertices,
                                                     parameters.enlarge_ratio)
        self.times['refinement'] = perf_counter() - start
        if parameters.verbose:
            print("Delaunay refinement: added {} Steiner points, {:.3f} seconds".format(
                nb_vertices_added, self.times['refinement']))
        if not self.solve_poisson(parameters.lam, is_normalized=parameters.normalized_divergence):
            print("Error: cannot solve Poisson equation")
            return False
        self.set_contouring_value(self.median_value_at_input_vertices())
        if parameters.verbose:
            print("Solve Poisson equation: assembly {:.3f} s, factorization {:.3f} s, solve {:.3f} s".format(
                self.times['assembly'], self.times['factorization'], self.times['solve']))
        return True

    def delaunay_refinement(self, radius_edge_ratio_bound, cell_radius_bound, max_vertices, enlarge_ratio):
        """
        Break badly shaped or too big cells by inserting Steiner points
        with a zero normal.

        Returns
        -------
        count : int
            Number of vertices inserted.
        """
        self.evaluator.reset()
        enlarged_sphere = self.enlarged_bounding_sphere(enlarge_ratio)
        return refine_triangulation(self.triangulation, radius_edge_ratio_bound, cell_radius_bound,
                                    max_vertices, enlarged_sphere,
                                    seed_sphere=self.parameters.seed_enlarged_sphere,
                                    verbose=self.parameters.verbose)

    def solve_poisson(self, lam, is_normalized=False):
        """
        Solve for the field value of every unconstrained vertex.

        At least one vertex is constrained: when none is, a convex-hull
        vertex is fixed to zero.

        Parameters
        ----------
        lam : float
            Regularization added to the diagonal of INPUT vertices.
        is_normalized : bool, optional
            Use the solid-angle weighted divergence.

        Returns
        -------
        success : bool
        """
        tr = self.triangulation
        nb_variables = tr.index_unconstrained_vertices()
        if nb_variables == tr.number_of_vertices():
            constrain_one_vertex_on_convex_hull(tr)
            nb_variables = tr.index_unconstrained_vertices()
        start = perf_counter()
        solver, B = assemble_poisson_system(tr, lam, is_normalized=is_normalized,
                                            nnz_per_row=self.parameters.nnz_per_row,
                                            verbose=self.parameters.verbose)
        self.times['assembly'] = perf_counter() - start
        start = perf_counter()
        success = solver.factorize()
        self.times['factorization'] = perf_counter() - start
        if not success:
            return False
        X = np.zeros(nb_variables)
        start = perf_counter()
        success = solver.solve(B, X)
        self.times['solve'] = perf_counter() - start
        if not success:
            return False
        unknowns = tr.index >= 0
        tr.f[unknowns] = X[tr.index[unknowns]]
        return True

    def set_contouring_value(self, contouring_value):
        """
        Shift and orient the field so that `contouring_value` becomes the
        zero level and the field is negative inside.

        Returns
        -------
        minimum : float
            Lowest field value after normalization.
        """
        return set_contouring_value(self.triangulation, self.evaluator, contouring_value)

    def median_value_at_input_vertices(self):
        return median_value_at_input_vertices(self.triangulation)

    def get_inner_point(self):
        """Point with the lowest field value, inside the inferred surface."""
        return self.evaluator.sink

    def evaluate(self, point):
        """Field value at `point`, ``1e38`` outside the triangulation."""
        return self.evaluator.evaluate(point)

    def f(self, point):
        return self.evaluator(point)

    def __call__(self, point):
        return self.evaluator(point)
