import numpy as np
from scipy.spatial import cKDTree
from tqdm import tqdm
from psr.mesh.geometry import icosahedron_points


def cell_quality(triangulation):
    """
    Circumradius and radius-to-shortest-edge ratio of every finite cell.

    Parameters
    ----------
    triangulation : ReconstructionTriangulation

    Returns
    -------
    radii : ndarray of shape (n_cells,)
        Circumradius of each cell.
    ratios : ndarray of shape (n_cells,)
        Circumradius divided by the shortest edge of each cell.
    """
    tetrahedra = triangulation.points[triangulation.cells]
    radii = np.linalg.norm(triangulation.duals - tetrahedra[:, 0], axis=1)
    edges = []
    for i in range(4):
        for j in range(i + 1, 4):
            edges.append(np.linalg.norm(tetrahedra[:, i] - tetrahedra[:, j], axis=1))
    shortest = np.min(np.stack(edges, axis=1), axis=1)
    with np.errstate(divide='ignore', invalid='ignore'):
        ratios = np.where(shortest > 0.0, radii / shortest, np.inf)
    return radii, ratios


def select_steiner_points(centers, radii, budget):
    """
    Greedily select a batch of refinement points.

    Candidates are visited by decreasing circumradius and a candidate is
    kept only when no point kept before it lies inside its circumsphere.
    Kept points are therefore farther apart than the circumradius of the
    smaller of the two cells. A kept point may still lie inside the
    circumsphere of a cell kept before it, so the batch is not guaranteed
    to match a one-by-one insertion.
    """
    order = np.argsort(-radii, kind='stable')
    centers = centers[order]
    radii = radii[order]
    tree = cKDTree(centers)
    accepted = np.zeros(centers.shape[0], dtype=bool)
    for k in range(centers.shape[0]):
        if np.count_nonzero(accepted) >= budget:
            break
        nearby = tree.query_ball_point(centers[k], radii[k])
        if not np.any(accepted[nearby]):
            accepted[k] = True
    return centers[accepted]


def refine_triangulation(triangulation, radius_edge_ratio_bound, cell_radius_bound,
                         max_vertices, enlarged_sphere, seed_sphere=False, verbose=False):
    """
    Insert Steiner points until the cells of the triangulation satisfy
    shape and size bounds.

    A cell is refined when its radius-to-shortest-edge ratio exceeds
    `radius_edge_ratio_bound` or its circumradius exceeds
    `cell_radius_bound` and its circumcenter lies strictly inside
    `enlarged_sphere`. The circumcenter of each refined cell is inserted as
    a STEINER vertex. With `seed_sphere`, the vertices of an icosahedron
    inscribed in the enlarged sphere are inserted before the quality loop
    so that the mesh extends beyond the input points.

    Parameters
    ----------
    triangulation : ReconstructionTriangulation
        Triangulation refined in place.
    radius_edge_ratio_bound : float
        Shape bound. Zero disables the criterion.
    cell_radius_bound : float
        Size bound. Zero disables the criterion.
    max_vertices : int
        Refinement stops once the triangulation holds this many vertices.
    enlarged_sphere : Sphere
        Region in which Steiner points may be placed.
    seed_sphere : bool, optional
        Insert the icosahedron shell before refining. Default False.
    verbose : bool, optional
        Display a progress bar. Default False.

    Returns
    -------
    inserted : int
        Number of Steiner points inserted.
    """
    inserted = 0
    if triangulation.number_of_vertices() == 0:
        return inserted
    center = np.asarray(enlarged_sphere.center, dtype=float)
    if seed_sphere and enlarged_sphere.squared_radius > 0.0 and triangulation.number_of_vertices() + 12 <= max_vertices:
        inserted += triangulation.insert_steiner(icosahedron_points(enlarged_sphere))
    pbar = tqdm(desc='Refining mesh ', unit='point', leave=False, disable=not verbose)
    pbar.update(inserted)
    while triangulation.dimension() == 3:
        budget = max_vertices - triangulation.number_of_vertices()
        if budget <= 0:
            break
        radii, ratios = cell_quality(triangulation)
        bad = np.zeros(radii.shape[0], dtype=bool)
        if radius_edge_ratio_bound > 0.0:
            bad |= ratios > radius_edge_ratio_bound
        if cell_radius_bound > 0.0:
            bad |= radii > cell_radius_bound
        inside = np.sum(np.square(triangulation.duals - center), axis=1) < enlarged_sphere.squared_radius
        candidates = np.flatnonzero(bad & inside)
        if candidates.shape[0] == 0:
            break
        points = select_steiner_points(triangulation.duals[candidates], radii[candidates], budget)
        count = triangulation.insert_steiner(points)
        if count == 0:
            break
        inserted += count
        pbar.update(count)
    pbar.close()
    return inserted
