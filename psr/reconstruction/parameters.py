class ReconstructionParameters(object):
    """Numerical settings that steer the implicit function computation.

    Attributes
    ----------
    radius_edge_ratio_bound : float
        Upper bound on the ratio between the circumradius of a cell and its
        shortest edge during refinement. Zero disables the shape criterion.
    cell_radius_factor : float
        Upper bound on the circumradius of a cell, expressed as a fraction
        of the radius of the sphere bounding the input points. Zero
        disables the size criterion.
    max_vertices : int
        Vertex budget of the refinement.
    enlarge_ratio : float
        Scaling applied to the bounding sphere of the input points to
        obtain the region in which Steiner points are inserted.
    lam : float
        Regularization added to the diagonal of the rows of input vertices.
    nnz_per_row : int
        Expected number of non-zeros per matrix row, used to preallocate
        the sparse system.
    normalized_divergence : bool
        Use the solid-angle weighted divergence instead of the default one.
    seed_enlarged_sphere : bool
        Insert the vertices of an icosahedron inscribed in the enlarged
        sphere before refining, so that the mesh extends beyond the input
        points. Off by default.
    verbose : bool
        Show progress bars and print phase timings.
    """
    def __init__(self):
        self.radius_edge_ratio_bound = 2.5
        self.cell_radius_factor = 0.2
        self.max_vertices = 10000000
        self.enlarge_ratio = 1.5
        self.lam = 0.1
        self.nnz_per_row = 9
        self.normalized_divergence = False
        self.seed_enlarged_sphere = False
        self.verbose = False

    def __str__(self):
        return (
            "Reconstruction Parameters:\n"
            "--------------------------\n"
            f"Radius Edge Ratio Bound: {self.radius_edge_ratio_bound}\n"
            f"Cell Radius Factor: {self.cell_radius_factor}\n"
            f"Max Vertices: {self.max_vertices}\n"
            f"Enlarge Ratio: {self.enlarge_ratio}\n"
            f"Lambda: {self.lam}\n"
            f"Non-zeros Per Row: {self.nnz_per_row}\n"
            f"Normalized Divergence: {self.normalized_divergence}\n"
            f"Seed Enlarged Sphere: {self.seed_enlarged_sphere}\n"
            f"Verbose: {self.verbose}"
        )

    def __repr__(self):
        return self.__str__()

    @staticmethod
    def _non_negative(parameter, value):
        if value < 0:
            raise ValueError("Parameter {} must be non-negative.".format(parameter))
        return value

    def set(self, parameter, value):
        """Update a named parameter.

        Parameters
        ----------
        parameter : str
            One of ``{'radius_edge_ratio_bound', 'cell_radius_factor',
            'max_vertices', 'enlarge_ratio', 'lam', 'nnz_per_row',
            'normalized_divergence', 'seed_enlarged_sphere', 'verbose'}``.
        value : Any
            New value assigned to the corresponding attribute.
        """
        if parameter == 'radius_edge_ratio_bound':
            self.radius_edge_ratio_bound = float(self._non_negative(parameter, value))
        elif parameter == 'cell_radius_factor':
            self.cell_radius_factor = float(self._non_negative(parameter, value))
        elif parameter == 'max_vertices':
            if int(value) < 1:
                raise ValueError("Parameter max_vertices must be positive.")
            self.max_vertices = int(value)
        elif parameter == 'enlarge_ratio':
            if value < 1.0:
                raise ValueError("Parameter enlarge_ratio must be at least 1.")
            self.enlarge_ratio = float(value)
        elif parameter == 'lam':
            self.lam = float(self._non_negative(parameter, value))
        elif parameter == 'nnz_per_row':
            if int(value) < 1:
                raise ValueError("Parameter nnz_per_row must be positive.")
            self.nnz_per_row = int(value)
        elif parameter == 'normalized_divergence':
            self.normalized_divergence = bool(value)
        elif parameter == 'seed_enlarged_sphere':
            self.seed_enlarged_sphere = bool(value)
        elif parameter == 'verbose':
            self.verbose = bool(value)
        else:
            raise ValueError("Invalid parameter: {}.".format(parameter))
        return None
