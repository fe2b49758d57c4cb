import numpy as np
from scipy import sparse
from scipy.sparse.linalg import splu


class SparseSolver(object):
    """
    Row-wise assembled sparse symmetric system solved by a SuperLU
    factorization.

    Parameters
    ----------
    dimension : int
        Number of rows (and columns) of the system.
    nnz_per_row : int, optional
        Expected number of non-zeros per row, used to preallocate the
        coordinate buffers. Default 9.
    """
    def __init__(self, dimension, nnz_per_row=9):
        if dimension < 0:
            raise ValueError("Dimension must be non-negative.")
        self.dimension = int(dimension)
        capacity = max(self.dimension * int(nnz_per_row), 1)
        self._rows = np.zeros(capacity, dtype=np.int64)
        self._cols = np.zeros(capacity, dtype=np.int64)
        self._data = np.zeros(capacity)
        self._nnz = 0
        self._row = -1
        self._in_row = False
        self._matrix = None
        self.lu = None

    def begin_row(self):
        if self._in_row:
            raise RuntimeError("end_row() must be called before starting a new row.")
        if self._row + 1 >= self.dimension:
            raise RuntimeError("All {} rows have already been assembled.".format(self.dimension))
        self._row += 1
        self._in_row = True
        self._matrix = None
        return self._row

    def add_value(self, column, value):
        if not self._in_row:
            raise RuntimeError("add_value() called outside of a row.")
        if not 0 <= column < self.dimension:
            raise ValueError("Column {} out of range.".format(column))
        if self._nnz == self._data.shape[0]:
            self._rows = np.concatenate((self._rows, np.zeros_like(self._rows)))
            self._cols = np.concatenate((self._cols, np.zeros_like(self._cols)))
            self._data = np.concatenate((self._data, np.zeros_like(self._data)))
        self._rows[self._nnz] = self._row
        self._cols[self._nnz] = column
        self._data[self._nnz] = value
        self._nnz += 1

    def end_row(self):
        if not self._in_row:
            raise RuntimeError("end_row() called without begin_row().")
        self._in_row = False

    def matrix(self):
        """Assembled matrix as a ``scipy.sparse.csc_matrix`` (duplicates summed)."""
        if self._matrix is None:
            self._matrix = sparse.coo_matrix((self._data[:self._nnz],
                                              (self._rows[:self._nnz], self._cols[:self._nnz])),
                                             shape=(self.dimension, self.dimension)).tocsc()
        return self._matrix

    def factorize(self):
        """
        Factorize the assembled matrix.

        Returns
        -------
        success : bool
            False when the matrix holds non-finite entries, a non-positive
            diagonal, is singular, or yields a non-positive pivot (the
            matrix is then not positive definite).
        """
        self.lu = None
        if self.dimension == 0:
            return True
        A = self.matrix()
        if not np.all(np.isfinite(A.data)):
            return False
        if np.any(A.diagonal() <= 0.0):
            return False
        try:
            lu = splu(A, permc_spec='MMD_AT_PLUS_A', diag_pivot_thresh=0.0,
                      options=dict(SymmetricMode=True))
        except RuntimeError:
            return False
        pivots = lu.U.diagonal()
        if not np.all(np.isfinite(pivots)) or np.any(pivots <= 0.0):
            return False
        self.lu = lu
        return True

    def solve(self, B, X):
        """
        Solve ``A X = B`` with the current factorization.

        Parameters
        ----------
        B : ndarray of shape (dimension,)
        X : ndarray of shape (dimension,)
            Filled in place with the solution.

        Returns
        -------
        success : bool
        """
        if self.dimension == 0:
            return True
        if self.lu is None:
            return False
        solution = self.lu.solve(np.asarray(B, dtype=float))
        if not np.all(np.isfinite(solution)):
            return False
        X[:] = solution
        return True
