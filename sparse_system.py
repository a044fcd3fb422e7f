import logging

import numpy as np
import scipy.sparse as sp
from scipy.sparse.linalg import splu

from config import FLOAT_DTYPE
from errors import SingularSystem

logger = logging.getLogger(__name__)


class SystemBuilder:
    """
    Accumulates (row, col, value) triplets for a square sparse system.
    Duplicate entries are summed when the system is finalized.
    """

    def __init__(self, size):
        self.size = int(size)
        self._rows = []
        self._cols = []
        self._vals = []

    def add(self, row, col, value):
        self._rows.append(np.atleast_1d(np.asarray(row, dtype=np.int64)))
        self._cols.append(np.atleast_1d(np.asarray(col, dtype=np.int64)))
        self._vals.append(np.atleast_1d(np.asarray(value, dtype=FLOAT_DTYPE)))

    def num_entries(self):
        return int(sum(r.size for r in self._rows))

    def to_csc(self):
        if self._rows:
            rows = np.concatenate(self._rows)
            cols = np.concatenate(self._cols)
            vals = np.concatenate(self._vals)
        else:
            rows = cols = np.zeros(0, dtype=np.int64)
            vals = np.zeros(0, dtype=FLOAT_DTYPE)
        return sp.coo_matrix((vals, (rows, cols)), shape=(self.size, self.size)).tocsc()

    def factorize(self):
        return FactorizedSystem(self.to_csc())


class FactorizedSystem:
    """
    Immutable factorized matrix. solve() accepts a single right-hand side
    of shape (n,) or one column per axis, shape (n, k).
    """

    def __init__(self, matrix):
        self.matrix = matrix
        self.size = matrix.shape[0]
        try:
            self._lu = splu(matrix)
        except RuntimeError as e:
            raise SingularSystem(f"factorization failed: {e}") from e
        logger.debug("Factorized %dx%d system with %d nonzeros", self.size, self.size, matrix.nnz)

    def solve(self, rhs):
        b = np.asarray(rhs, dtype=FLOAT_DTYPE)
        if b.shape[0] != self.size:
            raise ValueError(f"right-hand side has {b.shape[0]} rows, expected {self.size}")
        x = self._lu.solve(b)
        if not np.all(np.isfinite(x)):
            raise SingularSystem("solution contains non-finite values")
        return x
