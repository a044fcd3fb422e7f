"""
As-rigid-as-possible mesh deformation (Sorkine & Alexa 2007).

Each solve alternates a local step, fitting one rotation per vertex from the
SVD of its edge covariance, with a global step that solves the sparse
Laplacian-like system for the free vertices, once per coordinate axis.
"""
import logging

import numpy as np
import scipy.sparse as sp
from scipy.sparse.csgraph import connected_components

from config import ARAP_ITERATIONS, FLOAT_DTYPE
from elements import Constraint
from errors import InvalidVertexId, SingularSystem
from sparse_system import SystemBuilder
from triangle_mesh import TriangleMesh
from utils import proper_rotations

logger = logging.getLogger(__name__)


def arap_energy(rest, deformed, weights, rotations):
    """
    Rigidity energy sum_ij w_ij |(p'_i - p'_j) - R_i (p_i - p_j)|^2 over
    every stored entry of the weight matrix.
    """
    W = sp.coo_matrix(weights)
    rest = np.asarray(rest, dtype=FLOAT_DTYPE)
    deformed = np.asarray(deformed, dtype=FLOAT_DTYPE)
    e_rest = rest[W.row] - rest[W.col]
    e_def = deformed[W.row] - deformed[W.col]
    r = np.einsum('eab,eb->ea', rotations[W.row], e_rest)
    return float(np.sum(W.data * np.sum((e_def - r) ** 2, axis=1)))


class ArapDeformer:

    def __init__(self, iterations=ARAP_ITERATIONS):
        self.iterations = int(iterations)
        self.constraints = {}

        self.rest = np.zeros((0, 3), dtype=FLOAT_DTYPE)
        self.triangles = np.zeros((0, 3), dtype=np.int32)
        self.weights = sp.csr_matrix((0, 0), dtype=FLOAT_DTYPE)
        self.rows = np.zeros(0, dtype=np.int64)
        self.cols = np.zeros(0, dtype=np.int64)
        self.vals = np.zeros(0, dtype=FLOAT_DTYPE)

        self.rotations = np.zeros((0, 3, 3), dtype=FLOAT_DTYPE)
        self.energies = []

        self.m_bSetupValid = False
        self.free_idx_map = np.zeros(0, dtype=np.int64)
        self.free_vertices = np.zeros(0, dtype=np.int64)
        self.system = None

    def get_num_vertices(self):
        return self.rest.shape[0]

    def invalidate_setup(self):
        self.m_bSetupValid = False

    def initialize_from_mesh(self, mesh: TriangleMesh):
        n = mesh.get_num_vertices()
        W = sp.csr_matrix(mesh.weights, dtype=FLOAT_DTYPE, copy=True)
        W.eliminate_zeros()
        if W.shape != (n, n):
            raise ValueError(f"weight matrix must be ({n}, {n}), got {W.shape}")

        self.rest = mesh.vertices.astype(FLOAT_DTYPE).copy()
        self.triangles = mesh.triangles.copy()
        self.weights = W
        coo = W.tocoo()
        self.rows = coo.row.astype(np.int64)
        self.cols = coo.col.astype(np.int64)
        self.vals = coo.data.astype(FLOAT_DTYPE)

        self.constraints.clear()
        self.rotations = np.tile(np.eye(3, dtype=FLOAT_DTYPE), (n, 1, 1))
        self.energies = []
        self.system = None
        self.invalidate_setup()
        logger.debug("Deformer initialized: %d vertices, %d weighted edges", n, self.vals.size)

    def _check_vertex(self, vertex_id):
        n = self.get_num_vertices()
        if not 0 <= int(vertex_id) < n:
            raise InvalidVertexId(vertex_id, n)
        return int(vertex_id)

    def set_constraint(self, vertex_id, position):
        vertex_id = self._check_vertex(vertex_id)
        c = Constraint(vertex_id, position)
        if vertex_id in self.constraints:
            # same fixed set, the factorization stays valid
            self.constraints[vertex_id].vConstrainedPos = c.vConstrainedPos
        else:
            self.constraints[vertex_id] = c
            self.invalidate_setup()

    def remove_constraint(self, vertex_id):
        vertex_id = self._check_vertex(vertex_id)
        if self.constraints.pop(vertex_id, None) is not None:
            self.invalidate_setup()

    def clear_constraints(self):
        if self.constraints:
            self.constraints.clear()
            self.invalidate_setup()

    def is_fixed(self, vertex_id):
        return int(vertex_id) in self.constraints

    def validate_setup(self):
        if self.m_bSetupValid:
            return

        n = self.get_num_vertices()
        fixed = np.zeros(n, dtype=bool)
        fixed[np.fromiter(self.constraints.keys(), dtype=np.int64)] = True

        # dense rank among free vertices in ascending vertex order, -1 when fixed
        self.free_vertices = np.flatnonzero(~fixed)
        self.free_idx_map = np.full(n, -1, dtype=np.int64)
        self.free_idx_map[self.free_vertices] = np.arange(self.free_vertices.size)

        if self.free_vertices.size == 0:
            self.system = None
            self.m_bSetupValid = True
            return

        self._check_anchored(fixed)

        idx_i = self.free_idx_map[self.rows]
        idx_j = self.free_idx_map[self.cols]
        free_row = idx_i >= 0
        both_free = free_row & (idx_j >= 0)

        builder = SystemBuilder(self.free_vertices.size)
        builder.add(idx_i[free_row], idx_i[free_row], self.vals[free_row])
        builder.add(idx_i[both_free], idx_j[both_free], -self.vals[both_free])
        logger.debug("Assembling %d free / %d fixed system from %d triplets",
                     self.free_vertices.size, n - self.free_vertices.size, builder.num_entries())
        self.system = builder.factorize()

        self.m_bSetupValid = True

    def _check_anchored(self, fixed):
        # every connected piece holding a free vertex needs a fixed vertex,
        # otherwise its block of L has the constant vector in its null space
        _, labels = connected_components(self.weights, directed=False)
        anchored = np.zeros(labels.max() + 1, dtype=bool)
        anchored[labels[fixed]] = True
        floating = ~fixed & ~anchored[labels]
        if np.any(floating):
            count = int(np.count_nonzero(floating))
            logger.warning("%d free vertices are not connected to any constraint", count)
            raise SingularSystem(f"{count} free vertices are not connected to any constraint")

    def solve(self, positions):
        """
        Runs the local/global iterations starting from positions and
        returns the deformed (N, 3) positions. Constrained vertices come
        back exactly at their targets.
        """
        n = self.get_num_vertices()
        vprime = np.array(positions, dtype=FLOAT_DTYPE)
        if vprime.shape != (n, 3):
            raise ValueError(f"positions must have shape ({n}, 3), got {vprime.shape}")

        self.initialize_rotations()
        self.validate_setup()
        for c in self.constraints.values():
            vprime[c.nVertex] = c.vConstrainedPos
        self.energies = []

        if self.system is None:
            return vprime

        b_fixed = self.fixed_rhs(vprime)
        for it in range(self.iterations):
            self.estimate_rotations(vprime)
            self.estimate_positions(vprime, b_fixed)
            self.energies.append(self.energy(vprime))
            logger.debug("ARAP iteration %d: energy %.6g", it, self.energies[-1])
        return vprime

    def update_deformed_mesh(self, mesh: TriangleMesh):
        mesh.vertices = self.solve(mesh.vertices)

    def initialize_rotations(self):
        self.rotations = np.tile(np.eye(3, dtype=FLOAT_DTYPE), (self.get_num_vertices(), 1, 1))

    def fixed_rhs(self, vprime):
        idx_i = self.free_idx_map[self.rows]
        mask = (idx_i >= 0) & (self.free_idx_map[self.cols] < 0)
        b_fixed = np.zeros((self.free_vertices.size, 3), dtype=FLOAT_DTYPE)
        np.add.at(b_fixed, idx_i[mask], self.vals[mask, None] * vprime[self.cols[mask]])
        return b_fixed

    def estimate_rotations(self, vprime):
        e_rest = self.rest[self.rows] - self.rest[self.cols]
        e_def = vprime[self.rows] - vprime[self.cols]
        cov = np.zeros((self.get_num_vertices(), 3, 3), dtype=FLOAT_DTYPE)
        np.add.at(cov, self.rows, self.vals[:, None, None] * e_rest[:, :, None] * e_def[:, None, :])
        self.rotations = proper_rotations(cov)

    def estimate_positions(self, vprime, b_fixed):
        b = b_fixed.copy()
        idx_i = self.free_idx_map[self.rows]
        mask = idx_i >= 0
        i, j = self.rows[mask], self.cols[mask]
        r = self.rotations[i] + self.rotations[j]
        p = np.einsum('eab,eb->ea', r, self.rest[i] - self.rest[j])
        np.add.at(b, idx_i[mask], 0.5 * self.vals[mask, None] * p)

        for axis in range(3):
            vprime[self.free_vertices, axis] = self.system.solve(b[:, axis])

    def energy(self, vprime):
        return arap_energy(self.rest, vprime, self.weights, self.rotations)
