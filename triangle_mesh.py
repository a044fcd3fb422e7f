import numpy as np
import scipy.sparse as sp

from config import FLOAT_DTYPE


class TriangleMesh:
    """
    Host-side mesh bundle consumed by the deformer and the ray picker:
    vertex positions (N, 3), triangles (M, 3), the symmetric edge weight
    matrix W (N, N), per-vertex normals (N, 3) and a flattened BVH node list.
    """

    def __init__(self, vertices=None, triangles=None, weights=None, normals=None, nodes=None):
        self.clear()
        if vertices is not None:
            self.set_vertices(vertices)
        if triangles is not None:
            self.set_triangles(triangles)
        if weights is not None:
            self.set_weights(weights)
        if normals is not None:
            self.set_normals(normals)
        if nodes is not None:
            self.nodes = list(nodes)

    def clear(self):
        self.vertices = np.zeros((0, 3), dtype=FLOAT_DTYPE)
        self.triangles = np.zeros((0, 3), dtype=np.int32)
        self.weights = sp.csr_matrix((0, 0), dtype=FLOAT_DTYPE)
        self.normals = np.zeros((0, 3), dtype=FLOAT_DTYPE)
        self.nodes = []

    def set_vertices(self, vertices):
        v = np.asarray(vertices, dtype=FLOAT_DTYPE)
        if v.ndim != 2 or v.shape[1] != 3:
            raise ValueError(f"vertices must have shape (N, 3), got {v.shape}")
        self.vertices = v.copy()

    def set_triangles(self, triangles):
        t = np.asarray(triangles, dtype=np.int32)
        if t.ndim != 2 or t.shape[1] != 3:
            raise ValueError(f"triangles must have shape (M, 3), got {t.shape}")
        if t.size and (t.min() < 0 or t.max() >= self.get_num_vertices()):
            raise ValueError("triangle index out of range")
        self.triangles = t.copy()

    def set_weights(self, weights):
        W = sp.csr_matrix(weights, dtype=FLOAT_DTYPE)
        n = self.get_num_vertices()
        if W.shape != (n, n):
            raise ValueError(f"weight matrix must be ({n}, {n}), got {W.shape}")
        if W.nnz and abs(W - W.T).max() > 1e-9 * max(1.0, abs(W).max()):
            raise ValueError("weight matrix must be symmetric")
        W.eliminate_zeros()
        self.weights = W

    def set_normals(self, normals):
        nrm = np.asarray(normals, dtype=FLOAT_DTYPE)
        if nrm.shape != self.vertices.shape:
            raise ValueError(f"normals must have shape {self.vertices.shape}, got {nrm.shape}")
        self.normals = nrm.copy()

    def get_num_vertices(self):
        return self.vertices.shape[0]

    def get_num_triangles(self):
        return self.triangles.shape[0]

    def get_vertex(self, i):
        return self.vertices[i].copy()

    def set_vertex(self, i, v):
        self.vertices[i] = v

    def get_triangle_indices(self, i):
        return self.triangles[i].copy()

    def get_triangle_vertices(self, i):
        idx = self.triangles[i]
        return self.vertices[idx].copy()

    def get_bounding_box(self):
        if self.get_num_vertices() == 0:
            return np.array([0, 0, 0, 0, 0, 0], dtype=FLOAT_DTYPE)
        mn = self.vertices.min(axis=0)
        mx = self.vertices.max(axis=0)
        return np.array([mn[0], mx[0], mn[1], mx[1], mn[2], mx[2]], dtype=FLOAT_DTYPE)

    def copy(self):
        m = TriangleMesh()
        m.vertices = self.vertices.copy()
        m.triangles = self.triangles.copy()
        m.weights = self.weights.copy()
        m.normals = self.normals.copy()
        m.nodes = list(self.nodes)
        return m
