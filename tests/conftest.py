import numpy as np
import pytest
import scipy.sparse as sp

from triangle_mesh import TriangleMesh


def uniform_weights(num_vertices, triangles):
    """Symmetric unit weights on every mesh edge."""
    tris = np.asarray(triangles, dtype=np.int64)
    i = np.concatenate([tris[:, 0], tris[:, 1], tris[:, 2]])
    j = np.concatenate([tris[:, 1], tris[:, 2], tris[:, 0]])
    A = sp.coo_matrix((np.ones(i.size), (i, j)), shape=(num_vertices, num_vertices)).tocsr()
    A = A + A.T
    A.data[:] = 1.0
    return A.tocsr()


def vertex_normals(vertices, triangles):
    v = np.asarray(vertices, dtype=np.float64)
    t = np.asarray(triangles, dtype=np.int64)
    fn = np.cross(v[t[:, 1]] - v[t[:, 0]], v[t[:, 2]] - v[t[:, 0]])
    n = np.zeros_like(v)
    for k in range(3):
        np.add.at(n, t[:, k], fn)
    lengths = np.linalg.norm(n, axis=1, keepdims=True)
    lengths[lengths == 0] = 1.0
    return n / lengths


def make_mesh(vertices, triangles):
    mesh = TriangleMesh(vertices=vertices, triangles=triangles)
    mesh.set_weights(uniform_weights(mesh.get_num_vertices(), mesh.triangles))
    mesh.set_normals(vertex_normals(mesh.vertices, mesh.triangles))
    return mesh


def make_grid(n_row_len=6, bump=0.0):
    verts = []
    tris = []
    step = 2.0 / float(n_row_len - 1)
    for yi in range(n_row_len):
        y = -1.0 + yi * step
        for xi in range(n_row_len):
            x = -1.0 + xi * step
            verts.append([x, y, bump * np.sin(2.0 * x) * np.cos(3.0 * y)])
    for yi in range(n_row_len - 1):
        row1 = yi * n_row_len
        row2 = (yi + 1) * n_row_len
        for xi in range(n_row_len - 1):
            tris.append([row1 + xi, row2 + xi + 1, row1 + xi + 1])
            tris.append([row1 + xi, row2 + xi, row2 + xi + 1])
    return make_mesh(verts, tris)


@pytest.fixture
def tetrahedron():
    verts = [[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]]
    tris = [[0, 2, 1], [0, 1, 3], [0, 3, 2], [1, 2, 3]]
    return make_mesh(verts, tris)


@pytest.fixture
def grid():
    return make_grid(6)


@pytest.fixture
def bumpy_grid():
    return make_grid(12, bump=0.3)


@pytest.fixture
def two_tetrahedra():
    verts = [[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0],
             [3.0, 0.0, 0.0], [4.0, 0.0, 0.0], [3.0, 1.0, 0.0], [3.0, 0.0, 1.0]]
    tris = [[0, 2, 1], [0, 1, 3], [0, 3, 2], [1, 2, 3],
            [4, 6, 5], [4, 5, 7], [4, 7, 6], [5, 6, 7]]
    return make_mesh(verts, tris)


@pytest.fixture
def triangle():
    return make_mesh([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0]], [[0, 1, 2]])
