import numpy as np

from config import FLOAT_DTYPE


def vec3(v):
    return np.array(v, dtype=FLOAT_DTYPE).reshape(3, )


def normalize3(v):
    n = np.linalg.norm(v)
    return v / n if n > 1e-12 else v


def proper_rotations(cov):
    # cov: (..., 3, 3) covariance matrices, cov = U S Vt
    U, _, Vt = np.linalg.svd(cov)
    V = np.swapaxes(Vt, -1, -2)
    Ut = np.swapaxes(U, -1, -2)
    # flip the last column of V where V Ut would be a reflection
    d = np.sign(np.linalg.det(V @ Ut))
    V = V.copy()
    V[..., :, 2] *= d[..., None]
    return V @ Ut
