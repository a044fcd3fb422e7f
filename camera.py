"""
Window <-> world mapping with the fixed-function OpenGL conventions
(gluUnProject / gluProject), used by the ray picker to build rays from
mouse coordinates. Any object with an unproject(point) method works as well.
"""
import numpy as np

from config import FLOAT_DTYPE
from utils import normalize3, vec3


def look_at(eye, target, up):
    eye, target, up = vec3(eye), vec3(target), vec3(up)
    f = normalize3(target - eye)
    s = normalize3(np.cross(f, up))
    u = np.cross(s, f)
    M = np.eye(4, dtype=FLOAT_DTYPE)
    M[0, :3] = s
    M[1, :3] = u
    M[2, :3] = -f
    M[:3, 3] = -M[:3, :3] @ eye
    return M


def perspective(fovy_deg, aspect, near, far):
    f = 1.0 / np.tan(np.radians(fovy_deg) / 2.0)
    P = np.zeros((4, 4), dtype=FLOAT_DTYPE)
    P[0, 0] = f / aspect
    P[1, 1] = f
    P[2, 2] = (far + near) / (near - far)
    P[2, 3] = 2.0 * far * near / (near - far)
    P[3, 2] = -1.0
    return P


def ortho(left, right, bottom, top, near, far):
    P = np.eye(4, dtype=FLOAT_DTYPE)
    P[0, 0] = 2.0 / (right - left)
    P[1, 1] = 2.0 / (top - bottom)
    P[2, 2] = -2.0 / (far - near)
    P[0, 3] = -(right + left) / (right - left)
    P[1, 3] = -(top + bottom) / (top - bottom)
    P[2, 3] = -(far + near) / (far - near)
    return P


class Camera:
    def __init__(self, model_view=None, projection=None, viewport=(0, 0, 600, 600)):
        self.model_view = np.eye(4, dtype=FLOAT_DTYPE) if model_view is None else np.asarray(model_view, dtype=FLOAT_DTYPE)
        self.projection = np.eye(4, dtype=FLOAT_DTYPE) if projection is None else np.asarray(projection, dtype=FLOAT_DTYPE)
        self.viewport = np.asarray(viewport, dtype=FLOAT_DTYPE).reshape(4, )

    def project(self, point):
        p = np.append(vec3(point), 1.0)
        clip = self.projection @ (self.model_view @ p)
        ndc = clip[:3] / clip[3]
        x0, y0, w, h = self.viewport
        return np.array([x0 + w * (ndc[0] + 1) / 2,
                         y0 + h * (ndc[1] + 1) / 2,
                         (ndc[2] + 1) / 2], dtype=FLOAT_DTYPE)

    def unproject(self, window_point):
        """Window coordinates (x, y, depth in [0, 1]) to world space."""
        wx, wy, wz = vec3(window_point)
        x0, y0, w, h = self.viewport
        ndc = np.array([2.0 * (wx - x0) / w - 1.0,
                        2.0 * (wy - y0) / h - 1.0,
                        2.0 * wz - 1.0,
                        1.0], dtype=FLOAT_DTYPE)
        inv = np.linalg.inv(self.projection @ self.model_view)
        obj = inv @ ndc
        if obj[3] == 0.0:
            raise ValueError("point unprojects to infinity")
        return obj[:3] / obj[3]
