"""
Ray picking against a triangle mesh: brute-force or BVH-accelerated closest
hit, Möller-Trumbore triangle test and slab ray/box test.
"""
import logging
import math
from collections import namedtuple

import numpy as np

from config import BVH_STACK_LIMIT, FLOAT_DTYPE
from errors import TraversalOverflow
from triangle_mesh import TriangleMesh
from utils import normalize3, vec3

logger = logging.getLogger(__name__)

RayHit = namedtuple("RayHit", ["face_id", "time", "uv"])


class Ray:

    def __init__(self, stack_limit=BVH_STACK_LIMIT):
        self.stack_limit = int(stack_limit)

        self.V = np.zeros((0, 3), dtype=FLOAT_DTYPE)
        self.F = np.zeros((0, 3), dtype=np.int32)
        self.N = np.zeros((0, 3), dtype=FLOAT_DTYPE)
        self.nodes = []

        self.width = 0.0
        self.height = 0.0

        self.origin = np.zeros(3, dtype=FLOAT_DTYPE)
        self.direction = np.array([0.0, 0.0, -1.0], dtype=FLOAT_DTYPE)
        self.min_time = 0.0
        self.max_time = math.inf

    def init(self, mesh: TriangleMesh, viewport):
        self.update_mesh(mesh)
        self.update_viewport(viewport)

    def update_mesh(self, mesh: TriangleMesh):
        self.V = mesh.vertices
        self.F = mesh.triangles
        self.N = mesh.normals
        self.nodes = mesh.nodes

    def update_viewport(self, viewport):
        # viewport = (x, y, width, height)
        self.width = float(viewport[2])
        self.height = float(viewport[3])

    def set(self, origin, direction):
        self.origin = vec3(origin)
        self.direction = vec3(direction)
        self.min_time = 0.0
        self.max_time = math.inf

    def set_from_mouse(self, x, y, unprojector):
        # screen y grows downwards, window y upwards
        pos0 = vec3(unprojector.unproject([x, self.height - y, 0.0]))
        pos1 = vec3(unprojector.unproject([x, self.height - y, 1.0]))
        self.set(pos0, normalize3(pos1 - pos0))

    def point_at(self, t):
        return self.origin + t * self.direction

    def intersect_brute_force(self):
        """Closest hit face id over every face, or None."""
        current_face_id = None
        min_time = math.inf
        for i in range(self.F.shape[0]):
            hit = self.intersect_face(i)
            if hit is not None and hit[0] < min_time:
                current_face_id = i
                min_time = hit[0]
        return current_face_id

    def intersect(self):
        """
        Closest hit through the BVH, as a RayHit(face_id, time, uv), or None.
        Every hit tightens max_time so farther subtrees fail the box test.
        """
        if not self.nodes:
            return None

        node_id = 0
        stack = []
        result = None

        while True:
            node = self.nodes[node_id]

            if not self.intersect_aabb(node.aabb):
                if not stack:
                    break
                node_id = stack.pop()
                continue

            if not node.is_leaf():
                if len(stack) >= self.stack_limit:
                    logger.error("BVH traversal stack overflow at node %d", node_id)
                    raise TraversalOverflow(self.stack_limit)
                stack.append(node.right_child)
                node_id += 1
                continue

            for fi in range(node.start_id, node.end_id):
                hit = self.intersect_face(fi)
                if hit is not None:
                    t, u, v = hit
                    self.max_time = t
                    result = RayHit(fi, t, (u, v))
            if not stack:
                break
            node_id = stack.pop()

        return result

    def intersect_face(self, face_id):
        """Möller-Trumbore test against one face: (time, u, v) or None."""
        va, vb, vc = self.V[self.F[face_id]]

        edge1 = vb - va
        edge2 = vc - va
        pvec = np.cross(self.direction, edge2)

        det = float(np.dot(edge1, pvec))
        # exact zero only: the ray lies parallel to the triangle plane
        if det == 0.0:
            return None
        inv_det = 1.0 / det

        tvec = self.origin - va
        u = float(np.dot(tvec, pvec)) * inv_det
        if u < 0.0 or u > 1.0:
            return None

        qvec = np.cross(tvec, edge1)
        v = float(np.dot(self.direction, qvec)) * inv_det
        if v < 0.0 or u + v > 1.0:
            return None

        time = float(np.dot(edge2, qvec)) * inv_det
        if time < self.min_time or time > self.max_time:
            return None

        return time, u, v

    def intersect_aabb(self, aabb):
        near_time = -math.inf
        far_time = math.inf

        for i in range(3):
            if self.direction[i] == 0:
                if self.origin[i] < aabb.min[i] or self.origin[i] > aabb.max[i]:
                    return False
            else:
                t1 = (aabb.min[i] - self.origin[i]) / self.direction[i]
                t2 = (aabb.max[i] - self.origin[i]) / self.direction[i]

                if t1 > t2:
                    t1, t2 = t2, t1

                near_time = max(t1, near_time)
                far_time = min(t2, far_time)

                if not near_time <= far_time:
                    return False

        return bool(self.min_time <= far_time and near_time <= self.max_time)

    def hit_point(self, hit):
        return self.point_at(hit.time)

    def hit_normal(self, hit):
        """Vertex normals interpolated at the hit, or None without normals."""
        if self.N.shape[0] != self.V.shape[0] or self.N.shape[0] == 0:
            return None
        u, v = hit.uv
        na, nb, nc = self.N[self.F[hit.face_id]]
        return normalize3((1.0 - u - v) * na + u * nb + v * nc)

    def pick_vertex(self, hit):
        """Vertex of the hit face closest to the hit point, by barycentric weight."""
        u, v = hit.uv
        weights = (1.0 - u - v, u, v)
        return int(self.F[hit.face_id][int(np.argmax(weights))])
