import numpy as np

from utils import vec3


class Constraint:
    def __init__(self, vidx, pos):
        self.nVertex = int(vidx)
        self.vConstrainedPos = vec3(pos)

    def __lt__(self, other):
        return self.nVertex < other.nVertex

    def __eq__(self, other):
        return self.nVertex == other.nVertex

    def __hash__(self):
        return hash(self.nVertex)

    def __repr__(self):
        return f"Constraint({self.nVertex}, {self.vConstrainedPos.tolist()})"


class AABB:
    def __init__(self, vmin=None, vmax=None):
        self.min = vec3(vmin) if vmin is not None else np.full(3, np.inf)
        self.max = vec3(vmax) if vmax is not None else np.full(3, -np.inf)

    @classmethod
    def from_points(cls, points):
        pts = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        return cls(pts.min(axis=0), pts.max(axis=0))

    def grow(self, points):
        pts = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        self.min = np.minimum(self.min, pts.min(axis=0))
        self.max = np.maximum(self.max, pts.max(axis=0))

    def is_empty(self):
        return bool(np.any(self.min > self.max))

    def extent(self):
        return self.max - self.min

    def centroid(self):
        return 0.5 * (self.min + self.max)

    def contains(self, p):
        p = vec3(p)
        return bool(np.all(p >= self.min) and np.all(p <= self.max))

    def __repr__(self):
        return f"AABB(min={self.min.tolist()}, max={self.max.tolist()})"


class BVHNode:
    """
    Flattened BVH node. Inner nodes keep their first child in the next array
    slot and store the index of the second one; leaves cover faces
    [start_id, end_id).
    """

    def __init__(self, aabb, right_child=-1, start_id=0, end_id=0, leaf=False):
        self.aabb = aabb
        self.right_child = int(right_child)
        self.start_id = int(start_id)
        self.end_id = int(end_id)
        self.leaf = bool(leaf)

    @classmethod
    def inner(cls, aabb, right_child):
        return cls(aabb, right_child=right_child)

    @classmethod
    def make_leaf(cls, aabb, start_id, end_id):
        return cls(aabb, start_id=start_id, end_id=end_id, leaf=True)

    def is_leaf(self):
        return self.leaf

    def num_faces(self):
        return self.end_id - self.start_id if self.leaf else 0

    def __repr__(self):
        if self.leaf:
            return f"BVHNode(leaf [{self.start_id}, {self.end_id}), {self.aabb})"
        return f"BVHNode(inner right={self.right_child}, {self.aabb})"
