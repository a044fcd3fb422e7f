"""
Median-split BVH builder producing the flattened depth-first node layout
the ray picker walks: an inner node's first child sits in the next array
slot, its second child index is stored on the node, and leaves cover a
contiguous face range of the reordered face array.
"""
import logging

import numpy as np

from config import BVH_MAX_LEAF_FACES, FLOAT_DTYPE
from elements import AABB, BVHNode
from triangle_mesh import TriangleMesh

logger = logging.getLogger(__name__)


class BVH:
    def __init__(self, nodes, faces, face_order, depth):
        self.nodes = nodes
        self.faces = faces
        self.face_order = face_order
        self.depth = depth

    def __len__(self):
        return len(self.nodes)

    def num_leaves(self):
        return sum(1 for node in self.nodes if node.is_leaf())

    def max_stack_depth(self):
        # pending right children never exceed the number of inner nodes on a root-leaf path
        return self.depth


def build_bvh(vertices, faces, max_leaf_faces=BVH_MAX_LEAF_FACES):
    vertices = np.asarray(vertices, dtype=FLOAT_DTYPE)
    faces = np.asarray(faces, dtype=np.int32)
    num_faces = faces.shape[0]
    if num_faces == 0:
        return BVH([], faces.copy(), np.zeros(0, dtype=np.int64), 0)

    tri_verts = vertices[faces]  # (M, 3, 3)
    tri_min = tri_verts.min(axis=1)
    tri_max = tri_verts.max(axis=1)
    centroids = tri_verts.mean(axis=1)

    max_leaf_faces = max(1, int(max_leaf_faces))
    order = np.arange(num_faces, dtype=np.int64)
    nodes = []
    max_depth = [0]

    def _build(start, end, depth):
        node_idx = len(nodes)
        idx = order[start:end]
        aabb = AABB(tri_min[idx].min(axis=0), tri_max[idx].max(axis=0))
        max_depth[0] = max(max_depth[0], depth)

        if end - start <= max_leaf_faces:
            nodes.append(BVHNode.make_leaf(aabb, start, end))
            return node_idx

        # split at the median centroid along the widest centroid axis
        c = centroids[idx]
        axis = int(np.argmax(c.max(axis=0) - c.min(axis=0)))
        order[start:end] = idx[np.argsort(c[:, axis], kind='stable')]
        mid = (start + end) // 2

        nodes.append(BVHNode.inner(aabb, -1))
        _build(start, mid, depth + 1)
        nodes[node_idx].right_child = _build(mid, end, depth + 1)
        return node_idx

    _build(0, num_faces, 0)

    logger.debug("BVH built: %d faces, %d nodes, depth %d", num_faces, len(nodes), max_depth[0])
    return BVH(nodes, faces[order].copy(), order.copy(), max_depth[0])


def attach_bvh(mesh: TriangleMesh, max_leaf_faces=BVH_MAX_LEAF_FACES):
    """Builds a BVH for mesh, reorders its triangles to match and stores the nodes."""
    bvh = build_bvh(mesh.vertices, mesh.triangles, max_leaf_faces)
    mesh.triangles = bvh.faces.copy()
    mesh.nodes = bvh.nodes
    return bvh
