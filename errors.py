class DeformError(Exception):
    """Base class for failures the host should treat as recoverable."""


class SingularSystem(DeformError):
    """The free-vertex system cannot be factorized or solved."""


class InvalidVertexId(DeformError, IndexError):
    def __init__(self, vertex_id, num_vertices):
        super().__init__(f"vertex id {vertex_id} out of range [0, {num_vertices})")
        self.vertex_id = vertex_id
        self.num_vertices = num_vertices


class TraversalOverflow(DeformError):
    def __init__(self, limit):
        super().__init__(f"BVH traversal stack exceeded {limit} entries")
        self.limit = limit
