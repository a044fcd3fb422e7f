"""
Global constants for the deformer and the ray picker.
"""
import numpy as np

# Local/global iterations per solve call. Fixed count, no convergence test.
ARAP_ITERATIONS = 3

# Upper bound on pending right children during BVH traversal.
BVH_STACK_LIMIT = 64

BVH_MAX_LEAF_FACES = 4

FLOAT_DTYPE = np.float64

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_DATE_FORMAT = '%H:%M:%S'
