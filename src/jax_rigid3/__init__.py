"""
jax_rigid3: rigid body transforms for 3D vision in JAX.

This library provides an immutable, JIT-compilable SE(3) value type
(unit quaternion + translation) with composition, inversion, point
application, matrix conversion and covariance propagation.
"""

import jax
jax.config.update("jax_enable_x64", True)

from . import transforms
from .rigid3 import Rigid3d, apply, compose, inverse
from .covariance import get_covariance_for_rigid3d_inverse

__version__ = "0.1.0"
__all__ = [
    "transforms",
    "Rigid3d",
    "apply",
    "compose",
    "inverse",
    "get_covariance_for_rigid3d_inverse",
]
