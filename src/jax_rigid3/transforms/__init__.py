"""
Functional transforms layer for rigid body geometry.

This module provides pure, JIT-compilable implementations of:
- Unit quaternion algebra in (x, y, z, w) order (rotation module)
- SO(3) rotation matrices (so3 module)
- SE(3) rigid body transforms in 3x4 matrix form (se3 module)
"""

from . import rotation
from . import so3
from . import se3

__all__ = [
    "rotation",
    "so3",
    "se3",
]
