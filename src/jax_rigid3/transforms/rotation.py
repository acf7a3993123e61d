"""Unit quaternion utilities in JAX.

Quaternions are stored in (x, y, z, w) order throughout this package.
"""

import jax
import jax.numpy as jnp
from typing import Tuple

# Type aliases
Array = jax.Array


def identity_quaternion(batch_shape: Tuple[int, ...] = (), dtype=None) -> Array:
    """Identity rotation(s) of shape (*batch_shape, 4)."""
    q = jnp.array([0.0, 0.0, 0.0, 1.0], dtype=dtype)
    return jnp.broadcast_to(q, batch_shape + (4,))


def normalize_quaternions(quaternions: Array) -> Array:
    """Normalize quaternions to unit length."""
    return quaternions / jnp.linalg.norm(quaternions, axis=-1, keepdims=True)


def quaternion_multiply(a: Array, b: Array) -> Array:
    """
    Hamilton product a ⊗ b.

    Applying the result to a vector rotates by b first, then by a.

    Args:
        a: (..., 4) quaternions in (x, y, z, w) format
        b: (..., 4) quaternions in (x, y, z, w) format

    Returns:
        (..., 4) product quaternions in (x, y, z, w) format
    """
    ax, ay, az, aw = jnp.moveaxis(a, -1, 0)
    bx, by, bz, bw = jnp.moveaxis(b, -1, 0)

    x = aw * bx + ax * bw + ay * bz - az * by
    y = aw * by - ax * bz + ay * bw + az * bx
    z = aw * bz + ax * by - ay * bx + az * bw
    w = aw * bw - ax * bx - ay * by - az * bz

    return jnp.stack([x, y, z, w], axis=-1)


def quaternion_conjugate(quaternions: Array) -> Array:
    """Conjugate, i.e. the inverse rotation of a unit quaternion."""
    return quaternions * jnp.array([-1.0, -1.0, -1.0, 1.0], dtype=quaternions.dtype)


def quaternion_apply(quaternions: Array, vectors: Array) -> Array:
    """
    Rotate vectors by unit quaternions.

    Uses the expanded form v + w*t + q_xyz x t with t = 2 * (q_xyz x v),
    which avoids building the rotation matrix.

    Args:
        quaternions: (..., 4) unit quaternions in (x, y, z, w) format
        vectors: (..., 3) vectors, broadcast against the quaternion batch

    Returns:
        (..., 3) rotated vectors
    """
    q_xyz = quaternions[..., :3]
    w = quaternions[..., 3:]

    t = 2.0 * jnp.cross(q_xyz, vectors)
    return vectors + w * t + jnp.cross(q_xyz, t)


def quaternion_from_axis_angle(axis: Array, angle) -> Array:
    """
    Build unit quaternions from a rotation axis and angle (radians).

    Args:
        axis: (..., 3) rotation axis, normalized internally
        angle: scalar or (...,) rotation angle

    Returns:
        (..., 4) quaternions in (x, y, z, w) format
    """
    axis = axis / jnp.linalg.norm(axis, axis=-1, keepdims=True)
    half_angle = 0.5 * jnp.asarray(angle, dtype=axis.dtype)[..., None]

    xyz = axis * jnp.sin(half_angle)
    w = jnp.cos(half_angle)
    return jnp.concatenate([xyz, w], axis=-1)
