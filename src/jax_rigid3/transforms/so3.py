"""SO(3) rotation matrix operations in JAX.

This module converts between rotation matrices and unit quaternions in
(x, y, z, w) order, and provides the small set of matrix helpers needed by
the SE(3) layer. All functions are pure, JIT-able, and operate on JAX arrays.
"""

import jax
import jax.numpy as jnp

from .rotation import normalize_quaternions

Array = jax.Array


def inverse(R: Array) -> Array:
    """
    Compute inverse of rotation matrix.

    For rotation matrices, the inverse is simply the transpose.

    Args:
        R: (..., 3, 3) rotation matrix

    Returns:
        (..., 3, 3) inverse rotation matrix
    """
    return jnp.swapaxes(R, -1, -2)


def apply(R: Array, v: Array) -> Array:
    """
    Apply rotation to vector(s).

    Args:
        R: (..., 3, 3) rotation matrix
        v: (..., 3) or (..., N, 3) vector(s) to rotate

    Returns:
        (..., 3) or (..., N, 3) rotated vector(s)
    """
    if v.ndim == R.ndim - 1:  # Single vector case
        return jnp.einsum('...ij,...j->...i', R, v)
    else:  # Multiple vectors case
        return jnp.einsum('...ij,...nj->...ni', R, v)


def skew_symmetric(v: Array) -> Array:
    """
    Convert 3D vector to skew-symmetric (cross-product) matrix.

    Args:
        v: (..., 3) vector

    Returns:
        (..., 3, 3) matrix [v]x with [v]x @ u == cross(v, u)
    """
    zeros = jnp.zeros(v.shape[:-1], dtype=v.dtype)

    return jnp.stack([
        jnp.stack([zeros, -v[..., 2], v[..., 1]], axis=-1),
        jnp.stack([v[..., 2], zeros, -v[..., 0]], axis=-1),
        jnp.stack([-v[..., 1], v[..., 0], zeros], axis=-1)
    ], axis=-2)


def from_quaternion(quaternions: Array) -> Array:
    """
    Convert quaternions to rotation matrices.

    Args:
        quaternions: (..., 4) array of quaternions in (x, y, z, w) format

    Returns:
        (..., 3, 3) array of rotation matrices
    """
    # Normalize quaternions for numerical stability
    quaternions = normalize_quaternions(quaternions)

    x, y, z, w = jnp.moveaxis(quaternions, -1, 0)

    xx, yy, zz = x*x, y*y, z*z
    wx, wy, wz = w*x, w*y, w*z
    xy, xz, yz = x*y, x*z, y*z

    matrix = jnp.stack([
        jnp.stack([1 - 2*(yy + zz), 2*(xy - wz), 2*(xz + wy)], axis=-1),
        jnp.stack([2*(xy + wz), 1 - 2*(xx + zz), 2*(yz - wx)], axis=-1),
        jnp.stack([2*(xz - wy), 2*(yz + wx), 1 - 2*(xx + yy)], axis=-1)
    ], axis=-2)

    return matrix


def to_quaternion(matrix: Array) -> Array:
    """
    Convert rotation matrices to quaternions (x, y, z, w).

    Branch-free Shepperd extraction: all four candidates are computed and the
    numerically best one is selected per batch element. The result has a
    non-negative scalar part and unit norm, so a slightly non-orthonormal
    input still yields a valid rotation.

    Args:
        matrix: (..., 3, 3) array of rotation matrices

    Returns:
        (..., 4) array of quaternions in (x, y, z, w) format
    """
    m00 = matrix[..., 0, 0]
    m01 = matrix[..., 0, 1]
    m02 = matrix[..., 0, 2]
    m10 = matrix[..., 1, 0]
    m11 = matrix[..., 1, 1]
    m12 = matrix[..., 1, 2]
    m20 = matrix[..., 2, 0]
    m21 = matrix[..., 2, 1]
    m22 = matrix[..., 2, 2]

    trace = m00 + m11 + m22

    # Use dtype-adaptive epsilon
    eps = jnp.finfo(matrix.dtype).eps

    # Candidates, each dominated by a different component
    q_w = jnp.stack([
        m21 - m12,
        m02 - m20,
        m10 - m01,
        trace + 1.0,
    ], axis=-1) * 0.5

    q_x = jnp.stack([
        m00 - m11 - m22 + 1.0,
        m01 + m10,
        m02 + m20,
        m21 - m12,
    ], axis=-1) * 0.5

    q_y = jnp.stack([
        m01 + m10,
        m11 - m00 - m22 + 1.0,
        m12 + m21,
        m02 - m20,
    ], axis=-1) * 0.5

    q_z = jnp.stack([
        m02 + m20,
        m12 + m21,
        m22 - m00 - m11 + 1.0,
        m10 - m01,
    ], axis=-1) * 0.5

    q_w = q_w / jnp.sqrt(jnp.maximum(1.0 + trace, eps))[..., None]
    q_x = q_x / jnp.sqrt(jnp.maximum(1.0 + m00 - m11 - m22, eps))[..., None]
    q_y = q_y / jnp.sqrt(jnp.maximum(1.0 + m11 - m00 - m22, eps))[..., None]
    q_z = q_z / jnp.sqrt(jnp.maximum(1.0 + m22 - m00 - m11, eps))[..., None]

    use_w = trace > 0
    use_x = (~use_w) & (m00 > m11) & (m00 > m22)
    use_y = (~use_w) & (~use_x) & (m11 > m22)

    quaternion = jnp.where(
        use_w[..., None],
        q_w,
        jnp.where(use_x[..., None], q_x, jnp.where(use_y[..., None], q_y, q_z)),
    )

    # q and -q are the same rotation; keep w >= 0
    quaternion = jnp.where(quaternion[..., 3:] < 0, -quaternion, quaternion)
    return normalize_quaternions(quaternion)
