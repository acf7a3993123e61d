"""SE(3) rigid body transforms in 3x4 matrix form.

A transform b_from_a is stored as the dense (..., 3, 4) matrix [R | t]; the
implicit bottom row [0, 0, 0, 1] is only materialized by to_homogeneous().
All functions are pure, JIT-able, and operate on JAX arrays.

Tangent vectors are ordered [rotation; translation] package-wide, which fixes
the block layout of adjoint().
"""


import jax
import jax.numpy as jnp

from . import so3

Array = jax.Array


def from_rotation_and_translation(R: Array, t: Array) -> Array:
    """
    Construct the 3x4 matrix form of a transform.

    Args:
        R: (..., 3, 3) rotation matrix
        t: (..., 3) translation vector

    Returns:
        (..., 3, 4) matrix [R | t]
    """
    # Ensure consistent batch shapes
    batch_shape = jnp.broadcast_shapes(t.shape[:-1], R.shape[:-2])
    R = jnp.broadcast_to(R, batch_shape + (3, 3))
    t = jnp.broadcast_to(t, batch_shape + (3,))

    return jnp.concatenate([R, t[..., None]], axis=-1)


def get_rotation(M: Array) -> Array:
    """Extract the (..., 3, 3) rotation block."""
    return M[..., :3, :3]


def get_translation(M: Array) -> Array:
    """Extract the (..., 3) translation column."""
    return M[..., :3, 3]


def to_homogeneous(M: Array) -> Array:
    """
    Append the [0, 0, 0, 1] row.

    Args:
        M: (..., 3, 4) matrix form

    Returns:
        (..., 4, 4) homogeneous transformation matrix
    """
    bottom = jnp.broadcast_to(
        jnp.array([[0.0, 0.0, 0.0, 1.0]], dtype=M.dtype),
        M.shape[:-2] + (1, 4),
    )
    return jnp.concatenate([M[..., :3, :], bottom], axis=-2)


def multiply(M2: Array, M1: Array) -> Array:
    """
    Compose two transforms in matrix form.

    Args:
        M2: (..., 3, 4) c_from_b
        M1: (..., 3, 4) b_from_a

    Returns:
        (..., 3, 4) c_from_a, i.e. M1 applied first
    """
    R2, t2 = get_rotation(M2), get_translation(M2)
    R1, t1 = get_rotation(M1), get_translation(M1)

    R = jnp.matmul(R2, R1)
    t = jnp.einsum("...ij,...j->...i", R2, t1) + t2

    return from_rotation_and_translation(R, t)


def inverse(M: Array) -> Array:
    """
    Compute inverse of a transform in matrix form.

    Uses the block structure: [R | t]^-1 = [R^T | -R^T @ t]

    Args:
        M: (..., 3, 4) matrix form

    Returns:
        (..., 3, 4) inverse transform
    """
    R_inv = so3.inverse(get_rotation(M))
    t_inv = -jnp.einsum("...ij,...j->...i", R_inv, get_translation(M))

    return from_rotation_and_translation(R_inv, t_inv)


def apply(M: Array, points: Array) -> Array:
    """
    Apply a transform in matrix form to points.

    Args:
        M: (..., 3, 4) matrix form
        points: (..., 3) or (..., N, 3) points to transform

    Returns:
        (..., 3) or (..., N, 3) transformed points
    """
    # Homogeneous coordinates; works for (..., 3) and (..., N, 3)
    ones = jnp.ones_like(points[..., 0:1])
    points_h = jnp.concatenate([points, ones], axis=-1)

    if points.ndim == M.ndim - 1:
        return jnp.einsum("...ij,...j->...i", M, points_h)
    return jnp.einsum("...ij,...nj->...ni", M, points_h)


def adjoint(M: Array) -> Array:
    """
    Compute the adjoint matrix of a transform.

    Maps a tangent perturbation [rotation; translation] expressed in the
    source frame of M to the target frame: M Exp(d) = Exp(Ad d) M.

    Args:
        M: (..., 3, 4) matrix form

    Returns:
        (..., 6, 6) adjoint matrix [[R, 0], [[t]_x R, R]]
    """
    R = get_rotation(M)
    t = get_translation(M)

    t_skew = so3.skew_symmetric(t)
    zeros = jnp.zeros_like(R)

    top = jnp.concatenate([R, zeros], axis=-1)
    bottom = jnp.concatenate([jnp.matmul(t_skew, R), R], axis=-1)

    return jnp.concatenate([top, bottom], axis=-2)
