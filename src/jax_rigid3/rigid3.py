"""Rigid3d: SE(3) rigid-body transforms as unit quaternion + translation.

A ``Rigid3d`` named ``b_from_a`` maps a point expressed in frame A to its
coordinates in frame B::

    x_in_b = b_from_a * x_in_a
    c_from_a = c_from_b * b_from_a
    a_from_b = inverse(b_from_a)

Rotations are unit quaternions in (x, y, z, w) order. Values are immutable
pytrees, so they can be passed through ``jax.jit``, ``jax.vmap`` and
``jax.grad``; leading batch dimensions broadcast through every operation.
"""

from __future__ import annotations

import logging
from typing import Tuple

import jax
import jax.numpy as jnp
import numpy as np
from flax import struct

from .transforms import se3, so3
from .transforms.rotation import (
    identity_quaternion,
    normalize_quaternions,
    quaternion_apply,
    quaternion_conjugate,
    quaternion_multiply,
)

Array = jax.Array

logger = logging.getLogger(__name__)

# Max |norm - 1| tolerated before a rotation is reported as renormalized.
QUATERNION_NORM_TOLERANCE = 1e-6


@struct.dataclass
class Rigid3d:
    """Immutable rigid transform b_from_a.

    Attributes:
        rotation: (..., 4) unit quaternion in (x, y, z, w) order.
        translation: (..., 3) translation vector.

    The plain constructor stores both fields as given, so the caller must pass
    a unit quaternion. Use :meth:`from_rotation_translation` to validate and
    normalize arbitrary inputs.
    """
    rotation: Array = struct.field(default_factory=identity_quaternion)
    translation: Array = struct.field(default_factory=lambda: jnp.zeros(3))

    # Constructors
    @classmethod
    def identity(cls, batch_shape: Tuple[int, ...] = (), *, dtype=None) -> Rigid3d:
        rotation = identity_quaternion(batch_shape, dtype=dtype)
        return cls(rotation=rotation, translation=jnp.zeros(batch_shape + (3,), dtype=rotation.dtype))

    @classmethod
    def from_rotation_translation(cls, rotation_xyzw, translation) -> Rigid3d:
        """Build a transform from any quaternion and translation.

        The quaternion is normalized; batch dimensions of both inputs are
        broadcast against each other.

        Raises:
            ValueError: if the trailing dimensions are not (4,) and (3,).
        """
        rotation = jnp.asarray(rotation_xyzw)
        translation = jnp.asarray(translation)
        if rotation.shape[-1:] != (4,):
            raise ValueError(f"rotation must have shape (..., 4), got {rotation.shape}")
        if translation.shape[-1:] != (3,):
            raise ValueError(f"translation must have shape (..., 3), got {translation.shape}")

        dtype = jnp.result_type(float, rotation, translation)
        _log_if_not_unit(rotation)

        batch_shape = jnp.broadcast_shapes(rotation.shape[:-1], translation.shape[:-1])
        rotation = normalize_quaternions(rotation.astype(dtype))
        return cls(
            rotation=jnp.broadcast_to(rotation, batch_shape + (4,)),
            translation=jnp.broadcast_to(translation.astype(dtype), batch_shape + (3,)),
        )

    @classmethod
    def from_matrix(cls, matrix) -> Rigid3d:
        """Build a transform from its (..., 3, 4) or (..., 4, 4) matrix form.

        The left 3x3 block is converted to the closest unit quaternion; the
        bottom row of a homogeneous matrix is ignored.

        Raises:
            ValueError: if the matrix has any other trailing shape.
        """
        matrix = jnp.asarray(matrix)
        if matrix.ndim < 2 or matrix.shape[-2:] not in ((3, 4), (4, 4)):
            raise ValueError(f"matrix must have shape (...,3,4) or (...,4,4), got {matrix.shape}")

        matrix = matrix[..., :3, :].astype(jnp.result_type(float, matrix))
        rotation = so3.to_quaternion(se3.get_rotation(matrix))
        return cls(rotation=rotation, translation=se3.get_translation(matrix))

    # Conversions
    def to_matrix(self) -> Array:
        """Return the (..., 3, 4) matrix [R | t]."""
        return se3.from_rotation_and_translation(so3.from_quaternion(self.rotation), self.translation)

    def rotation_matrix(self) -> Array:
        return so3.from_quaternion(self.rotation)

    # Group operations
    def inverse(self) -> Rigid3d:
        return inverse(self)

    def adjoint(self) -> Array:
        """(..., 6, 6) adjoint for [rotation; translation] tangent vectors."""
        return se3.adjoint(self.to_matrix())

    def adjoint_inverse(self) -> Array:
        return inverse(self).adjoint()

    def tgt_origin_in_src(self) -> Array:
        """Origin of the target frame expressed in the source frame.

        For camera extrinsics cam_from_world this is the camera centre in
        world coordinates.
        """
        return quaternion_apply(quaternion_conjugate(self.rotation), -self.translation)

    def __mul__(self, other):
        """``T * other``: compose with a Rigid3d, otherwise apply to points."""
        if isinstance(other, Rigid3d):
            return compose(self, other)
        return apply(self, other)

    # Exact structural comparison, eager only
    def __eq__(self, other):
        if not isinstance(other, Rigid3d):
            return NotImplemented
        return (bool(jnp.array_equal(self.rotation, other.rotation))
                and bool(jnp.array_equal(self.translation, other.translation)))

    def __repr__(self) -> str:
        return (f"Rigid3d(rotation_xyzw={_format_values(self.rotation)}, "
                f"translation={_format_values(self.translation)})")


def compose(c_from_b: Rigid3d, b_from_a: Rigid3d) -> Rigid3d:
    """Chain two transforms into c_from_a (b_from_a is applied first)."""
    rotation = quaternion_multiply(c_from_b.rotation, b_from_a.rotation)
    translation = quaternion_apply(c_from_b.rotation, b_from_a.translation) + c_from_b.translation
    return Rigid3d(rotation=rotation, translation=translation)


def apply(b_from_a: Rigid3d, x_in_a) -> Array:
    """
    Map points from frame A to frame B: R @ x + t.

    Args:
        b_from_a: transform, batch shape (...)
        x_in_a: (..., 3) points, broadcast against the transform batch shape.
                A single transform maps an (N, 3) array row by row.

    Returns:
        (..., 3) points in frame B
    """
    x_in_a = jnp.asarray(x_in_a)
    if x_in_a.shape[-1:] != (3,):
        raise ValueError(f"points must have shape (..., 3), got {x_in_a.shape}")
    return quaternion_apply(b_from_a.rotation, x_in_a) + b_from_a.translation


def inverse(b_from_a: Rigid3d) -> Rigid3d:
    """Return a_from_b."""
    rotation = quaternion_conjugate(b_from_a.rotation)
    translation = quaternion_apply(rotation, -b_from_a.translation)
    return Rigid3d(rotation=rotation, translation=translation)


def _log_if_not_unit(rotation: Array) -> None:
    # Norms of traced values are not available at trace time
    if isinstance(rotation, jax.core.Tracer) or rotation.size == 0:
        return
    norms = np.linalg.norm(np.asarray(rotation, dtype=np.float64), axis=-1)
    deviation = float(np.max(np.abs(norms - 1.0)))
    if deviation > QUATERNION_NORM_TOLERANCE:
        logger.debug("Normalizing non-unit rotation quaternion (max |norm - 1| = %g)", deviation)


def _format_values(values) -> str:
    if isinstance(values, jax.core.Tracer):
        return str(values)
    return _format_nested(np.asarray(values).tolist())


def _format_nested(values) -> str:
    if isinstance(values, list):
        return "[" + ", ".join(_format_nested(v) for v in values) + "]"
    return f"{values:g}"
