"""First-order uncertainty propagation for Rigid3d.

Covariances are (..., 6, 6) matrices over tangent perturbations ordered
[rotation; translation], applied on the left of the transform they belong to
(T' = Exp(d) T). A covariance is only meaningful together with the transform
it was linearized at.
"""

import jax
import jax.numpy as jnp

from .rigid3 import Rigid3d, inverse

Array = jax.Array


def get_covariance_for_rigid3d_inverse(b_from_a: Rigid3d, cov_b_from_a) -> Array:
    """
    Propagate the covariance of b_from_a to its inverse a_from_b.

    Inverting Exp(d) b_from_a gives a_from_b Exp(-d) = Exp(-Ad(a_from_b) d) a_from_b,
    so the covariance transforms by congruence with the adjoint of a_from_b.
    Applying this twice returns the input covariance.

    Args:
        b_from_a: transform the covariance is linearized at
        cov_b_from_a: (..., 6, 6) covariance of b_from_a

    Returns:
        (..., 6, 6) covariance of a_from_b
    """
    cov_b_from_a = jnp.asarray(cov_b_from_a)
    if cov_b_from_a.shape[-2:] != (6, 6):
        raise ValueError(f"covariance must have shape (...,6,6), got {cov_b_from_a.shape}")

    adjoint = inverse(b_from_a).adjoint()
    return adjoint @ cov_b_from_a @ jnp.swapaxes(adjoint, -1, -2)
