"""
Denoising operators plugged into the PnP-ADMM loop as implicit priors.

A denoiser family is any callable ``fn(x, strength, real_only) -> tensor``
returning an array of the same shape as ``x``. Families are looked up by name
in ``DENOISER_REGISTRY``; new ones are added with :func:`register_denoiser`
and become valid ``denoiser_type`` values without touching the reconstructor.
"""

from typing import Callable, Dict, Tuple

import torch

from .regularizers.common import TVRegularizer

DenoiserFn = Callable[[torch.Tensor, float, bool], torch.Tensor]


def tv_denoiser(x: torch.Tensor, strength: float, real_only: bool = True,
                max_iter: int = 50, tol: float = 1e-5) -> torch.Tensor:
    """Isotropic total-variation proximal denoiser (Chambolle).

    Args:
        x: Noisy 2D image, real or complex.
        strength: TV weight; the prox solves
            ``argmin_u strength * TV(u) + 0.5 * ||u - x||^2``.
        real_only: Project the input and the result onto real values.
    """
    if real_only and x.is_complex():
        x = x.real
    denoised = TVRegularizer(lambda_param=strength, max_chambolle_iter=max_iter,
                             tol_chambolle=tol).proximal_operator(x, steplength=1.0)
    if real_only and denoised.is_complex():
        denoised = denoised.real
    return denoised


DENOISER_REGISTRY: Dict[str, DenoiserFn] = {
    'TV': tv_denoiser,
}


def register_denoiser(name: str, fn: DenoiserFn, overwrite: bool = False) -> None:
    """Adds a denoiser family under ``name``."""
    if not isinstance(name, str) or not name:
        raise ValueError("Denoiser name must be a non-empty string.")
    if not callable(fn):
        raise TypeError(f"Denoiser '{name}' must be callable.")
    if name in DENOISER_REGISTRY and not overwrite:
        raise ValueError(f"Denoiser '{name}' is already registered.")
    DENOISER_REGISTRY[name] = fn


def unregister_denoiser(name: str) -> None:
    if name == 'TV':
        raise ValueError("The baseline 'TV' denoiser cannot be removed.")
    DENOISER_REGISTRY.pop(name, None)


def available_denoisers() -> Tuple[str, ...]:
    return tuple(DENOISER_REGISTRY)


def get_denoiser(denoiser_type: str) -> DenoiserFn:
    try:
        return DENOISER_REGISTRY[denoiser_type]
    except KeyError:
        supported = ', '.join(f"'{name}'" for name in DENOISER_REGISTRY)
        raise ValueError(
            f"denoiser_type '{denoiser_type}' is not supported. Supported denoiser types are: {supported}."
        ) from None


def denoising_operator(vtilde: torch.Tensor, sigman: float, real_only: bool = True,
                       denoiser_type: str = 'TV') -> torch.Tensor:
    """Applies the ``denoiser_type`` family to ``vtilde`` with strength ``sigman``.

    Raises:
        ValueError: If the family is unknown or returns an array of a
            different shape.
    """
    v = get_denoiser(denoiser_type)(vtilde, sigman, real_only)
    if v.shape != vtilde.shape:
        raise ValueError(
            f"Denoiser '{denoiser_type}' returned shape {tuple(v.shape)}, expected {tuple(vtilde.shape)}."
        )
    return v
