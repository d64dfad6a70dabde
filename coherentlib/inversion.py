"""
Inversion operator of the coherent-imaging PnP-ADMM scheme.

For every pixel, the first-order optimality condition of the penalized
log-likelihood

    log(r + sigma_w^2) + |y|^2 / (r + sigma_w^2) + (r - rtilde)^2 / (2 * sigma_lambda^2)

is written as the cubic a1*r^3 + a2*r^2 + a3*r + a4 = 0 with

    a1 = 1
    a2 = -rtilde + 2*sigma_w^2
    a3 = -2*rtilde*sigma_w^2 + sigma_w^4 + sigma_lambda^2
    a4 = sigma_lambda^2*sigma_w^2 - rtilde*sigma_w^4

The roots of all pixels are obtained at once as eigenvalues of a batch of
3x3 companion matrices, and the "most real" root is kept.
"""

import logging
from typing import Tuple, Union

import torch

from .exceptions import ShapeMismatchError
from .regularizers.common import NonnegativityConstraint

logger = logging.getLogger(__name__)

# Roots whose |imag| is within this distance of the per-pixel minimum count as ties.
_TIE_TOLERANCE = 1e-10


def cubic_coefficients(rtilde: torch.Tensor, sigma_w: float, sigma_lambda: float
                       ) -> Tuple[torch.Tensor, torch.Tensor, torch.Tensor, torch.Tensor]:
    """Returns the per-pixel coefficients (a1, a2, a3, a4) of the cubic."""
    sw2 = sigma_w ** 2
    sl2 = sigma_lambda ** 2
    a1 = torch.ones_like(rtilde)
    a2 = -rtilde + 2 * sw2
    a3 = -2 * rtilde * sw2 + sw2 ** 2 + sl2
    a4 = sl2 * sw2 - rtilde * sw2 ** 2
    return a1, a2, a3, a4


def cubic_roots(a1: torch.Tensor, a2: torch.Tensor, a3: torch.Tensor, a4: torch.Tensor) -> torch.Tensor:
    """
    Roots of a1*r^3 + a2*r^2 + a3*r + a4 for every element of the coefficient tensors.

    Returns:
        torch.Tensor: Complex tensor of shape (N, 3), N being the number of elements.
    """
    a1 = a1.reshape(-1).to(torch.float64)
    n = a1.numel()
    companion = torch.zeros((n, 3, 3), dtype=torch.float64, device=a1.device)
    companion[:, 0, 0] = -a2.reshape(-1).to(torch.float64) / a1
    companion[:, 0, 1] = -a3.reshape(-1).to(torch.float64) / a1
    companion[:, 0, 2] = -a4.reshape(-1).to(torch.float64) / a1
    companion[:, 1, 0] = 1.0
    companion[:, 2, 1] = 1.0
    return torch.linalg.eigvals(companion)


def select_most_real_root(roots: torch.Tensor, anchor: torch.Tensor) -> Tuple[torch.Tensor, torch.Tensor]:
    """
    Picks, per row of `roots`, the root with the smallest imaginary magnitude.

    Root finders applied to real polynomials can return real roots with tiny
    spurious imaginary parts, so the root closest to the real axis is kept.
    When several roots tie (e.g. three real roots), the one whose real part
    is nearest to `anchor` wins.

    Args:
        roots (torch.Tensor): Complex tensor (N, K).
        anchor (torch.Tensor): Real tensor with N elements.

    Returns:
        Tuple[torch.Tensor, torch.Tensor]: Real part of the selected roots (N,)
        and the magnitude of their imaginary parts (N,).
    """
    imag_mag = roots.imag.abs()
    min_imag = imag_mag.min(dim=-1, keepdim=True).values
    candidates = imag_mag <= min_imag + _TIE_TOLERANCE
    distance = (roots.real - anchor.reshape(-1, 1).to(roots.real.dtype)).abs()
    distance = torch.where(candidates, distance, torch.full_like(distance, float('inf')))
    idx = torch.argmin(distance, dim=-1, keepdim=True)
    return roots.real.gather(-1, idx).squeeze(-1), imag_mag.gather(-1, idx).squeeze(-1)


def inversion_operator(y: torch.Tensor,
                       rtilde: torch.Tensor,
                       sigma_w: float,
                       sigma_lambda: float,
                       imag_tol: float = 1e-6,
                       nonnegative: bool = False,
                       return_root_imag: bool = False
                       ) -> Union[torch.Tensor, Tuple[torch.Tensor, torch.Tensor]]:
    """
    Per-pixel data-fidelity proximal step of the PnP-ADMM loop.

    Args:
        y (torch.Tensor): Measurement; must have as many elements as `rtilde`.
        rtilde (torch.Tensor): Prior-shifted target `v - u`. A complex input
            contributes its real part only.
        sigma_w (float): Noise standard deviation.
        sigma_lambda (float): Inversion tuning parameter. The quadratic
            penalty weight is 1/(2*sigma_lambda^2), so r -> rtilde as
            sigma_lambda -> 0.
        imag_tol (float, optional): A warning is logged when a selected root
            has an imaginary magnitude above this value. Defaults to 1e-6.
        nonnegative (bool, optional): Clamp the result to r >= 0. Defaults to False.
        return_root_imag (bool, optional): Also return the |imag| of the
            selected roots. Defaults to False.

    Returns:
        torch.Tensor: Real reflectance update with the shape of `rtilde`
        (float64), optionally followed by the per-pixel root |imag|.
    """
    rtilde = torch.as_tensor(rtilde)
    y = torch.as_tensor(y)
    if y.numel() != rtilde.numel():
        raise ShapeMismatchError(
            f"Measurement has {y.numel()} elements but rtilde has {rtilde.numel()} ({tuple(rtilde.shape)})."
        )
    if rtilde.is_complex():
        rtilde = rtilde.real
    rtilde = rtilde.to(torch.float64)

    roots = cubic_roots(*cubic_coefficients(rtilde, sigma_w, sigma_lambda))
    r, root_imag = select_most_real_root(roots, rtilde)

    non_real = root_imag > imag_tol
    if torch.any(non_real):
        logger.warning("Inversion operator: %d of %d pixels have no real root within %.1e "
                       "(largest |imag| %.3e); using the real part of the closest root.",
                       int(non_real.sum()), non_real.numel(), imag_tol, root_imag.max().item())

    r = r.reshape(rtilde.shape)
    if nonnegative:
        r = NonnegativityConstraint().proximal_operator(r)
    if return_root_imag:
        return r, root_imag.reshape(rtilde.shape)
    return r
