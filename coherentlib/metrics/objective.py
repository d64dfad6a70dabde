"""Objective of the coherent-imaging PnP-ADMM scheme, for convergence monitoring only."""

import logging
from typing import Tuple

import torch

logger = logging.getLogger(__name__)

# |c| at or below this counts as the singular root r = -sigma_w^2.
_SINGULAR_TOL = 1e-12


def compute_covariance_and_mean(y: torch.Tensor, sigma_w: float, r: torch.Tensor
                                ) -> Tuple[torch.Tensor, torch.Tensor]:
    """
    Per-pixel statistics of the measurement model.

    Under y ~ CN(0, r + sigma_w^2) the variance is `c = r + sigma_w^2` and the
    observed second moment is `mu = |y|^2`.

    Returns:
        Tuple[torch.Tensor, torch.Tensor]: (c, mu), both with the shape of `r`.
    """
    y = torch.as_tensor(y)
    r = torch.as_tensor(r)
    if y.numel() != r.numel():
        raise ValueError(f"y has {y.numel()} elements but r has {r.numel()}.")
    c = r.real.to(torch.float64) + sigma_w ** 2
    mu = (torch.abs(y) ** 2).to(torch.float64).reshape(r.shape)
    return c, mu


def compute_cost_function(c: torch.Tensor, mu: torch.Tensor, r: torch.Tensor,
                          sigma_lambda: float, r_ref: torch.Tensor) -> float:
    """
    sum( log|c| + mu / c + (r - r_ref)^2 / (2 * sigma_lambda^2) )

    log|c| is the real part of the complex logarithm, so pixels where the
    estimate falls below -sigma_w^2 still give a finite diagnostic.

    Pixels with |c| <= 1e-12 (the inversion root r = -sigma_w^2) have no finite
    cost term; they are left out of the sum and counted in a debug message.
    """
    r = torch.as_tensor(r).real.to(torch.float64)
    r_ref = torch.as_tensor(r_ref).real.to(torch.float64).reshape(r.shape)
    c = torch.as_tensor(c).to(torch.float64).reshape(r.shape)
    mu = torch.as_tensor(mu).to(torch.float64).reshape(r.shape)

    regular = torch.abs(c) > _SINGULAR_TOL
    num_singular = int((~regular).sum())
    if num_singular:
        logger.debug("Cost function: %d of %d pixels have c ~ 0 and are left out of the sum.",
                     num_singular, regular.numel())
    c_safe = torch.where(regular, c, torch.ones_like(c))
    cost = torch.log(torch.abs(c_safe)) + mu / c_safe + (r - r_ref) ** 2 / (2 * sigma_lambda ** 2)
    return torch.sum(cost[regular]).item()


def evaluate_cost(y: torch.Tensor, sigma_w: float, r: torch.Tensor,
                  sigma_lambda: float, r_ref: torch.Tensor) -> float:
    """Convenience wrapper: statistics from (y, sigma_w, r), then the cost."""
    c, mu = compute_covariance_and_mean(y, sigma_w, r)
    return compute_cost_function(c, mu, r, sigma_lambda, r_ref)
