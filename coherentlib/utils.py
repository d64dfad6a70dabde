import torch
from typing import Optional

from .exceptions import ShapeMismatchError
from .operators import FourierOperator, Operator


def fourier_based_reconstruction(y: torch.Tensor, forward_op: Optional[Operator] = None) -> torch.Tensor:
    """
    Fourier-based reconstruction (FBR): r = |A^-1 y|^2.

    The naive estimate of the reflectance, used as the warm start of the
    PnP-ADMM loop.

    Args:
        y (torch.Tensor): Complex measurement (H, W).
        forward_op (Operator, optional): Forward model; its `op_adj` is applied
            to `y`. Defaults to a centered FourierOperator of y's shape.

    Returns:
        torch.Tensor: Real (float64) estimate of shape (H, W).
    """
    y = torch.as_tensor(y)
    if y.ndim != 2:
        raise ValueError(f"y must be a 2D array, got shape {tuple(y.shape)}.")
    if forward_op is None:
        forward_op = FourierOperator(tuple(y.shape), device=y.device)
    field = forward_op.op_adj(y.to(torch.complex128))
    return (torch.abs(field) ** 2).to(torch.float64)


def suggest_sigma_lambda(v0: torch.Tensor, scale: float = 0.5) -> float:
    """Heuristic inversion tuning parameter: scale * std(v0)."""
    if scale <= 0:
        raise ValueError("scale must be positive.")
    v0 = torch.as_tensor(v0).real.to(torch.float64)
    value = scale * torch.sqrt(torch.var(v0.reshape(-1))).item()
    if value <= 0:
        raise ValueError("v0 is constant; cannot derive a positive sigma_lambda from it.")
    return value


def to_object_shape(x, object_size_pixels: tuple[int, int], name: str = 'x') -> torch.Tensor:
    """Reshapes `x` to `object_size_pixels`, checking the element count first."""
    x = torch.as_tensor(x)
    expected = object_size_pixels[0] * object_size_pixels[1]
    if x.numel() != expected:
        raise ShapeMismatchError(
            f"Input {name} has {x.numel()} elements, expected {expected} "
            f"for object_size_pixels {tuple(object_size_pixels)}."
        )
    return x.reshape(object_size_pixels)
