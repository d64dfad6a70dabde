"""Synthetic data for coherent reflectance imaging: phantoms and noisy Fourier measurements."""

import math
from typing import NamedTuple, Optional

import torch

from .operators import FourierOperator, Operator


class SimulatedMeasurement(NamedTuple):
    y: torch.Tensor  # noisy measurement A g + w
    g: torch.Tensor  # complex object field, g ~ CN(0, diag(r))
    w: torch.Tensor  # realized measurement noise


def _make_generator(seed: Optional[int]) -> torch.Generator:
    generator = torch.Generator(device='cpu')
    if seed is None:
        generator.seed()
    else:
        generator.manual_seed(int(seed))
    return generator


def _complex_normal(shape, generator: torch.Generator) -> torch.Tensor:
    """Complex samples whose real and imaginary parts are independent N(0, 1)."""
    real = torch.randn(shape, generator=generator, dtype=torch.float64)
    imag = torch.randn(shape, generator=generator, dtype=torch.float64)
    return torch.complex(real, imag)


def simulate_coherent_measurements(reflectance: torch.Tensor,
                                   sigma_w: float,
                                   forward_op: Optional[Operator] = None,
                                   noise_type: str = 'Gaussian',
                                   seed: Optional[int] = None,
                                   photons_per_unit: float = 1e3) -> SimulatedMeasurement:
    """
    Simulates a noisy coherent measurement of a reflectance map.

    The object emits a circularly-symmetric complex Gaussian field whose
    per-pixel variance is the reflectance, g ~ CN(0, diag(r)), observed through
    the linear forward model A:

    - 'Gaussian': y = A g + w with w ~ CN(0, sigma_w^2).
    - 'Poisson': photon counts n ~ Poisson(photons_per_unit * |A g|^2) give
      y = sqrt(n / photons_per_unit) * exp(i * angle(A g)); w = y - A g.

    All randomness comes from a private generator seeded with `seed`, so the
    global torch RNG state is untouched.

    Args:
        reflectance (torch.Tensor): Non-negative 2D reflectance (H, W).
        sigma_w (float): Std. deviation of the additive complex noise (> 0).
        forward_op (Operator, optional): Linear forward model. Defaults to a
            centered FourierOperator of the reflectance shape.
        noise_type (str, optional): 'Gaussian' or 'Poisson'. Defaults to 'Gaussian'.
        seed (int, optional): Seed for reproducible draws. None draws a fresh seed.
        photons_per_unit (float, optional): Intensity-to-counts scale of the
            Poisson mode. Defaults to 1e3.

    Returns:
        SimulatedMeasurement: (y, g, w), each complex128 of shape (H, W).
    """
    r = torch.as_tensor(reflectance).to(torch.float64)
    if r.ndim != 2:
        raise ValueError(f"reflectance must be a 2D array, got shape {tuple(r.shape)}.")
    if torch.any(r < 0):
        raise ValueError("reflectance must be non-negative.")
    if sigma_w <= 0:
        raise ValueError(f"sigma_w must be positive, got {sigma_w}.")
    if noise_type not in ('Gaussian', 'Poisson'):
        raise ValueError(f"noise_type '{noise_type}' is not supported. Supported noise types are: 'Poisson', 'Gaussian'.")
    if photons_per_unit <= 0:
        raise ValueError(f"photons_per_unit must be positive, got {photons_per_unit}.")

    if forward_op is None:
        forward_op = FourierOperator(tuple(r.shape))
    generator = _make_generator(seed)

    g = torch.sqrt(r / 2) * _complex_normal(r.shape, generator)
    clean = forward_op.op(g).to(torch.complex128)

    if noise_type == 'Gaussian':
        w = (sigma_w / math.sqrt(2)) * _complex_normal(clean.shape, generator)
        y = clean + w
    else:
        counts = torch.poisson(photons_per_unit * torch.abs(clean) ** 2, generator=generator)
        y = torch.polar(torch.sqrt(counts / photons_per_unit), torch.angle(clean))
        w = y - clean
    return SimulatedMeasurement(y=y, g=g, w=w)


def generate_resolution_target(shape: tuple[int, int] = (256, 256),
                               num_groups: int = 4,
                               background: float = 0.0,
                               foreground: float = 1.0) -> torch.Tensor:
    """
    Bar-pattern reflectance phantom in the style of a USAF resolution target.

    The image is split into `num_groups` columns; every group holds three
    vertical bars in the top half and three horizontal bars in the bottom
    half, each group with half the bar width of the previous one.

    Returns:
        torch.Tensor: float64 tensor of `shape` with values in {background, foreground}.
    """
    H, W = (int(s) for s in shape)
    if num_groups < 1:
        raise ValueError("num_groups must be at least 1.")
    if not 0 <= background <= foreground:
        raise ValueError("Expected 0 <= background <= foreground.")
    cell_w = W // num_groups
    half_h = H // 2
    if cell_w < 5 or half_h < 5:
        raise ValueError(f"shape {tuple(shape)} is too small for {num_groups} bar group(s).")

    target = torch.full((H, W), float(background), dtype=torch.float64)
    for group in range(num_groups):
        bar = max(1, min(cell_w, half_h) // (10 * 2 ** group))
        extent = 5 * bar
        x0 = group * cell_w + (cell_w - extent) // 2
        y_top = (half_h - extent) // 2
        y_bottom = half_h + (H - half_h - extent) // 2
        for b in range(3):
            offset = 2 * b * bar
            target[y_top:y_top + extent, x0 + offset:x0 + offset + bar] = foreground
            target[y_bottom + offset:y_bottom + offset + bar, x0:x0 + extent] = foreground
    return target
