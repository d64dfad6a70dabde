"""Validated configuration for coherent reflectance retrieval."""

import dataclasses
import math
import numbers
from typing import Any, Optional, Sequence, Tuple

import numpy as np
import torch

from .denoisers import available_denoisers
from .exceptions import ConfigurationError

SUPPORTED_INVERSION_MODEL_TYPES = ('ML', 'PnP')
SUPPORTED_NOISE_TYPES = ('Poisson', 'Gaussian')


def _format_supported(values: Sequence[str]) -> str:
    return ', '.join(f"'{v}'" for v in values)


def _validate_positive_scalar(name: str, value: Any) -> float:
    if isinstance(value, torch.Tensor):
        if value.numel() != 1:
            raise ConfigurationError(f"{name} must be a scalar, got a tensor of shape {tuple(value.shape)}.")
        value = value.item()
    elif isinstance(value, np.ndarray):
        if value.size != 1:
            raise ConfigurationError(f"{name} must be a scalar, got an array of shape {value.shape}.")
        value = value.item()
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise ConfigurationError(f"{name} must be a real number, got {type(value).__name__}.")
    value = float(value)  # single -> double widening
    if not math.isfinite(value):
        raise ConfigurationError(f"{name} must be finite, got {value}.")
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value}.")
    return value


def _validate_positive_integer(name: str, value: Any) -> int:
    value = _validate_positive_scalar(name, value)
    if not value.is_integer():
        raise ConfigurationError(f"{name} must be an integer, got {value}.")
    return int(value)


def _validate_choice(name: str, value: Any, supported: Sequence[str], label: str, default: str) -> str:
    if value is None or (isinstance(value, str) and value == ''):
        return default
    if not isinstance(value, str):
        raise ConfigurationError(f"{name} must be a string, got {type(value).__name__}.")
    if value not in supported:
        raise ConfigurationError(
            f"{name} '{value}' is not supported. "
            f"Supported {label} are: {_format_supported(supported)}."
        )
    return value


def _normalize_object_size(value: Any) -> Tuple[int, int]:
    if isinstance(value, torch.Tensor):
        value = value.tolist()
    elif isinstance(value, np.ndarray):
        value = value.ravel().tolist()
    if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
        raise ConfigurationError(
            f"object_size_pixels must be a sequence of 2 positive integers, got {value!r}."
        )
    if len(value) != 2:
        raise ConfigurationError(
            f"object_size_pixels must contain exactly 2 elements (rows, cols), got {len(value)}."
        )
    return tuple(_validate_positive_integer('object_size_pixels', v) for v in value)


@dataclasses.dataclass(frozen=True, eq=False)
class RetrieverConfig:
    """Immutable parameter set for an inverse-model retriever.

    All fields are validated once, in ``__post_init__``, before any array is
    allocated. Numeric fields are widened to Python ``float``/``int``, the
    object size is normalized to a ``(rows, cols)`` tuple and the optional
    ground truth is reshaped to that size.

    Args:
        object_size_pixels: Size of the object as ``(rows, cols)``.
        sigma_w: Std. deviation of the additive white-Gaussian noise.
        inversion_model_type: 'ML' (closed form) or 'PnP' (iterative).
        noise_type: 'Gaussian' or 'Poisson'.
        max_iters: Number of PnP-ADMM iterations.
        sigma_lambda: Tuning parameter of the inversion operator.
        sigman: Strength passed to the denoising operator.
        denoiser_type: Name of a registered denoiser family.
        ground_truth: Reference reflectance used only for PSNR diagnostics.
        real_only: If True the denoiser output is projected onto real values.
        nonnegative: If True the inversion output is clamped to r >= 0.
        root_imag_tol: Imaginary magnitude above which a selected root is
            reported as non-real.
    """
    object_size_pixels: Tuple[int, int]
    sigma_w: float
    inversion_model_type: Optional[str] = 'ML'
    noise_type: Optional[str] = 'Gaussian'
    max_iters: int = 25
    sigma_lambda: float = 0.1
    sigman: float = 0.1
    denoiser_type: Optional[str] = 'TV'
    ground_truth: Optional[Any] = None
    real_only: bool = True
    nonnegative: bool = False
    root_imag_tol: float = 1e-6

    def __post_init__(self):
        size = _normalize_object_size(self.object_size_pixels)
        object.__setattr__(self, 'object_size_pixels', size)
        object.__setattr__(self, 'sigma_w', _validate_positive_scalar('sigma_w', self.sigma_w))
        object.__setattr__(self, 'inversion_model_type', _validate_choice(
            'inversion_model_type', self.inversion_model_type,
            SUPPORTED_INVERSION_MODEL_TYPES, 'inversion model types', 'ML'))
        object.__setattr__(self, 'noise_type', _validate_choice(
            'noise_type', self.noise_type, SUPPORTED_NOISE_TYPES, 'noise types', 'Gaussian'))
        object.__setattr__(self, 'max_iters', _validate_positive_integer('max_iters', self.max_iters))
        object.__setattr__(self, 'sigma_lambda', _validate_positive_scalar('sigma_lambda', self.sigma_lambda))
        object.__setattr__(self, 'sigman', _validate_positive_scalar('sigman', self.sigman))
        object.__setattr__(self, 'denoiser_type', _validate_choice(
            'denoiser_type', self.denoiser_type, available_denoisers(), 'denoiser types', 'TV'))
        object.__setattr__(self, 'root_imag_tol', _validate_positive_scalar('root_imag_tol', self.root_imag_tol))

        for flag in ('real_only', 'nonnegative'):
            if not isinstance(getattr(self, flag), bool):
                raise ConfigurationError(f"{flag} must be a bool, got {type(getattr(self, flag)).__name__}.")

        if self.ground_truth is not None:
            gt = torch.as_tensor(self.ground_truth)
            if gt.is_complex():
                raise ConfigurationError("ground_truth must be a real-valued reflectance.")
            if gt.numel() != size[0] * size[1]:
                raise ConfigurationError(
                    f"ground_truth has {gt.numel()} elements, expected {size[0] * size[1]} "
                    f"for object_size_pixels {size}."
                )
            object.__setattr__(self, 'ground_truth', gt.reshape(size).to(torch.float64))

    @property
    def num_pixels(self) -> int:
        return self.object_size_pixels[0] * self.object_size_pixels[1]

    def replace(self, **changes) -> 'RetrieverConfig':
        """Returns a new, re-validated config with ``changes`` applied."""
        return dataclasses.replace(self, **changes)
