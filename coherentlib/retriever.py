"""Configured inverse-model retriever exposed with linear-operator syntax."""

import copy
from typing import Callable, Optional

import torch

from .config import RetrieverConfig
from .operators import Operator
from .reconstructors.pnp_admm_reconstructor import (ADMMHistory, ObserverFn, PnPADMMReconstructor,
                                                    ReconstructionResult)
from .utils import to_object_shape


def ml_reconstruction(x: torch.Tensor, sigma_w: float) -> torch.Tensor:
    """Maximum-likelihood reflectance: r = |x|^2 - sigma_w^2 (elementwise, no iteration)."""
    x = torch.as_tensor(x)
    return (torch.abs(x) ** 2).to(torch.float64) - sigma_w ** 2


class ReflectanceRetriever(Operator):
    """
    Inverse-model retriever for coherent reflectance imaging.

    Applying the retriever to a measurement vector reshapes it to
    `object_size_pixels`, reconstructs the reflectance with the configured
    inversion model and returns it flattened:

    - 'ML':  r = |x|^2 - sigma_w^2
    - 'PnP': PnP-ADMM with the configured denoiser (see PnPADMMReconstructor)

    The retriever is a nonlinear estimator used where linear-operator syntax
    is expected; `op_adj`, `conj`, `transpose` and `ctranspose` therefore
    behave exactly like the retriever itself.

    Args:
        config (RetrieverConfig, optional): Validated parameters. When omitted,
            `config_kwargs` are used to build one, so invalid values raise
            ConfigurationError here.
        forward_op, denoiser, observer, should_stop, timeout_s, verbose:
            Passed to PnPADMMReconstructor.
        **config_kwargs: RetrieverConfig fields.

    Example:
        >>> retriever = ReflectanceRetriever(object_size_pixels=(64, 64), sigma_w=0.1,
        ...                                  inversion_model_type='PnP', max_iters=10)
        >>> r = retriever.apply(y).reshape(64, 64)
    """
    def __init__(self,
                 config: Optional[RetrieverConfig] = None,
                 forward_op: Optional[Operator] = None,
                 denoiser: Optional[Callable[[torch.Tensor, float, bool], torch.Tensor]] = None,
                 observer: Optional[ObserverFn] = None,
                 should_stop: Optional[Callable[[], bool]] = None,
                 timeout_s: Optional[float] = None,
                 verbose: bool = False,
                 **config_kwargs):
        if config is None:
            config = RetrieverConfig(**config_kwargs)
        elif config_kwargs:
            config = config.replace(**config_kwargs)
        self.config = config
        self.reconstructor = PnPADMMReconstructor(
            config,
            forward_op=forward_op,
            denoiser=denoiser,
            observer=observer,
            should_stop=should_stop,
            timeout_s=timeout_s,
            verbose=verbose,
        )

    @property
    def object_size_pixels(self) -> tuple[int, int]:
        return self.config.object_size_pixels

    def reconstruct(self, x: torch.Tensor) -> ReconstructionResult:
        """Reconstructs from `x` and returns the object-shaped result with diagnostics."""
        cfg = self.config
        x = to_object_shape(x, cfg.object_size_pixels)
        if cfg.inversion_model_type == 'ML':
            r = ml_reconstruction(x, cfg.sigma_w)
            return ReconstructionResult(reflectance=r, v=r.clone(), u=torch.zeros_like(r), history=ADMMHistory())
        return self.reconstructor.reconstruct(x)

    def apply(self, x: torch.Tensor) -> torch.Tensor:
        """Reconstructs from `x` and returns the reflectance as a flat vector."""
        return self.reconstruct(x).reflectance.reshape(-1)

    def __call__(self, x: torch.Tensor) -> torch.Tensor:
        return self.apply(x)

    def op(self, x: torch.Tensor) -> torch.Tensor:
        return self.apply(x)

    def op_adj(self, y: torch.Tensor) -> torch.Tensor:
        return self.apply(y)

    def conj(self) -> 'ReflectanceRetriever':
        return copy.copy(self)

    def transpose(self) -> 'ReflectanceRetriever':
        return copy.copy(self)

    def ctranspose(self) -> 'ReflectanceRetriever':
        return copy.copy(self)

    @property
    def T(self) -> 'ReflectanceRetriever':
        return self.transpose()

    @property
    def H(self) -> 'ReflectanceRetriever':
        return self.ctranspose()

    def __repr__(self) -> str:
        cfg = self.config
        return (f"{type(self).__name__}(object_size_pixels={cfg.object_size_pixels}, "
                f"inversion_model_type='{cfg.inversion_model_type}', noise_type='{cfg.noise_type}', "
                f"sigma_w={cfg.sigma_w})")
