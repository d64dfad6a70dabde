import dataclasses
import logging
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

import torch
import torch.nn as nn

from coherentlib.config import RetrieverConfig
from coherentlib.denoisers import get_denoiser
from coherentlib.exceptions import ConfigurationError, ReconstructionCancelledError
from coherentlib.inversion import inversion_operator
from coherentlib.metrics.image_metrics import psnr
from coherentlib.metrics.objective import evaluate_cost
from coherentlib.operators import FourierOperator, Operator
from coherentlib.utils import fourier_based_reconstruction, to_object_shape

logger = logging.getLogger(__name__)

ObserverFn = Callable[[int, torch.Tensor, torch.Tensor, torch.Tensor, Dict[str, float]], None]


@dataclasses.dataclass
class ADMMHistory:
    """Per-iteration diagnostics of one PnP-ADMM run (one entry per iteration)."""
    cost: List[float] = dataclasses.field(default_factory=list)
    psnr: List[float] = dataclasses.field(default_factory=list)
    residual_norm: List[float] = dataclasses.field(default_factory=list)
    step_norm: List[float] = dataclasses.field(default_factory=list)
    max_root_imag: List[float] = dataclasses.field(default_factory=list)
    iterates: List[Tuple[torch.Tensor, torch.Tensor]] = dataclasses.field(default_factory=list)

    @property
    def num_iterations(self) -> int:
        return len(self.residual_norm)


@dataclasses.dataclass
class ReconstructionResult:
    """Final (r, v, u) triple of a run and its diagnostics."""
    reflectance: torch.Tensor
    v: torch.Tensor
    u: torch.Tensor
    history: ADMMHistory


class PnPADMMReconstructor(nn.Module):
    """
    Plug-and-Play ADMM reconstruction of a reflectance map from a coherent
    Fourier-domain measurement.

    Each iteration alternates the per-pixel inversion operator (data term)
    with a denoiser acting as implicit prior, coupled by the scaled dual
    variable u:

        rtilde = v - u
        r      = InversionOperator(y, rtilde, sigma_w, sigma_lambda)
        vtilde = r + u
        v      = Denoise(vtilde, sigman)
        u      = u + (r - v)

    starting from v = |A^-1 y|^2, u = 0. The loop always runs
    `config.max_iters` iterations; the recorded cost, PSNR and residual
    norms are diagnostics only.

    Nothing about a run is stored on the reconstructor, so one instance can
    serve independent runs.
    """
    def __init__(self,
                 config: RetrieverConfig,
                 forward_op: Optional[Operator] = None,
                 denoiser: Optional[Callable[[torch.Tensor, float, bool], torch.Tensor]] = None,
                 observer: Optional[ObserverFn] = None,
                 should_stop: Optional[Callable[[], bool]] = None,
                 timeout_s: Optional[float] = None,
                 verbose: bool = False,
                 record_iterates: bool = False,
                 compute_cost: bool = True):
        """
        Args:
            config: Validated parameter set (sigma_w, sigma_lambda, sigman,
                max_iters, denoiser_type, real_only, ground_truth, ...).
            forward_op: Linear forward model whose `op_adj` gives the warm
                start. Defaults to a centered FourierOperator of the object size.
            denoiser: Optional callable `fn(vtilde, sigman, real_only)` that
                replaces the registered `config.denoiser_type` family.
            observer: Optional callable `fn(iteration, r, v, u, diagnostics)`
                invoked after every iteration with copies of the iterates.
            should_stop: Optional callable checked before every iteration;
                returning True aborts the run.
            timeout_s: Optional wall-clock limit in seconds, checked between
                iterations.
            verbose: If True, log iteration progress at INFO level.
            record_iterates: If True, keep a copy of (r_k, v_k) for every
                iteration in the history.
            compute_cost: If False, skip the cost diagnostic.
        """
        super().__init__()
        if timeout_s is not None and timeout_s <= 0:
            raise ValueError(f"timeout_s must be positive, got {timeout_s}.")
        self.config = config
        self.forward_op = forward_op if forward_op is not None else FourierOperator(config.object_size_pixels)
        self.denoiser = denoiser
        # Resolved once; later registry changes do not affect this reconstructor.
        if denoiser is None:
            try:
                self._denoiser_fn = get_denoiser(config.denoiser_type)
            except ValueError as exc:
                raise ConfigurationError(str(exc)) from None
        else:
            self._denoiser_fn = denoiser
        self.observer = observer
        self.should_stop = should_stop
        self.timeout_s = timeout_s
        self.verbose = verbose
        self.record_iterates = record_iterates
        self.compute_cost = compute_cost

    def _denoise(self, vtilde: torch.Tensor) -> torch.Tensor:
        cfg = self.config
        v = torch.as_tensor(self._denoiser_fn(vtilde, cfg.sigman, cfg.real_only))
        if v.shape != vtilde.shape:
            raise ValueError(f"Denoiser returned shape {tuple(v.shape)}, expected {tuple(vtilde.shape)}.")
        if cfg.real_only and v.is_complex():
            v = v.real
        return v.to(torch.complex128 if v.is_complex() else torch.float64)

    def _check_cancelled(self, iterations_completed: int, start_time: float) -> None:
        if self.should_stop is not None and self.should_stop():
            raise ReconstructionCancelledError(
                f"Reconstruction cancelled by caller after {iterations_completed} iteration(s).",
                iterations_completed)
        if self.timeout_s is not None and time.monotonic() - start_time > self.timeout_s:
            raise ReconstructionCancelledError(
                f"Reconstruction exceeded timeout of {self.timeout_s:.3g} s after "
                f"{iterations_completed} iteration(s).", iterations_completed)

    def initial_estimate(self, y: torch.Tensor) -> torch.Tensor:
        """Fourier-based reconstruction |A^-1 y|^2 used as warm start for v."""
        return fourier_based_reconstruction(y, self.forward_op)

    def reconstruct(self, y: torch.Tensor) -> ReconstructionResult:
        """
        Runs the PnP-ADMM iterations on the measurement `y`.

        Args:
            y: Complex measurement with prod(object_size_pixels) elements.

        Returns:
            ReconstructionResult: final r, v, u (object-sized, float64) and
            the per-iteration history.
        """
        cfg = self.config
        y = to_object_shape(y, cfg.object_size_pixels, name='y').to(torch.complex128)

        v = self.initial_estimate(y)
        u = torch.zeros_like(v)
        r = v - u
        history = ADMMHistory()
        gt = cfg.ground_truth.to(device=v.device) if cfg.ground_truth is not None else None
        start_time = time.monotonic()

        if self.verbose:
            logger.info("PnP-ADMM started: max_iters=%d, sigma_w=%.3g, sigma_lambda=%.3g, sigman=%.3g, denoiser=%s",
                        cfg.max_iters, cfg.sigma_w, cfg.sigma_lambda, cfg.sigman,
                        cfg.denoiser_type if self.denoiser is None else getattr(self.denoiser, '__name__', 'custom'))

        for iter_num in range(cfg.max_iters):
            self._check_cancelled(iter_num, start_time)

            # r-update
            rtilde = v - u
            r, root_imag = inversion_operator(y, rtilde, cfg.sigma_w, cfg.sigma_lambda,
                                              imag_tol=cfg.root_imag_tol, nonnegative=cfg.nonnegative,
                                              return_root_imag=True)
            diagnostics: Dict[str, Any] = {'max_root_imag': root_imag.max().item()}
            if self.compute_cost:
                diagnostics['cost'] = evaluate_cost(y, cfg.sigma_w, r, cfg.sigma_lambda, rtilde)

            # v-update
            v_prev = v
            v = self._denoise(r + u)

            # u-update (scaled dual)
            u = u + (r - v)

            with torch.no_grad():
                diagnostics['residual_norm'] = torch.linalg.norm(r - v).item()
                diagnostics['step_norm'] = torch.linalg.norm(v_prev - v).item()
                if gt is not None:
                    diagnostics['psnr'] = psnr(gt, r).item()

            history.residual_norm.append(diagnostics['residual_norm'])
            history.step_norm.append(diagnostics['step_norm'])
            history.max_root_imag.append(diagnostics['max_root_imag'])
            if 'cost' in diagnostics:
                history.cost.append(diagnostics['cost'])
            if 'psnr' in diagnostics:
                history.psnr.append(diagnostics['psnr'])
            if self.record_iterates:
                history.iterates.append((r.clone(), v.clone()))

            if self.verbose:
                logger.info("PnP-ADMM iter %d/%d: ||r-v||=%.3e, ||v_prev-v||=%.3e%s%s",
                            iter_num + 1, cfg.max_iters, diagnostics['residual_norm'], diagnostics['step_norm'],
                            f", cost={diagnostics['cost']:.4e}" if 'cost' in diagnostics else '',
                            f", PSNR={diagnostics['psnr']:.2f} dB" if 'psnr' in diagnostics else '')

            if self.observer is not None:
                self.observer(iter_num, r.clone(), v.clone(), u.clone(), dict(diagnostics))

        return ReconstructionResult(reflectance=r, v=v, u=u, history=history)

    def forward(self, y: torch.Tensor) -> torch.Tensor:
        return self.reconstruct(y).reflectance
