import logging

import torch
from .base import Regularizer
from .functional import forward_differences, total_variation

logger = logging.getLogger(__name__)


class TVRegularizer(Regularizer):
    """Total Variation (TV) Regularizer: R(x) = lambda_param * TV(x).

    Promotes piece-wise constant solutions by penalizing the magnitude of the
    finite-difference gradient of `x`. Isotropic TV is used:
    `TV(x) = sum_i sqrt( (grad_h x)_i^2 + (grad_w x)_i^2 [+ (grad_d x)_i^2] )`.

    The proximal operator is solved with Chambolle's dual projection
    algorithm, which makes it the edge-preserving denoiser plugged into the
    PnP-ADMM loop.
    """
    def __init__(self,
                 lambda_param: float,
                 max_chambolle_iter: int = 50,
                 tol_chambolle: float = 1e-5,
                 verbose_chambolle: bool = False):
        """Initializes the Total Variation (TV) Regularizer.

        Args:
            lambda_param (float): The regularization strength parameter.
                Must be non-negative.
            max_chambolle_iter (int, optional): Maximum number of iterations for
                Chambolle's algorithm in the proximal operator. Defaults to 50.
            tol_chambolle (float, optional): Relative change of the dual
                variable below which Chambolle's algorithm stops. Defaults to 1e-5.
            verbose_chambolle (bool, optional): If True, logs convergence
                information from Chambolle's algorithm. Defaults to False.
        """
        super().__init__()
        if lambda_param < 0:
            raise ValueError("lambda_param must be non-negative.")
        if max_chambolle_iter < 1:
            raise ValueError("max_chambolle_iter must be at least 1.")
        self.lambda_param = lambda_param
        self.max_iter = max_chambolle_iter
        self.tol = tol_chambolle
        self.verbose = verbose_chambolle

    def value(self, x: torch.Tensor) -> torch.Tensor:
        """Computes lambda_param * TV(x) for a 2D or 3D tensor."""
        return self.lambda_param * total_variation(x, isotropic=True)

    def _gradient(self, x: torch.Tensor) -> torch.Tensor:
        return forward_differences(x, spatial_ndim=x.ndim)

    def _divergence(self, grad_field: torch.Tensor) -> torch.Tensor:
        # Negative adjoint of _gradient: backward differences with the
        # first sample of each axis kept as is.
        num_spatial_dims = grad_field.shape[0]
        div = torch.zeros_like(grad_field[0])
        for d in range(num_spatial_dims):
            component_d = grad_field[d]
            axis = component_d.ndim - num_spatial_dims + d
            shifted_comp = torch.roll(component_d, shifts=1, dims=axis)
            first_slice = [slice(None)] * component_d.ndim
            first_slice[axis] = 0
            shifted_comp[tuple(first_slice)] = 0.0
            div = div + (component_d - shifted_comp)
        return div

    def proximal_operator(self, x_tensor: torch.Tensor, steplength: float) -> torch.Tensor:
        if x_tensor.is_complex():
            x_real = self.proximal_operator(x_tensor.real.contiguous(), steplength)
            x_imag = self.proximal_operator(x_tensor.imag.contiguous(), steplength)
            return torch.complex(x_real, x_imag)

        if x_tensor.ndim > 3:
            return torch.stack([self.proximal_operator(x_tensor[i], steplength) for i in range(x_tensor.shape[0])])
        if x_tensor.ndim < 2:
            raise ValueError(f"TV prox expects a 2D or 3D tensor, got shape {tuple(x_tensor.shape)}.")

        effective_lambda_prox = self.lambda_param * steplength
        if effective_lambda_prox == 0:
            return x_tensor

        p = torch.zeros((x_tensor.ndim,) + x_tensor.shape, device=x_tensor.device, dtype=x_tensor.dtype)
        tau = 0.120  # dual step, below 1/(2*ndim) for 2D and 3D

        for i in range(self.max_iter):
            grad_term = self._gradient(self._divergence(p) - x_tensor / effective_lambda_prox)
            p_candidate = p + tau * grad_term

            # Project each gradient vector onto the unit ball
            norm_p_candidate_vectors = torch.sqrt(torch.sum(p_candidate ** 2, dim=0, keepdim=True))
            p_new = p_candidate / torch.clamp(norm_p_candidate_vectors, min=1.0)

            relative_diff_p = torch.linalg.norm(p_new - p) / (torch.linalg.norm(p) + 1e-9)
            p = p_new

            if self.verbose and (i % 10 == 0 or i == self.max_iter - 1):
                logger.debug("TV prox iter %d/%d, rel_diff_p: %.2e", i + 1, self.max_iter, relative_diff_p.item())

            if relative_diff_p < self.tol:
                if self.verbose:
                    logger.debug("TV prox converged at iter %d, rel_diff_p: %.2e", i + 1, relative_diff_p.item())
                break

        return x_tensor - effective_lambda_prox * self._divergence(p)


class NonnegativityConstraint(Regularizer):
    """Non-negativity Constraint: indicator of the non-negative orthant.

    Its proximal operator is the projection r -> max(r, 0), applied to the
    inversion output when the reflectance is required to be physical.
    """
    def __init__(self):
        super().__init__()

    def value(self, x: torch.Tensor) -> torch.Tensor:
        """Returns 0 when every element (real part if complex) is >= 0, +inf otherwise."""
        data_to_check = x.real if x.is_complex() else x
        dtype = data_to_check.dtype if data_to_check.is_floating_point() else torch.float32
        if torch.all(data_to_check >= -1e-9):
            return torch.tensor(0.0, device=x.device, dtype=dtype)
        return torch.tensor(float('inf'), device=x.device, dtype=dtype)

    def proximal_operator(self, x: torch.Tensor, steplength: float = 1.0) -> torch.Tensor:
        """Projects `x` onto the non-negative orthant; `steplength` has no effect."""
        if x.is_complex():
            return torch.complex(torch.clamp(x.real, min=0.0), x.imag)
        return torch.clamp(x, min=0.0)
