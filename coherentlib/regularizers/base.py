import abc
import torch

class Regularizer(abc.ABC, torch.nn.Module):
    """
    Abstract base class for regularizers used as plug-in priors.

    Regularizers implement their value (cost) and their proximal operator.
    Any regularizer can serve as a denoising operator in the PnP-ADMM loop
    through its proximal operator.
    """
    def __init__(self):
        super().__init__()

    @abc.abstractmethod
    def value(self, x: torch.Tensor) -> torch.Tensor:
        """
        Computes the value of the regularization term R(x).

        Args:
            x (torch.Tensor): The input tensor.

        Returns:
            torch.Tensor: A scalar tensor representing the value of R(x).
        """
        pass

    @abc.abstractmethod
    def proximal_operator(self, x: torch.Tensor, steplength: float) -> torch.Tensor:
        """
        Computes the proximal operator of the regularization term R:
        prox_R(x, steplength) = argmin_u { R(u) + (1/(2*steplength)) * ||u - x||_2^2 }

        Args:
            x (torch.Tensor): The input tensor.
            steplength (float): The 'gamma' in the definition above. When R is
                `lambda * R_base`, the effective threshold is `lambda * steplength`.

        Returns:
            torch.Tensor: The result of the proximal operation, same shape as `x`.
        """
        pass

    def forward(self, x: torch.Tensor, steplength: float) -> torch.Tensor:
        return self.proximal_operator(x, steplength)
