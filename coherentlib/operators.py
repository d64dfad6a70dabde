"""Module for defining Operator classes for coherent imaging."""

from abc import ABC, abstractmethod

import torch


# Operator Base Class
class Operator(ABC):
    @abstractmethod
    def op(self, x): pass
    @abstractmethod
    def op_adj(self, y): pass


class FourierOperator(Operator):
    """
    Centered 2D Fourier transform, the linear forward model of the sensor.

    Forward: y = fftshift(fft2(g)) maps the complex object field g to the
    Fourier-domain field recorded (in magnitude) by the sensor.
    Adjoint: g = ifft2(ifftshift(y)). With the default norm='backward' this
    is the inverse transform, i.e. the true adjoint scaled by 1/N; with
    norm='ortho' it is the exact adjoint.

    Args:
        image_shape (tuple[int, int]): Object size (H, W).
        norm (str, optional): torch.fft normalization mode. Defaults to 'backward'.
        device (str or torch.device, optional): Device for computations. Defaults to 'cpu'.
    """
    def __init__(self,
                 image_shape: tuple[int, int],
                 norm: str = 'backward',
                 device: str | torch.device = 'cpu'):
        if len(image_shape) != 2:
            raise ValueError("image_shape must be a 2-tuple (H, W).")
        if norm not in ('backward', 'ortho', 'forward'):
            raise ValueError(f"Unknown norm: {norm}. Must be 'backward', 'ortho' or 'forward'.")
        self.image_shape = tuple(int(s) for s in image_shape)
        self.norm = norm
        self.device = torch.device(device)

    def _check_shape(self, data: torch.Tensor, name: str) -> torch.Tensor:
        data = torch.as_tensor(data, device=self.device)
        if tuple(data.shape[-2:]) != self.image_shape:
            raise ValueError(f"Input {name} spatial shape {tuple(data.shape[-2:])} must match {self.image_shape}.")
        if not data.is_complex():
            data = data.to(torch.complex128 if data.dtype == torch.float64 else torch.complex64)
        return data

    def op(self, object_field: torch.Tensor) -> torch.Tensor:
        object_field = self._check_shape(object_field, 'object_field')
        return torch.fft.fftshift(torch.fft.fft2(object_field, norm=self.norm), dim=(-2, -1))

    def op_adj(self, fourier_field: torch.Tensor) -> torch.Tensor:
        fourier_field = self._check_shape(fourier_field, 'fourier_field')
        return torch.fft.ifft2(torch.fft.ifftshift(fourier_field, dim=(-2, -1)), norm=self.norm)
