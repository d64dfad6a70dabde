import torch
import torch.nn.functional as F


def forward_differences(image: torch.Tensor, spatial_ndim: int = 2) -> torch.Tensor:
    """
    Forward finite differences along the trailing `spatial_ndim` axes.

    Each difference is zero-padded at the end of its axis so that every
    component has the shape of `image`. Returns a tensor of shape
    (spatial_ndim, *image.shape).
    """
    if image.ndim < spatial_ndim:
        raise ValueError(f"Image with ndim={image.ndim} has fewer than {spatial_ndim} spatial dimensions.")
    grads = []
    for d in range(spatial_ndim):
        axis = image.ndim - spatial_ndim + d
        grad_d = torch.diff(image, dim=axis)
        padding_config = [0] * (2 * image.ndim)
        # F.pad orders pairs from the last axis backwards
        padding_config[2 * (image.ndim - 1 - axis) + 1] = 1
        grads.append(F.pad(grad_d, tuple(padding_config)))
    return torch.stack(grads, dim=0)


def total_variation(image: torch.Tensor, isotropic: bool = True) -> torch.Tensor:
    """
    Computes the Total Variation (TV) of a 2D (H, W) or 3D (D, H, W) image.

    Isotropic TV sums the pointwise L2 norm of the gradient vector; anisotropic
    TV sums the absolute value of every difference. Complex images use the
    magnitude of their differences.
    """
    if image.ndim not in (2, 3):
        raise ValueError(f"total_variation expects a 2D or 3D image, got ndim={image.ndim}.")
    grads = forward_differences(image, spatial_ndim=image.ndim)
    if not isotropic:
        return torch.sum(torch.abs(grads))
    return torch.sum(torch.sqrt(torch.sum((grads * torch.conj(grads)).real, dim=0)))
