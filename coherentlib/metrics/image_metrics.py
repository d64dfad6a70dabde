import torch


def mse(image_true: torch.Tensor, image_test: torch.Tensor) -> torch.Tensor:
    """Computes the Mean Squared Error (MSE) between two images."""
    if image_true.shape != image_test.shape:
        raise ValueError(f"Input images must have the same shape. Got {image_true.shape} and {image_test.shape}")
    return torch.mean(torch.abs(image_true - image_test) ** 2)


def psnr(image_true: torch.Tensor, image_test: torch.Tensor, data_range: float | None = None) -> torch.Tensor:
    """
    Computes the Peak Signal-to-Noise Ratio (PSNR) between two images.
    PSNR = 20 * log10(data_range / sqrt(MSE)).

    If `data_range` is None the dynamic range of `image_true` is used. Identical
    images give +inf; a flat reference with a non-zero error gives 0.
    """
    mse_val = mse(image_true, image_test)
    if data_range is None:
        data_range = torch.max(image_true) - torch.min(image_true)
        if data_range == 0:
            if mse_val < 1e-12:
                return torch.tensor(float('inf'), device=image_true.device)
            return torch.tensor(0.0, device=image_true.device)

    if mse_val < 1e-12:
        return torch.tensor(float('inf'), device=image_true.device)

    data_range = torch.as_tensor(data_range, dtype=mse_val.dtype, device=mse_val.device)
    return 20 * torch.log10(data_range / torch.sqrt(mse_val))
