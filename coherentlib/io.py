import matplotlib.image as mpimg
import numpy as np
import torch
import torch.nn.functional as F


class ReflectanceImageIO:
    """
    Reads image files as reflectance maps.

    Color images are converted to grayscale with the ITU-R BT.601 luma
    weights, integer images are scaled to [0, 1] by their type's maximum, and
    the result is optionally resized with antialiased bilinear interpolation.
    """
    LUMA_WEIGHTS = (0.2989, 0.5870, 0.1140)

    def __init__(self, shape: tuple[int, int] | None = None):
        if shape is not None:
            if len(shape) != 2 or any(int(s) <= 0 for s in shape):
                raise ValueError(f"shape must be 2 positive integers, got {shape}.")
            shape = (int(shape[0]), int(shape[1]))
        self.shape = shape

    @classmethod
    def to_grayscale(cls, image: np.ndarray) -> np.ndarray:
        if image.ndim == 2:
            return image
        if image.ndim == 3 and image.shape[2] in (3, 4):
            rgb = image[..., :3].astype(np.float64)
            return rgb @ np.asarray(cls.LUMA_WEIGHTS)
        raise ValueError(f"Unsupported image array shape {image.shape}.")

    @staticmethod
    def to_unit_range(image: np.ndarray) -> np.ndarray:
        if np.issubdtype(image.dtype, np.integer):
            return image.astype(np.float64) / np.iinfo(image.dtype).max
        return image.astype(np.float64)

    def resize(self, image: torch.Tensor) -> torch.Tensor:
        if self.shape is None or tuple(image.shape) == self.shape:
            return image
        resized = F.interpolate(image[None, None], size=self.shape, mode='bilinear',
                                align_corners=False, antialias=True)[0, 0]
        return torch.clamp(resized, 0.0, 1.0)

    def read(self, filepath: str) -> torch.Tensor:
        """
        Reads `filepath` and returns a float64 reflectance tensor in [0, 1].

        Args:
            filepath (str): Path to a PNG/JPEG/TIFF image (any format
                matplotlib can read).

        Returns:
            torch.Tensor: 2D reflectance of shape `self.shape` (or the file's
            own size when no shape was given).
        """
        raw = mpimg.imread(filepath)
        # Integer inputs are rescaled before the luma mix so the weights act on [0, 1] values.
        gray = self.to_grayscale(self.to_unit_range(raw))
        return self.resize(torch.from_numpy(np.ascontiguousarray(gray)))


def load_reflectance_image(filepath: str, shape: tuple[int, int] | None = None) -> torch.Tensor:
    """Functional shortcut for ``ReflectanceImageIO(shape).read(filepath)``."""
    return ReflectanceImageIO(shape).read(filepath)
