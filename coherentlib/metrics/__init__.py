from .image_metrics import mse, psnr
from .objective import compute_covariance_and_mean, compute_cost_function, evaluate_cost

__all__ = [
    'mse',
    'psnr',
    'compute_covariance_and_mean',
    'compute_cost_function',
    'evaluate_cost',
]
