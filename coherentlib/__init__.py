"""
coherentlib: reflectance retrieval from intensity-only coherent Fourier measurements.
"""

__version__ = "0.1.0"

from .exceptions import ConfigurationError, ShapeMismatchError, ReconstructionCancelledError
from .config import RetrieverConfig, SUPPORTED_INVERSION_MODEL_TYPES, SUPPORTED_NOISE_TYPES
from .operators import Operator, FourierOperator

from .regularizers.base import Regularizer
from .regularizers.common import TVRegularizer, NonnegativityConstraint

from .denoisers import (
    denoising_operator,
    register_denoiser,
    unregister_denoiser,
    available_denoisers,
    get_denoiser,
    tv_denoiser
)
from .inversion import inversion_operator, cubic_coefficients, cubic_roots, select_most_real_root
from .metrics import mse, psnr, compute_covariance_and_mean, compute_cost_function, evaluate_cost

from .reconstructors import PnPADMMReconstructor, ADMMHistory, ReconstructionResult
from .retriever import ReflectanceRetriever, ml_reconstruction

from .utils import fourier_based_reconstruction, suggest_sigma_lambda
from .simulation import simulate_coherent_measurements, generate_resolution_target, SimulatedMeasurement
from .io import ReflectanceImageIO, load_reflectance_image

# Plotting pulls in matplotlib.pyplot; import coherentlib.plotting explicitly when needed.
