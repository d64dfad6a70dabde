# coherentlib.regularizers module

from .base import Regularizer

from .common import (
    TVRegularizer,
    NonnegativityConstraint
)

from .functional import (
    forward_differences,
    total_variation
)

__all__ = [
    'Regularizer',
    'TVRegularizer',
    'NonnegativityConstraint',
    'forward_differences',
    'total_variation'
]
