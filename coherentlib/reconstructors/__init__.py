from .pnp_admm_reconstructor import ADMMHistory, PnPADMMReconstructor, ReconstructionResult

__all__ = [
    'ADMMHistory',
    'PnPADMMReconstructor',
    'ReconstructionResult'
]
