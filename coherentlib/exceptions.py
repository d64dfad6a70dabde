"""Exception types raised by coherentlib."""


class ConfigurationError(ValueError):
    """Raised when a reconstruction parameter is out of range or of the wrong type."""


class ShapeMismatchError(ValueError):
    """Raised when an input array does not match the configured object size."""


class ReconstructionCancelledError(RuntimeError):
    """Raised when a run is stopped between iterations by the caller or a timeout.

    Attributes:
        iterations_completed (int): Number of full ADMM cycles finished before
            the run was aborted.
    """
    def __init__(self, message: str, iterations_completed: int):
        super().__init__(message)
        self.iterations_completed = iterations_completed
