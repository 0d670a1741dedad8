"""
Custom exceptions for the poincare_shooting package.
"""

class ShootingError(Exception):
    """Base exception for Poincare shooting errors.

    Parameters
    ----------
    message : str
        The error message.
    """

    def __init__(self, message: str):
        super().__init__(message)


class ConfigurationError(ShootingError):
    """Raised when a shooting problem is used in a configuration it does not support.

    Examples are the analytical Jacobian requested in parallel mode, branch
    switching on a flow that has already been constructed, or a section whose
    number of hyperplanes does not match the problem.

    Parameters
    ----------
    message : str
        The error message.
    """

    def __init__(self, message: str):
        super().__init__(message)


class IntegrationError(ShootingError):
    """Raised by a flow when a trajectory cannot be computed.

    This covers solver failures and trajectories that never reach the next
    section within the integration horizon. Shooting code does not handle it;
    the calling root-finder or continuation driver decides what to do.

    Parameters
    ----------
    message : str
        The error message.
    """

    def __init__(self, message: str):
        super().__init__(message)
