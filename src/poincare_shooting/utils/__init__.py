"""
Shared utilities for the poincare_shooting package.
"""

from .exceptions import ShootingError, ConfigurationError, IntegrationError

__all__ = [
    'ShootingError',
    'ConfigurationError',
    'IntegrationError'
]
