"""
Logging configuration for the poincare_shooting package.

This module provides a centralized configuration for the logging system.
It defines the formatters, handlers and per-subpackage loggers used by the
shooting algorithms. Library modules only create loggers with
``logging.getLogger(__name__)``; nothing is configured on import.

Usage:
    Call setup_logging() early in your application (or notebook) to route the
    package's log records to the console and to rotating log files:

    ```python
    from poincare_shooting.logging_config import setup_logging
    setup_logging()
    ```
"""

import logging
import logging.config
from pathlib import Path


def setup_logging(default_level=logging.INFO, log_dir="logs"):
    """
    Setup logging configuration for the package.

    Parameters
    ----------
    default_level : int, optional
        Default logging level of the root logger. Default is logging.INFO.
    log_dir : str or Path, optional
        Directory to store log files. Default is "logs".

    Returns
    -------
    Path
        The directory holding the log files.
    """
    # Create log directory if it doesn't exist
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    config = {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'standard': {
                'format': '%(asctime)s [%(levelname)s] %(name)s: %(message)s',
                'datefmt': '%Y-%m-%d %H:%M:%S'
            },
            'detailed': {
                'format': '%(asctime)s [%(levelname)s] %(name)s (%(filename)s:%(lineno)d): %(message)s',
                'datefmt': '%Y-%m-%d %H:%M:%S'
            },
        },
        'handlers': {
            'console': {
                'class': 'logging.StreamHandler',
                'level': 'INFO',
                'formatter': 'standard',
                'stream': 'ext://sys.stdout',
            },
            'file': {
                'class': 'logging.handlers.RotatingFileHandler',
                'level': 'DEBUG',
                'formatter': 'detailed',
                'filename': str(log_path / 'shooting.log'),
                'maxBytes': 10485760,  # 10 MB
                'backupCount': 5,
                'encoding': 'utf8'
            },
            'error_file': {
                'class': 'logging.handlers.RotatingFileHandler',
                'level': 'ERROR',
                'formatter': 'detailed',
                'filename': str(log_path / 'error.log'),
                'maxBytes': 10485760,  # 10 MB
                'backupCount': 5,
                'encoding': 'utf8'
            },
        },
        'loggers': {
            '': {  # root logger
                'handlers': ['console', 'file', 'error_file'],
                'level': default_level,
                'propagate': True
            },
            'poincare_shooting.algorithms.shooting': {
                'handlers': ['console', 'file', 'error_file'],
                'level': 'DEBUG',
                'propagate': False
            },
            'poincare_shooting.algorithms.dynamics': {
                'handlers': ['console', 'file', 'error_file'],
                'level': 'INFO',
                'propagate': False
            },
            'poincare_shooting.algorithms.sections': {
                'handlers': ['console', 'file', 'error_file'],
                'level': 'INFO',
                'propagate': False
            },
            'poincare_shooting.algorithms.orbits': {
                'handlers': ['console', 'file', 'error_file'],
                'level': 'INFO',
                'propagate': False
            },
        }
    }

    logging.config.dictConfig(config)

    logger = logging.getLogger(__name__)
    logger.debug("Logging configuration applied")

    return log_path


if __name__ == "__main__":
    setup_logging()
