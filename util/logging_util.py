import logging
import sys

from util.constants import LOG_LEVEL

# Configure logging format
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

def setup_logger(name: str, level=None) -> logging.Logger:
    """
    Sets up a logger writing to stdout with the shared format.

    Args:
        name: Name of the logger (typically __name__ from the calling module)
        level: Logging level (default: LOG_LEVEL from util.constants)

    Returns:
        Configured logger instance
    """
    level = level or logging.getLevelName(LOG_LEVEL.upper())
    if not isinstance(level, int):
        level = logging.INFO

    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Handlers are attached once per logger name
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        logger.addHandler(handler)

    return logger

def log_remote_request(logger: logging.Logger, method: str, path: str,
                       status_code: int, duration_ms: float = None):
    """
    Logs a completed request against the remote character API.

    Args:
        logger: Logger instance to use
        method: HTTP method
        path: Path relative to the API base URL
        status_code: HTTP status of the response
        duration_ms: Optional duration of the call in milliseconds
    """
    duration_str = f" ({duration_ms:.2f}ms)" if duration_ms else ""
    logger.info(f"API {method} {path} -> {status_code}{duration_str}")

def log_remote_failure(logger: logging.Logger, action: str, error: Exception):
    """
    Logs a failed remote operation.

    Args:
        logger: Logger instance to use
        action: Short description of what was attempted (e.g. "cloud save")
        error: The exception that was raised
    """
    logger.warning(f"Remote {action} failed: {type(error).__name__}: {error}")
