"""
Logging utilities for wirehttp.

This module provides logging configuration and helper functions.
"""

import logging
from typing import Mapping, Optional

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = 'wirehttp'

_FORMAT = '%(asctime)s - %(name)s - %(filename)s:%(lineno)d - %(levelname)s - %(message)s'
_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    verbose: bool = False,
) -> logging.Logger:
    """Set up logging for the application.
    
    Args:
        level: Logging level (e.g., logging.INFO, logging.DEBUG)
        log_file: Optional file path to write logs to
        verbose: Whether to enable verbose logging
        
    Returns:
        Configured logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG if verbose else level)
    
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
    
    console = Console(stderr=True)
    console_handler = RichHandler(
        console=console,
        show_path=True,
        show_time=True,
        markup=False,
        rich_tracebacks=True,
    )
    console_handler.setLevel(logging.DEBUG if verbose else level)
    logger.addHandler(console_handler)
    
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATE_FORMAT))
        file_handler.setLevel(logging.DEBUG)
        logger.addHandler(file_handler)
    
    return logger


def get_logger() -> logging.Logger:
    """Get the application logger.
    
    Returns:
        Application logger
    """
    return logging.getLogger(LOGGER_NAME)


def log_request(
    logger: logging.Logger,
    method: str,
    target: str,
    headers: Mapping[str, str],
    body_length: Optional[int] = None,
) -> None:
    """Log an outgoing HTTP request.
    
    Args:
        logger: Logger to use
        method: HTTP method
        target: Request target as sent on the request line
        headers: Request headers
        body_length: Body length in bytes, None if unknown
    """
    if not logger.isEnabledFor(logging.DEBUG):
        return
        
    logger.debug(f"Sending {method} request to {target}")
    for name, value in headers.items():
        logger.debug(f"  {name}: {value}")
    if body_length is None:
        logger.debug("  Body: chunked, length unknown")
    elif body_length:
        logger.debug(f"  Body: {body_length} bytes")


def log_response(
    logger: logging.Logger,
    response,
    response_time: float,
) -> None:
    """Log a received HTTP response.
    
    Args:
        logger: Logger to use
        response: The Response
        response_time: Response time in seconds
    """
    if not logger.isEnabledFor(logging.DEBUG):
        return
        
    logger.debug(f"Received response: {response.status} {response.reason_phrase} ({response_time:.6f}s)")
    for name, value in response.headers.items():
        logger.debug(f"  {name}: {value}")
    logger.debug(f"  Body: {len(response.raw_body)} bytes")
