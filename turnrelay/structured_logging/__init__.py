"""
Structured logging package for the turn relay.

All imports should use explicit paths like
'from turnrelay.structured_logging.enhanced_logging_config import get_logger'.

The directory is named 'structured_logging' rather than 'logging' to avoid
namespace conflicts with Python's standard library logging module.
"""

__all__ = []
