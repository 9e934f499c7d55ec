"""
Utility functions for homoshare.
"""

from .helpers import (
    make_rng,
    setup_logging,
    MetricsTracker,
    format_time
)

__all__ = [
    'make_rng',
    'setup_logging',
    'MetricsTracker',
    'format_time'
]
