"""
Utility functions for homoshare.

Provides helper functions for:
- Random source construction
- Logging configuration
- Timing metrics
"""

import os
import random
import logging
import numpy as np
from datetime import datetime
from typing import Dict, List, Optional


def make_rng(seed: Optional[int] = None) -> random.Random:
    """
    Build the random source passed through the pipeline.

    Args:
        seed: Seed for reproducible runs; None uses OS entropy

    Returns:
        A seeded Random, or SystemRandom when no seed is given
    """
    if seed is None:
        return random.SystemRandom()
    return random.Random(seed)


def setup_logging(
    log_dir: Optional[str] = None,
    log_level: int = logging.INFO,
    name: Optional[str] = None
) -> logging.Logger:
    """
    Setup logging configuration.

    Args:
        log_dir: Directory for log files (console only if None)
        log_level: Logging level
        name: Name for the log file

    Returns:
        Configured 'homoshare' logger
    """
    logger = logging.getLogger('homoshare')
    logger.setLevel(log_level)
    logger.handlers = []

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        log_file = os.path.join(log_dir, f'{name or "homoshare"}_{timestamp}.log')

        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


class MetricsTracker:
    """Tracks and stores per-stage timings."""

    def __init__(self):
        self.metrics: Dict[str, List[float]] = {}

    def add_scalar(self, name: str, value: float):
        """Add a scalar metric."""
        if name not in self.metrics:
            self.metrics[name] = []
        self.metrics[name].append(value)

    def get_metric(self, name: str) -> List[float]:
        """Get all values for a metric."""
        return self.metrics.get(name, [])

    def get_latest(self, name: str) -> Optional[float]:
        """Get latest value for a metric."""
        values = self.metrics.get(name, [])
        return values[-1] if values else None

    def summary(self) -> Dict[str, Dict[str, float]]:
        """Mean, min, max and count of every metric."""
        return {
            name: {
                'mean': float(np.mean(values)),
                'min': float(np.min(values)),
                'max': float(np.max(values)),
                'count': len(values)
            }
            for name, values in self.metrics.items() if values
        }


def format_time(seconds: float) -> str:
    """Format seconds to human-readable string."""
    if seconds < 1:
        return f'{seconds * 1000:.1f}ms'

    minutes = int(seconds // 60)
    secs = seconds % 60

    if minutes > 0:
        return f'{minutes}m {secs:.0f}s'
    return f'{secs:.2f}s'
