"""
Integration layer: YAML configuration and the offline quoting CLI
"""

from .config_loader import load_market_snapshot, load_parameters

__all__ = [
    "load_market_snapshot",
    "load_parameters",
]
