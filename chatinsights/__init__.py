"""Activity insights and formula evaluation for group chat aggregates."""

__version__ = "0.1.0"
