"""IronLog - Ironman training log sync pipeline."""

__version__ = "0.3.0"
