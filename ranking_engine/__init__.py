"""Leader scoring and live ranking engine."""

__version__ = "1.0.0"
