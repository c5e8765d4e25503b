"""Interest-rate and leveraged position simulation engine."""

__version__ = "0.1.0"
