"""SecPulse: security-tool sync and normalization pipeline."""

__version__ = "1.0.0"
