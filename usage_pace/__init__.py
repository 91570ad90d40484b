"""usage-pace - quota usage pace monitor."""

__version__ = "0.1.0"
