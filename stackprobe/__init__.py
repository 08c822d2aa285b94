"""Static technology stack detection for source trees."""

__version__ = "0.1.0"

SPEC_VERSION = "1.0"

__all__ = ["SPEC_VERSION", "__version__"]
