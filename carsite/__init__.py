"""A Flask web site for browsing, comparing and downloading car model information."""

__version__ = "0.1.0"
__all__ = ["apidata", "search", "cookies", "app"]