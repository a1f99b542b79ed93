"""startkit — search and install shareable configuration assets."""

__version__ = "0.1.0"
