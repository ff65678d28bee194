"""wakegate — wake a sleeping host on first HTTP access."""

__version__ = "0.1.0"
