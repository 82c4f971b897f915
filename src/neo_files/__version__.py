"""Version information for neo-files."""

__version__ = "0.1.0"
