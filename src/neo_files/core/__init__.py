"""Core module for neo-files - shared exception hierarchy."""
