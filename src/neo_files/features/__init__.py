"""Feature modules for neo-files."""
