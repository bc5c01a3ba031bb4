"""Walk an iRODS-style catalog tree and run a command for every file or collection."""

__version__ = "0.1.0"
