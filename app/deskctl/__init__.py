"""deskctl - desktop launcher ownership cache for Linux package managers."""

__version__ = "0.1.0"
