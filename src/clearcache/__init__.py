"""Locate and remove development-tool cache artifacts."""

__version__ = "0.1.0"
