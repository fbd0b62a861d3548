"""Inventory, asset and sales management backend."""

__version__ = "0.1.0"
