"""Dump and browse the storage slots written by an EVM contract."""

__version__ = "0.1.0"
__all__ = ["__version__"]