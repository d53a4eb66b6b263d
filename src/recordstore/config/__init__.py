"""
Configuration management for the record store.
"""

from .config_loader import RecordStoreConfig

__all__ = ["RecordStoreConfig"]
