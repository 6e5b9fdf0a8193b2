"""Configuration module — exports Settings and load_config."""

from originmap.config.loader import load_config
from originmap.config.settings import Settings

__all__ = ["Settings", "load_config"]
