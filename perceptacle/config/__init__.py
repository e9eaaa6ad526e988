"""Configuration module: exports Settings and load_config."""

from perceptacle.config.loader import load_config
from perceptacle.config.settings import Settings

__all__ = ["Settings", "load_config"]
