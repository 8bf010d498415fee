"""Configuration for the site mirror."""

from .loader import Config, load_config

__all__ = ["Config", "load_config"]
