"""Configuration loading for blockdoc."""

from blockdoc.config.loader import load_config

__all__ = ["load_config"]
