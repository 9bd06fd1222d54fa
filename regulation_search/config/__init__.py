"""
Configuration module for Regulation Search.

Provides centralized configuration management with support for:
- YAML configuration files
- Environment variable overrides
- CLI argument overrides (handled in the CLI)
"""

from .config import Config, load_config

__all__ = ['Config', 'load_config']
