"""Configuration management for remotepad.

Loads and validates YAML-based configuration with Pydantic models.
Supports environment variable overrides for sensitive values like
the pairing key.
"""

from remotepad.config.settings import Settings, load_settings

__all__ = ["Settings", "load_settings"]
