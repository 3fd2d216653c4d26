"""
Configuration module.

Settings classes load from environment variables and the project .env file.
"""

from common.config.base_settings import BaseAppSettings

__all__ = ["BaseAppSettings"]
