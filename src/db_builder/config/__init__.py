"""Configuration management: profiles, TOML loading, and config models.

Usage:
    >>> from db_builder.config import load_client_config, ClientProfile, ClientConfig
"""

from db_builder.config.loader import load_client_config
from db_builder.config.models import ClientConfig, ClientProfile

__all__ = ["load_client_config", "ClientConfig", "ClientProfile"]
