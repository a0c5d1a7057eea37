"""Configuration module for the CAAS administrative client."""
from .settings import AppConfig, SystemConfig, load_settings

__all__ = ["AppConfig", "SystemConfig", "load_settings"]
