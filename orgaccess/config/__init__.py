"""Configuration module for the orgaccess service."""
from .settings import AppConfig, ALLOWED_INVITE_EXPIRY_HOURS, load_settings

__all__ = ["AppConfig", "ALLOWED_INVITE_EXPIRY_HOURS", "load_settings"]
