"""Configuration module for the bulk onboarding service."""
from .settings import AppConfig, KeycloakOptions, load_settings

__all__ = ["AppConfig", "KeycloakOptions", "load_settings"]
