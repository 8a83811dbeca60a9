# sitefiles/config/__init__.py
"""
Configuration for sitefiles: process-wide defaults and TOML config loading.
"""
from .settings import BuildConfig, DEFAULT_EXT, DEFAULT_OPTIONS, RENDERER_PLUGIN_NAME

__all__ = ["BuildConfig", "DEFAULT_EXT", "DEFAULT_OPTIONS", "RENDERER_PLUGIN_NAME"]
