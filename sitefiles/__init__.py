# sitefiles/__init__.py
"""sitefiles: render template files through pluggable engines into a static site."""

__version__ = "0.3.0"
