# sitefiles/core/discovery/__init__.py
"""
Source discovery for sitefiles.

Finds files under a base directory with gitwildmatch include/exclude patterns
and loads them as VirtualFile objects.
"""
from .walker import discover_files, discover_paths, load_partials, load_virtual_file

__all__ = ["discover_files", "discover_paths", "load_partials", "load_virtual_file"]
