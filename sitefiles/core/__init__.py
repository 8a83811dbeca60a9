# sitefiles/core/__init__.py
"""
Core build pieces: virtual files, render configuration, the render stage and the site.
"""
from .compose import RenderConfig, compose_render_config
from .site import Site
from .stage import RenderStage
from .vfile import VirtualFile

__all__ = ["RenderConfig", "compose_render_config", "Site", "RenderStage", "VirtualFile"]
