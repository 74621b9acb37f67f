"""Addressing, cross-reference and task core for hierarchical markdown documents."""

from .config import CoreConfig, load_config

__all__ = ["CoreConfig", "load_config"]
