"""Build-tool integration."""

from .hook import BuildHook

__all__ = ["BuildHook"]
