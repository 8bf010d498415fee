"""Job control plane."""

from .mirror_agent import MirrorAgent

__all__ = ["MirrorAgent"]
