"""Virtual player package - host-driven stand-ins for empty characters."""

from .autopilot import VirtualPlayerAutopilot

__all__ = ["VirtualPlayerAutopilot"]
