"""Round and session engine for multiplayer murder-mystery party games."""

__version__ = "0.1.0"
