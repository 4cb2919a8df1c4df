"""WebSocket front end for the hold'em engine."""

from .server import ClientSession, HostServer, generate_player_names

__all__ = ["ClientSession", "HostServer", "generate_player_names"]
