"""
Handlers for game server events.

Each handler maps one already-parsed event payload onto API resources and
writes through the durable queue.
"""

from .game_events import GameEventHandlers

__all__ = ['GameEventHandlers']
