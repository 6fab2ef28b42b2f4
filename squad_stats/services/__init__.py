"""
Services package for the MySquadStats forwarder.

- DurableRequestQueue: write-through with persisted retry ledgers
- RosterReconciler / RosterStore: admin list to API admin flag sync
- GameSession: per-process match and killstreak state
"""

from .admin_roster import AdminListLoader, ReconcileReport, RosterReconciler
from .game_session import GameSession, KillstreakTracker
from .pacing import Pacer
from .request_queue import DrainReport, DurableRequestQueue, Ledger
from .roster_store import RosterStore

__all__ = [
    'AdminListLoader',
    'DrainReport',
    'DurableRequestQueue',
    'GameSession',
    'KillstreakTracker',
    'Ledger',
    'Pacer',
    'ReconcileReport',
    'RosterReconciler',
    'RosterStore',
]
