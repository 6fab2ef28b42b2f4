"""
Per-process game session state.

Holds the current match document returned by the API and the running
killstreak of every player. One instance is created at mount, handed to the
event handlers, and cleared at unmount.
"""

from typing import Any, Dict, List, Optional, Tuple

from squad_stats.utils.logger import setup_logger

logger = setup_logger(__name__)


class KillstreakTracker:
    """Running kill counts keyed by player EOS ID."""
    
    def __init__(self):
        self._streaks: Dict[str, int] = {}
    
    def record_kill(self, eos_id: str) -> int:
        self._streaks[eos_id] = self._streaks.get(eos_id, 0) + 1
        return self._streaks[eos_id]
    
    def current(self, eos_id: str) -> int:
        return self._streaks.get(eos_id, 0)
    
    def pop(self, eos_id: str) -> int:
        """Remove and return a player's streak (0 when none)."""
        return self._streaks.pop(eos_id, 0)
    
    def pop_all(self) -> List[Tuple[str, int]]:
        """Remove and return every tracked streak."""
        streaks = list(self._streaks.items())
        self._streaks.clear()
        return streaks
    
    def clear(self):
        self._streaks.clear()
    
    def __len__(self) -> int:
        return len(self._streaks)


class GameSession:
    """Match and killstreak state for one mounted plugin instance."""
    
    def __init__(self):
        self.match: Optional[Dict[str, Any]] = None
        self.killstreaks = KillstreakTracker()
    
    @property
    def match_id(self) -> Optional[Any]:
        """ID to attach to telemetry, None when no match is known"""
        if not self.match:
            return None
        return self.match.get('id')
    
    def set_match(self, match: Optional[Dict[str, Any]]):
        self.match = match if isinstance(match, dict) else None
        logger.debug(f"Current match set to {self.match_id}")
    
    def clear(self):
        self.match = None
        self.killstreaks.clear()
