"""
Roster store - the last admin roster successfully mirrored to the API.

Persisted as a JSON object keyed by admin identity; each value lists the
admin's permissions as keys set to true plus the discord handle.
"""

from pathlib import Path
from typing import Dict, Iterator, Optional, Union

from squad_stats.constants import RosterConstants
from squad_stats.models.admin import AdminRecord
from squad_stats.services.base import BaseService
from squad_stats.utils.exceptions import LedgerCorruptError
from squad_stats.utils.logger import setup_logger

logger = setup_logger(__name__)

class RosterStore(BaseService):
    """On-disk mapping of admin identity to last-known AdminRecord."""
    
    def __init__(self, data_dir: Optional[Union[str, Path]] = None):
        super().__init__(data_dir)
        self.path = self.data_dir / RosterConstants.ROSTER_FILE
        self._records: Dict[str, AdminRecord] = {}
    
    def load(self) -> Dict[str, AdminRecord]:
        """Reload the snapshot from disk, replacing anything held in memory."""
        try:
            raw = self._read_json(self.path, {})
        except LedgerCorruptError as e:
            logger.error(f"Roster file unreadable, starting from an empty roster: {e}")
            self._set_aside(self.path)
            raw = {}
        
        if not isinstance(raw, dict):
            logger.error("Roster file is not an object, starting from an empty roster")
            self._set_aside(self.path)
            raw = {}
        
        records = {}
        for admin_id, data in raw.items():
            try:
                records[admin_id] = AdminRecord.from_dict(data)
            except ValueError as e:
                # Dropping it makes the next pass treat the admin as new and re-push it
                logger.warning(f"Ignoring malformed roster record for {admin_id}: {e}")
        
        self._records = records
        return dict(records)
    
    def get(self, admin_id: str) -> Optional[AdminRecord]:
        return self._records.get(admin_id)
    
    def put(self, admin_id: str, record: AdminRecord) -> None:
        """Record an admin and persist immediately."""
        self._records[admin_id] = record
        self.save()
    
    def discard(self, admin_id: str) -> None:
        """Forget an admin and persist immediately."""
        if self._records.pop(admin_id, None) is not None:
            self.save()
    
    def save(self) -> None:
        self._write_json(
            self.path,
            {admin_id: record.to_dict() for admin_id, record in self._records.items()},
        )
    
    def snapshot(self) -> Dict[str, AdminRecord]:
        return dict(self._records)
    
    def __contains__(self, admin_id: str) -> bool:
        return admin_id in self._records
    
    def __iter__(self) -> Iterator[str]:
        return iter(list(self._records))
    
    def __len__(self) -> int:
        return len(self._records)
