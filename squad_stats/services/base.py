"""
Base service class for file-owning forwarder services.

Provides whole-file JSON persistence with atomic replacement. Every mutation
is read-modify-write of the whole file and never awaits midway, so it is
atomic with respect to other tasks as long as each file has exactly one
owning service running on the single event loop.
"""

import json
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Union

from squad_stats.config import Config
from squad_stats.utils.exceptions import LedgerCorruptError
from squad_stats.utils.logger import setup_logger

logger = setup_logger(__name__)

class BaseService:
    """Base class for services that own a JSON file in the data directory."""
    
    def __init__(self, data_dir: Optional[Union[str, Path]] = None):
        """
        Initialize base service with its data directory.
        
        Args:
            data_dir: Directory holding the service's files (default: Config.DATA_DIR)
        """
        self.data_dir = Path(data_dir if data_dir is not None else Config.DATA_DIR)
    
    def _read_json(self, path: Path, default: Any) -> Any:
        """Load a JSON file, returning default when it does not exist."""
        if not path.exists():
            return default
        try:
            with path.open('r', encoding='utf-8') as handle:
                return json.load(handle)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise LedgerCorruptError(str(path), str(e)) from e
    
    def _write_json(self, path: Path, data: Any) -> None:
        """Replace a JSON file atomically so a crash never leaves half a file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_name(path.name + '.tmp')
        with tmp_path.open('w', encoding='utf-8') as handle:
            json.dump(data, handle)
        os.replace(tmp_path, path)
    
    def _delete(self, path: Path) -> None:
        if path.exists():
            path.unlink()
    
    def _set_aside(self, path: Path) -> Optional[Path]:
        """Move an unreadable file out of the way and keep it for inspection."""
        if not path.exists():
            return None
        target = path.with_name(f"{path.name}.{datetime.now().strftime('%Y%m%d%H%M%S')}.corrupt")
        os.replace(path, target)
        logger.error(f"Moved unreadable file {path} to {target}")
        return target
