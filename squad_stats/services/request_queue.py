"""
Durable outbound request queue.

Writes go straight to the API. A write that fails because the service is
temporarily unavailable is appended to an on-disk ledger (one per operation
kind) and replayed by the periodic drain until the service accepts it.

Delivery is at-least-once: a crash between a successful replay and the
ledger rewrite replays that one entry again on the next drain.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from squad_stats.api.transport import ApiResult, Outcome, StatsApiClient
from squad_stats.config import Config
from squad_stats.constants import ApiConstants, QueueConstants
from squad_stats.models.requests import OperationKind, PendingRequest
from squad_stats.services.base import BaseService
from squad_stats.services.pacing import Pacer
from squad_stats.utils.exceptions import LedgerCorruptError
from squad_stats.utils.logger import setup_logger

logger = setup_logger(__name__)

LEDGER_FILES = {
    OperationKind.CREATE: QueueConstants.CREATE_LEDGER_FILE,
    OperationKind.UPDATE: QueueConstants.UPDATE_LEDGER_FILE,
}


class Ledger(BaseService):
    """Ordered, persisted list of not-yet-confirmed requests for one kind.
    
    The file always mirrors the in-memory list after every mutation and is
    deleted instead of being left as an empty array.
    """
    
    def __init__(self, kind: OperationKind, data_dir: Optional[Union[str, Path]] = None):
        super().__init__(data_dir)
        self.kind = kind
        self.path = self.data_dir / LEDGER_FILES[kind]
        self._entries: Optional[List[PendingRequest]] = None
    
    def _ensure_loaded(self) -> List[PendingRequest]:
        if self._entries is not None:
            return self._entries
        
        try:
            raw_entries = self._read_json(self.path, [])
        except LedgerCorruptError as e:
            logger.error(f"{self.kind.value} ledger unreadable, starting empty: {e}")
            self._set_aside(self.path)
            raw_entries = []
        
        if not isinstance(raw_entries, list):
            logger.error(f"{self.kind.value} ledger is not a list, starting empty")
            self._set_aside(self.path)
            raw_entries = []
        
        entries = []
        for raw in raw_entries:
            try:
                entries.append(PendingRequest.from_dict(raw))
            except ValueError as e:
                logger.warning(f"Dropping malformed {self.kind.value} ledger entry: {e}")
        
        self._entries = entries
        return entries
    
    def _persist(self) -> None:
        entries = self._ensure_loaded()
        if entries:
            self._write_json(self.path, [entry.to_dict() for entry in entries])
        else:
            self._delete(self.path)
    
    def __len__(self) -> int:
        return len(self._ensure_loaded())
    
    def entries(self) -> List[PendingRequest]:
        return list(self._ensure_loaded())
    
    def append(self, request: PendingRequest) -> None:
        self._ensure_loaded().append(request)
        self._persist()
    
    def remove(self, request: PendingRequest) -> bool:
        """Remove exactly this request object, returning False if absent."""
        entries = self._ensure_loaded()
        for index, entry in enumerate(entries):
            if entry is request:
                del entries[index]
                self._persist()
                return True
        return False
    
    def prioritize(self) -> None:
        """Stable-reorder so priority resources (matches) replay first."""
        entries = self._ensure_loaded()
        if not entries:
            return
        entries.sort(key=lambda entry: entry.resource not in QueueConstants.PRIORITY_RESOURCES)
        self._persist()


@dataclass
class LedgerDrainResult:
    """Outcome of replaying one ledger."""
    kind: OperationKind
    attempted: int = 0
    delivered: int = 0
    remaining: int = 0


@dataclass
class DrainReport:
    """Outcome of one drain cycle."""
    skipped: bool = False
    reason: str = ""
    ledgers: Dict[OperationKind, LedgerDrainResult] = field(default_factory=dict)
    
    @property
    def delivered(self) -> int:
        return sum(result.delivered for result in self.ledgers.values())
    
    @property
    def remaining(self) -> int:
        return sum(result.remaining for result in self.ledgers.values())


class DurableRequestQueue:
    """Wraps create/update calls with ledger persistence and periodic replay.
    
    Args:
        api: Transport used for live calls and replays
        data_dir: Directory for the ledger files (default: Config.DATA_DIR)
        settle_delay: Seconds between the end of one replay and the next
        pacer: Pacer to use instead of one built from `settle_delay`
    """
    
    def __init__(
        self,
        api: StatsApiClient,
        data_dir: Optional[Union[str, Path]] = None,
        settle_delay: Optional[float] = None,
        pacer: Optional[Pacer] = None,
    ):
        self.api = api
        self.ledgers = {kind: Ledger(kind, data_dir) for kind in OperationKind}
        self.pacer = pacer if pacer is not None else Pacer(
            Config.REPLAY_SETTLE_SECONDS if settle_delay is None else settle_delay
        )
        self.is_draining = False
    
    def pending_count(self, kind: Optional[OperationKind] = None) -> int:
        if kind is not None:
            return len(self.ledgers[kind])
        return sum(len(ledger) for ledger in self.ledgers.values())
    
    async def submit(self, kind: OperationKind, resource: str, payload: Dict[str, Any]) -> ApiResult:
        """Attempt a write now; persist it for retry if the service is down.
        
        Never raises for delivery problems. The returned result has
        `queued=True` when the request was written to the ledger.
        """
        result = await self.api.send(kind, resource, payload)
        
        if result.outcome is Outcome.RECOVERABLE:
            self.ledgers[kind].append(PendingRequest(resource=resource, payload=payload))
            result.queued = True
            logger.warning(
                f"Queued {kind.value} {resource} for retry | {result.message}"
            )
        elif result.is_fatal:
            logger.error(f"Dropped {kind.value} {resource} | {result.summary()}")
        
        return result
    
    async def drain(self) -> DrainReport:
        """Replay every pending request once, create ledger first.
        
        Guarded against re-entry; returns a skipped report when a drain is
        already running or the service does not answer the health check.
        """
        if self.is_draining:
            logger.info("Already processing failed requests...")
            return DrainReport(skipped=True, reason="drain already in progress")
        
        self.is_draining = True
        try:
            if not await self.api.ping():
                logger.info("My Squad Stats did not answer the ping, skipping retries")
                return DrainReport(skipped=True, reason="service unavailable")
            
            logger.info("Pong! My Squad Stats is up and running.")
            report = DrainReport()
            for kind in (OperationKind.CREATE, OperationKind.UPDATE):
                report.ledgers[kind] = await self._drain_ledger(self.ledgers[kind])
            return report
        finally:
            self.is_draining = False
    
    async def _drain_ledger(self, ledger: Ledger) -> LedgerDrainResult:
        result = LedgerDrainResult(kind=ledger.kind)
        if not len(ledger):
            return result
        
        await self._report_backlog(ledger)
        logger.info(f"Retrying {len(ledger)} failed requests from {ledger.path}...")
        
        ledger.prioritize()
        pacer = self.pacer
        pacer.reset()
        
        # Submissions made while we replay land after this snapshot and wait for the next drain
        for request in ledger.entries():
            async with pacer:
                replay = await self.api.send(ledger.kind, request.resource, request.payload)
            result.attempted += 1
            logger.info(f"Retry {ledger.kind.value} {request.resource} | {replay.summary()}")
            
            # Only an accepted replay leaves the ledger, any failure waits for the next drain
            if replay.ok:
                ledger.remove(request)
                result.delivered += 1
        
        result.remaining = len(ledger)
        logger.info(f"Finished retrying failed requests from {ledger.path}.")
        return result
    
    async def _report_backlog(self, ledger: Ledger) -> None:
        """Tell the service how many requests are about to be replayed."""
        backlog = await self.api.create(
            ApiConstants.PING_RESOURCE,
            {'ledger': ledger.path.name, 'failedRequests': len(ledger)},
        )
        logger.info(f"Ping-MySquadStats | {backlog.summary()}")
