"""
Admin roster reconciliation.

One pass ingests every configured admin list, merges them into a canonical
roster, diffs that against the roster store and pushes only the differences
to the API:

1. Ingest - fetch each source; a source that fails is skipped
2. Parse - group and admin lines, group keys namespaced by source index
3. Merge - duplicate identities union their permissions
4. Converge - upsert new/changed admins (paced), remove vanished ones
5. Persist - the store ends up holding exactly what the API acknowledged

A failed upsert or removal leaves the store untouched for that admin, so the
next scheduled pass sees the same difference and tries again.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union

import httpx

from squad_stats.api.transport import StatsApiClient
from squad_stats.config import Config
from squad_stats.constants import ApiConstants
from squad_stats.models.admin import AdminListSource, AdminRecord, SourceKind, removal_payload
from squad_stats.services.pacing import Pacer
from squad_stats.services.roster_store import RosterStore
from squad_stats.utils.admin_list_parser import parse_admin_list
from squad_stats.utils.exceptions import SourceUnavailableError
from squad_stats.utils.logger import setup_logger

logger = setup_logger(__name__)


class AdminListLoader:
    """Fetches raw admin list text from remote URLs or the install directory."""
    
    def __init__(
        self,
        install_root: Optional[Union[str, Path]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.install_root = Path(install_root if install_root is not None else Config.INSTALL_ROOT)
        self._transport = transport
    
    async def load(self, source: AdminListSource) -> str:
        """
        Load one admin list.
        
        Raises:
            SourceUnavailableError: If the list cannot be fetched or read
        """
        if source.kind is SourceKind.REMOTE:
            return await self._fetch_remote(source.locator)
        return self._read_local(source.locator)
    
    async def _fetch_remote(self, url: str) -> str:
        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                response = await client.get(url)
                response.raise_for_status()
                return response.text
        except httpx.HTTPError as e:
            raise SourceUnavailableError(url, str(e)) from e
    
    def _read_local(self, locator: str) -> str:
        path = (self.install_root / locator).resolve()
        if not path.is_file():
            raise SourceUnavailableError(locator, f"Could not find Admin List at {path}")
        try:
            return path.read_text(encoding='utf-8')
        except (OSError, UnicodeDecodeError) as e:
            raise SourceUnavailableError(locator, str(e)) from e


@dataclass
class ReconcileReport:
    """Outcome of one reconciliation pass."""
    sources_loaded: int = 0
    sources_failed: List[str] = field(default_factory=list)
    parse_errors: int = 0
    admins: int = 0
    upserted: List[str] = field(default_factory=list)
    unchanged: int = 0
    removed: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    
    @property
    def calls(self) -> int:
        return len(self.upserted) + len(self.removed) + len(self.failed)


class RosterReconciler:
    """Converges the API's admin flags with the configured admin lists.
    
    Args:
        api: Transport used for the players updates
        store: Roster store holding the previous pass's snapshot
        loader: Admin list loader (default: one rooted at Config.INSTALL_ROOT)
        pacing: Minimum seconds between consecutive upserts
        pacer: Pacer to use instead of one built from `pacing`
    """
    
    def __init__(
        self,
        api: StatsApiClient,
        store: Optional[RosterStore] = None,
        loader: Optional[AdminListLoader] = None,
        pacing: Optional[float] = None,
        pacer: Optional[Pacer] = None,
    ):
        self.api = api
        self.store = store if store is not None else RosterStore()
        self.loader = loader if loader is not None else AdminListLoader()
        self.pacer = pacer if pacer is not None else Pacer(
            Config.RECONCILE_PACING_SECONDS if pacing is None else pacing
        )
    
    async def build_roster(
        self, sources: Sequence[AdminListSource], report: Optional[ReconcileReport] = None
    ) -> Dict[str, AdminRecord]:
        """Ingest, parse and merge all sources into the canonical roster."""
        report = report if report is not None else ReconcileReport()
        groups: Dict[str, frozenset] = {}
        roster: Dict[str, AdminRecord] = {}
        
        for index, source in enumerate(sources):
            try:
                text = await self.loader.load(source)
            except SourceUnavailableError as e:
                logger.warning(f"Error fetching {source.kind.value} admin list: {e}")
                report.sources_failed.append(source.locator)
                continue
            
            report.sources_loaded += 1
            parsed = parse_admin_list(text)
            
            for group_id, perms in parsed.groups.items():
                groups[f"{index}-{group_id}"] = perms
            
            for error in parsed.errors:
                logger.warning(f"Error parsing admin list {source.locator}: {error}")
            report.parse_errors += len(parsed.errors)
            
            for entry in parsed.admins:
                record = AdminRecord.create(groups[f"{index}-{entry.group_id}"], entry.discord_handle)
                existing = roster.get(entry.admin_id)
                if existing is not None:
                    roster[entry.admin_id] = existing.merged_with(record)
                    logger.debug(
                        f"Merged duplicate Admin {entry.admin_id} to {sorted(roster[entry.admin_id].permissions)}"
                    )
                else:
                    roster[entry.admin_id] = record
                    logger.debug(f"Added Admin {entry.admin_id} with {sorted(record.permissions)}")
        
        report.admins = len(roster)
        logger.info(f"{len(roster)} admins loaded...")
        return roster
    
    async def reconcile(self, sources: Optional[Sequence[AdminListSource]] = None) -> ReconcileReport:
        """Run one full ingest-merge-diff-converge pass."""
        if sources is None:
            sources = Config.get_admin_lists()
        
        logger.info("Getting Admins...")
        report = ReconcileReport()
        roster = await self.build_roster(sources, report)
        previous = self.store.load()
        pacer = self.pacer
        pacer.reset()
        
        for admin_id, record in roster.items():
            if previous.get(admin_id) == record:
                report.unchanged += 1
                logger.debug(f"Admin {admin_id} is already in local json file with the same permissions")
                continue
            
            async with pacer:
                result = await self.api.update(ApiConstants.PLAYERS, record.to_upsert_payload(admin_id))
            
            if not result.ok:
                logger.warning(f"GetAdmins-Player | {admin_id} | {result.summary()}")
                report.failed.append(admin_id)
                continue
            
            self.store.put(admin_id, record)
            report.upserted.append(admin_id)
            logger.debug(f"Updated Admin {admin_id} in local json file with new permissions")
        
        for admin_id in [admin_id for admin_id in previous if admin_id not in roster]:
            removed, result_summary = await self._remove(admin_id)
            if removed:
                report.removed.append(admin_id)
                logger.info(f"Admin {admin_id} was removed")
            else:
                report.failed.append(admin_id)
                logger.warning(f"GetAdmins-Remove | {admin_id} | {result_summary}")
        
        self.store.save()
        logger.info(
            f"Admin sync complete: {len(report.upserted)} updated, {report.unchanged} unchanged, "
            f"{len(report.removed)} removed, {len(report.failed)} failed"
        )
        return report
    
    async def _remove(self, admin_id: str) -> Tuple[bool, str]:
        result = await self.api.update(ApiConstants.PLAYERS, removal_payload(admin_id))
        if not result.ok:
            return False, result.summary()
        self.store.discard(admin_id)
        return True, result.summary()
