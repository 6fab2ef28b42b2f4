"""
Admin roster data models.

AdminRecord replaces the loose permission dictionaries of admin list files
with an explicit permission set plus derived flags.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, Optional

from squad_stats.constants import RosterConstants

STEAM_ID_PATTERN = re.compile(r'^\d{17}$')
EOS_ID_PATTERN = re.compile(r'^[a-f0-9]{32}$')


def is_admin_identity(value: str) -> bool:
    """Check whether a string is a 17-digit Steam ID or a 32-char hex EOS ID"""
    return bool(STEAM_ID_PATTERN.match(value) or EOS_ID_PATTERN.match(value))


def identity_payload(admin_id: str) -> Dict[str, str]:
    """Key a players payload by steamID or eosID depending on the ID shape"""
    if len(admin_id) == RosterConstants.STEAM_ID_LENGTH:
        return {'steamID': admin_id}
    return {'eosID': admin_id}


class SourceKind(Enum):
    REMOTE = "remote"
    LOCAL = "local"


@dataclass(frozen=True)
class AdminListSource:
    """One configured admin list, fetched over HTTP or read from disk."""
    kind: SourceKind
    locator: str
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AdminListSource':
        if not isinstance(data, dict):
            raise ValueError(f"Admin list entry must be an object, got {data!r}")
        try:
            kind = SourceKind(str(data.get('type', '')).lower())
        except ValueError:
            raise ValueError(f"Unsupported admin list type: {data.get('type')!r}")
        locator = data.get('source')
        if not locator or not isinstance(locator, str):
            raise ValueError(f"Admin list entry is missing a source: {data!r}")
        return cls(kind=kind, locator=locator)


@dataclass(frozen=True)
class AdminRecord:
    """Canonical permission state for one admin identity."""
    permissions: FrozenSet[str] = field(default_factory=frozenset)
    discord_handle: Optional[str] = None
    
    @classmethod
    def create(cls, permissions: Iterable[str], discord_handle: Optional[str] = None) -> 'AdminRecord':
        perms = frozenset(p.strip().lower() for p in permissions if p and p.strip())
        return cls(permissions=perms, discord_handle=discord_handle or None)
    
    @property
    def is_admin(self) -> bool:
        return RosterConstants.ADMIN_PERMISSION in self.permissions
    
    @property
    def is_reserve(self) -> bool:
        return RosterConstants.RESERVE_PERMISSION in self.permissions
    
    def merged_with(self, other: 'AdminRecord') -> 'AdminRecord':
        """Union permissions; the other record's handle wins only when present"""
        return AdminRecord(
            permissions=self.permissions | other.permissions,
            discord_handle=other.discord_handle if other.discord_handle is not None else self.discord_handle,
        )
    
    def to_upsert_payload(self, admin_id: str) -> Dict[str, Any]:
        """Build the players update that mirrors this record remotely"""
        payload: Dict[str, Any] = identity_payload(admin_id)
        payload['isAdmin'] = 1 if self.is_admin else 0
        payload['isReserve'] = 1 if self.is_reserve else 0
        if self.discord_handle is not None:
            payload['discordUsername'] = self.discord_handle
        return payload
    
    def to_dict(self) -> Dict[str, Any]:
        """Persisted shape: each permission as a key set to true, plus the handle"""
        data: Dict[str, Any] = {perm: True for perm in sorted(self.permissions)}
        data[RosterConstants.DISCORD_KEY] = self.discord_handle
        return data
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AdminRecord':
        if not isinstance(data, dict):
            raise ValueError(f"Roster record must be an object, got {data!r}")
        handle = data.get(RosterConstants.DISCORD_KEY)
        perms = [key for key, value in data.items() if key != RosterConstants.DISCORD_KEY and value is True]
        return cls.create(perms, handle if isinstance(handle, str) else None)


def removal_payload(admin_id: str) -> Dict[str, Any]:
    """Build the players update that revokes a previously mirrored admin"""
    payload: Dict[str, Any] = identity_payload(admin_id)
    payload['removeAdmin'] = 1
    return payload
