"""
Admin list parser

Parses the Squad admin configuration format:

    Group=Admin:kick,ban,canseeadminchat   // optional comment
    Admin=76561198000000000:Admin // Some Name @discordhandle
    Admin=0123456789abcdef0123456789abcdef:Whitelist

Group lines bind a group ID to a comma-separated permission list. Admin lines
bind a 17-digit Steam ID or 32-char hex EOS ID to a group, optionally followed
by a discord handle introduced with '@' anywhere later on the line. A group
may be defined before or after the admin lines that reference it.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional

from squad_stats.utils.exceptions import AdminListParseError

GROUP_PREFIX = 'Group='
ADMIN_PREFIX = 'Admin='

GROUP_LINE = re.compile(r'^Group=(?P<group_id>[^:]*?):(?P<perms>.*?)(?=\s+//|$)')
ADMIN_LINE = re.compile(
    r'^Admin=(?P<admin_id>\d{17}|[a-f0-9]{32}):(?P<group_id>\S+)(?:.*@(?P<discord>\S*))?'
)


@dataclass(frozen=True)
class AdminEntry:
    """One resolved admin line."""
    admin_id: str
    group_id: str
    permissions: FrozenSet[str]
    discord_handle: Optional[str] = None
    line_number: int = 0


@dataclass
class ParsedAdminList:
    """Groups and admin entries from one admin list, plus skipped lines."""
    groups: Dict[str, FrozenSet[str]] = field(default_factory=dict)
    admins: List[AdminEntry] = field(default_factory=list)
    errors: List[AdminListParseError] = field(default_factory=list)


def parse_permissions(raw_perms: str) -> FrozenSet[str]:
    """
    Split a group's permission list into lower-cased permission names.
    
    Examples:
        "Kick, Ban,CanSeeAdminChat" -> {"kick", "ban", "canseeadminchat"}
        "" -> set()
    """
    return frozenset(perm.strip().lower() for perm in raw_perms.split(',') if perm.strip())


def parse_admin_list(text: str) -> ParsedAdminList:
    """
    Parse admin list text into groups and resolved admin entries.
    
    Group and admin lines that do not match their grammar, and admin lines
    that reference an undefined group, are collected as errors and skipped.
    Anything else (comments, blank lines, other directives) is ignored.
    
    Args:
        text: Raw admin list contents
        
    Returns:
        ParsedAdminList with groups keyed by their un-namespaced ID
    """
    parsed = ParsedAdminList()
    lines = (text or '').splitlines()
    
    # Groups first so admin lines may reference groups defined further down
    for line_number, line in enumerate(lines, start=1):
        stripped = line.strip()
        if not stripped.startswith(GROUP_PREFIX):
            continue
        match = GROUP_LINE.match(stripped)
        if not match:
            parsed.errors.append(AdminListParseError(line_number, line, "malformed group line"))
            continue
        parsed.groups[match.group('group_id')] = parse_permissions(match.group('perms'))
    
    for line_number, line in enumerate(lines, start=1):
        stripped = line.strip()
        if not stripped.startswith(ADMIN_PREFIX):
            continue
        match = ADMIN_LINE.match(stripped)
        if not match:
            parsed.errors.append(
                AdminListParseError(line_number, line, "expected a 17-digit Steam ID or 32-char EOS ID and a group")
            )
            continue
        
        group_id = match.group('group_id')
        if group_id not in parsed.groups:
            parsed.errors.append(
                AdminListParseError(line_number, line, f"unknown group '{group_id}'")
            )
            continue
        
        parsed.admins.append(AdminEntry(
            admin_id=match.group('admin_id'),
            group_id=group_id,
            permissions=parsed.groups[group_id],
            discord_handle=match.group('discord') or None,
            line_number=line_number,
        ))
    
    return parsed
