"""
Forwarder-wide constants for the MySquadStats plugin.

This module contains the fixed names, resource identifiers and timing values
shared between the transport, the retry queue and the admin roster sync.
"""

PLUGIN_VERSION = "v5.0.1"


class ApiConstants:
    """Constants describing the remote statistics API."""
    
    # Response envelope
    STATUS_SUCCESS = "Success"
    STATUS_ERROR = "Error"
    PING_RESOURCE = "ping"
    PONG_MESSAGE = "pong"
    
    # Resource names
    SERVERS = "servers"
    MATCHES = "matches"
    PLAYERS = "players"
    WOUNDS = "wounds"
    DEATHS = "deaths"
    REVIVES = "revives"
    PLAYER_KILLSTREAKS = "playerKillstreaks"
    PLAYER_LINK = "playerLink"


class QueueConstants:
    """Constants for the persisted retry ledgers."""
    
    CREATE_LEDGER_FILE = "send-retry-requests.json"
    UPDATE_LEDGER_FILE = "patch-retry-requests.json"
    
    # Resources replayed ahead of everything else (dependents reference them)
    PRIORITY_RESOURCES = ("matches",)


class RosterConstants:
    """Constants for admin roster reconciliation."""
    
    ROSTER_FILE = "admins.json"
    
    ADMIN_PERMISSION = "canseeadminchat"
    RESERVE_PERMISSION = "reserve"
    
    # Key used for the discord handle inside a persisted roster record
    DISCORD_KEY = "discordUsername"
    
    STEAM_ID_LENGTH = 17
    EOS_ID_LENGTH = 32


class KillstreakConstants:
    """Constants for killstreak tracking."""
    
    # Factions whose deaths are reported without a preceding wound
    INSTANT_DEATH_FACTIONS = (
        "Droid Army",
        "Droid Army - Lego",
        "Droid Army - SpecOps",
        "Droid Army - Camo",
        "Droid Army - Snow",
        "Droid Army - Mech",
        "Droid Army - Halloween",
        "Droid Army - Geonosis",
    )


class ServerConstants:
    """Constants for reading game server state."""
    
    # A Seed layer with at most this many players counts as seeding
    SEED_GAMEMODE = "Seed"
    SEED_PLAYER_THRESHOLD = 50
