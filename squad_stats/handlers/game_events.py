"""
Game event handlers - event payload to API resource mapping.

Event payloads are plain dicts as delivered by the server's event router.
Nested players (victim, attacker, reviver) carry steamID, eosID, name,
teamID and squadID. Every handler swallows and logs its own failures so a
telemetry problem never propagates into the game server.
"""

from functools import wraps
from typing import Any, Dict, Optional

from squad_stats.api.transport import ApiResult, StatsApiClient
from squad_stats.constants import PLUGIN_VERSION, ApiConstants, KillstreakConstants, ServerConstants
from squad_stats.models.requests import OperationKind
from squad_stats.services.game_session import GameSession
from squad_stats.services.request_queue import DurableRequestQueue
from squad_stats.utils.logger import setup_logger

logger = setup_logger(__name__)


def event_handler(context: str):
    """Log and swallow any exception raised by an event handler."""
    def decorator(func):
        @wraps(func)
        async def wrapper(self, info, *args, **kwargs):
            try:
                return await func(self, info or {}, *args, **kwargs)
            except Exception as e:
                logger.error(f"{context} | handler error: {e}", exc_info=True)
                return None
        return wrapper
    return decorator


def player_fields(prefix: str, player: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Flatten a player into prefixed payload fields.
    
    Examples:
        player_fields('victim', {...}) -> {'victim': steamID, 'victimEosID': ...,
                                           'victimName': ..., 'victimTeamID': ...,
                                           'victimSquadID': ...}
    """
    player = player or {}
    return {
        prefix: player.get('steamID'),
        f'{prefix}EosID': player.get('eosID'),
        f'{prefix}Name': player.get('name'),
        f'{prefix}TeamID': player.get('teamID'),
        f'{prefix}SquadID': player.get('squadID'),
    }


class GameEventHandlers:
    """Telemetry writers for the in-process event surface."""
    
    def __init__(self, server, api: StatsApiClient, queue: DurableRequestQueue, session: GameSession):
        self.server = server
        self.api = api
        self.queue = queue
        self.session = session
    
    async def _write(self, context: str, kind: OperationKind, resource: str, payload: Dict[str, Any]) -> ApiResult:
        result = await self.queue.submit(kind, resource, payload)
        if not result.ok:
            logger.warning(f"{context} | {result.summary()}")
        return result
    
    async def register_server(self, context: str) -> ApiResult:
        result = await self._write(
            f"{context}-Server",
            OperationKind.CREATE,
            ApiConstants.SERVERS,
            {'name': getattr(self.server, 'server_name', None), 'version': PLUGIN_VERSION},
        )
        logger.info(f"{context}-Server | {result.summary()}")
        return result
    
    async def load_current_match(self) -> ApiResult:
        """Read the match in progress from the API (used at mount)."""
        result = await self.api.read(ApiConstants.MATCHES)
        self.session.set_match(result.body.get('match') if result.ok else None)
        logger.info(f"Mount-Match | {result.summary()}")
        return result
    
    def _combat_payload(self, info: Dict[str, Any]) -> Dict[str, Any]:
        payload = {'match': self.session.match_id, 'time': info.get('time')}
        payload.update(player_fields('victim', info.get('victim')))
        payload.update(player_fields('attacker', info.get('attacker')))
        payload.update({
            'damage': info.get('damage'),
            'weapon': info.get('weapon'),
            'teamkill': info.get('teamkill'),
        })
        return payload
    
    @event_handler("NewGame")
    async def on_new_game(self, info: Dict[str, Any]):
        # Streaks belong to the match that just ended
        await self.flush_all_killstreaks()
        await self.register_server("NewGame")
        
        layer = info.get('layer') or {}
        match_data = {
            'server': getattr(self.server, 'server_name', None),
            'dlc': info.get('dlc'),
            'mapClassname': info.get('mapClassname'),
            'layerClassname': info.get('layerClassname'),
            'map': (layer.get('map') or {}).get('name') if layer else None,
            'layer': layer.get('name') if layer else None,
            'startTime': info.get('time'),
        }
        result = await self._write("NewGame-Post-Match", OperationKind.CREATE, ApiConstants.MATCHES, match_data)
        self.session.set_match(result.body.get('match') if result.ok else None)
    
    @event_handler("RoundEnded")
    async def on_round_ended(self, info: Dict[str, Any]):
        winner = info.get('winner')
        loser = info.get('loser')
        if not winner or not loser:
            match_data = {
                'endTime': info.get('time'),
                'winningTeam': 'Draw',
                'winningSubfaction': 'Draw',
                'winningTickets': 0,
                'losingTeam': 'Draw',
                'losingSubfaction': 'Draw',
                'losingTickets': 0,
            }
        else:
            match_data = {
                'endTime': info.get('time'),
                'winningTeam': winner.get('faction'),
                'winningSubfaction': winner.get('subfaction'),
                'winningTickets': winner.get('tickets'),
                'losingTeam': loser.get('faction'),
                'losingSubfaction': loser.get('subfaction'),
                'losingTickets': loser.get('tickets'),
            }
        await self._write("RoundEnded-Match", OperationKind.UPDATE, ApiConstants.MATCHES, match_data)
    
    @event_handler("Connected")
    async def on_player_connected(self, info: Dict[str, Any]):
        player = info.get('player') or {}
        player_data: Dict[str, Any] = {}
        
        layer = getattr(self.server, 'current_layer', None) or {}
        player_count = getattr(self.server, 'a2s_player_count', None)
        if (
            player_count is not None
            and player_count <= ServerConstants.SEED_PLAYER_THRESHOLD
            and layer.get('gamemode') == ServerConstants.SEED_GAMEMODE
        ):
            player_data['isSeeder'] = 1
        
        player_data.update({
            'eosID': info.get('eosID'),
            'steamID': player.get('steamID'),
            'lastName': player.get('name'),
            'lastIP': info.get('ip'),
        })
        await self._write("Connected-Player", OperationKind.UPDATE, ApiConstants.PLAYERS, player_data)
    
    @event_handler("Wounds")
    async def on_player_wounded(self, info: Dict[str, Any]):
        self._count_kill(info)
        await self._write("Wounds-Wound", OperationKind.CREATE, ApiConstants.WOUNDS, self._combat_payload(info))
    
    @event_handler("Died")
    async def on_player_died(self, info: Dict[str, Any]):
        victim = info.get('victim')
        if not victim:
            return
        
        death_data = self._combat_payload(info)
        death_data['woundTime'] = info.get('woundTime')
        await self._write("Died-Death", OperationKind.CREATE, ApiConstants.DEATHS, death_data)
        
        # These factions die without a wound event, so the kill is counted here
        team_name = (victim.get('squad') or {}).get('teamName')
        if team_name in KillstreakConstants.INSTANT_DEATH_FACTIONS:
            logger.debug(f"Droid Army Detected: {team_name}")
            self._count_kill(info)
        
        if victim.get('eosID'):
            await self.flush_killstreak(victim['eosID'])
    
    @event_handler("Revives")
    async def on_player_revived(self, info: Dict[str, Any]):
        revive_data = self._combat_payload(info)
        revive_data['woundTime'] = info.get('woundTime')
        revive_data.update(player_fields('reviver', info.get('reviver')))
        await self._write("Revives-Revive", OperationKind.CREATE, ApiConstants.REVIVES, revive_data)
    
    @event_handler("Disconnected")
    async def on_player_disconnected(self, info: Dict[str, Any]):
        eos_id = info.get('eosID')
        if eos_id:
            await self.flush_killstreak(eos_id)
    
    def _count_kill(self, info: Dict[str, Any]):
        attacker = info.get('attacker')
        if not attacker or not attacker.get('eosID') or info.get('teamkill') is True:
            return
        self.session.killstreaks.record_kill(attacker['eosID'])
    
    async def _report_killstreak(self, eos_id: str, streak: int):
        if streak <= 0:
            return
        await self._write(
            f"Killstreak {eos_id}",
            OperationKind.UPDATE,
            ApiConstants.PLAYER_KILLSTREAKS,
            {'eosID': eos_id, 'highestKillstreak': streak, 'match': self.session.match_id},
        )
    
    async def flush_killstreak(self, eos_id: str):
        """Report a player's streak as a highest-killstreak candidate and reset it."""
        await self._report_killstreak(eos_id, self.session.killstreaks.pop(eos_id))
    
    async def flush_all_killstreaks(self):
        for eos_id, streak in self.session.killstreaks.pop_all():
            await self._report_killstreak(eos_id, streak)
