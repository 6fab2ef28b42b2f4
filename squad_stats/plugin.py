"""
MySquadStats plugin - mount/unmount and background tasks

Subscribes the event handlers to the game server's event router and runs two
background loops on the server's event loop:
- retry drain every minute (replays requests the API could not take)
- admin roster sync every 30 minutes

The server object is duck-typed: it needs `on(event, handler)`,
`remove_listener(event, handler)` and `server_name`, and optionally
`a2s_player_count` and `current_layer` for seeding detection.
"""

from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

from discord.ext import tasks

from squad_stats.api.transport import StatsApiClient
from squad_stats.config import Config
from squad_stats.handlers.game_events import GameEventHandlers
from squad_stats.models.admin import AdminListSource
from squad_stats.services.admin_roster import AdminListLoader, RosterReconciler
from squad_stats.services.game_session import GameSession
from squad_stats.services.request_queue import DurableRequestQueue
from squad_stats.services.roster_store import RosterStore
from squad_stats.utils.logger import setup_logger

logger = setup_logger(__name__)


class MySquadStatsPlugin:
    """Event-to-telemetry forwarder for one game server"""
    
    def __init__(
        self,
        server,
        api: Optional[StatsApiClient] = None,
        data_dir: Optional[Union[str, Path]] = None,
        admin_lists: Optional[List[AdminListSource]] = None,
        install_root: Optional[Union[str, Path]] = None,
    ):
        self.server = server
        self.api = api or StatsApiClient()
        self.queue = DurableRequestQueue(self.api, data_dir)
        self.reconciler = RosterReconciler(
            self.api,
            store=RosterStore(data_dir),
            loader=AdminListLoader(install_root),
        )
        self.admin_lists = admin_lists
        self.session = GameSession()
        self.handlers = GameEventHandlers(server, self.api, self.queue, self.session)
        self.mounted = False
        self.logger = logger
    
    def _subscriptions(self) -> Dict[str, Callable]:
        return {
            'NEW_GAME': self.handlers.on_new_game,
            'ROUND_ENDED': self.handlers.on_round_ended,
            'PLAYER_CONNECTED': self.handlers.on_player_connected,
            'PLAYER_WOUNDED': self.handlers.on_player_wounded,
            'PLAYER_DIED': self.handlers.on_player_died,
            'PLAYER_REVIVED': self.handlers.on_player_revived,
            'PLAYER_DISCONNECTED': self.handlers.on_player_disconnected,
        }
    
    async def mount(self, start_tasks: bool = True):
        """Register the server, load the current match and start listening"""
        if self.mounted:
            return
        
        self.session.clear()
        try:
            await self.handlers.register_server("Mount")
            await self.handlers.load_current_match()
        except Exception as e:
            self.logger.error(f"Mount requests failed, continuing without them: {e}", exc_info=True)
        
        for event, handler in self._subscriptions().items():
            self.server.on(event, handler)
        
        if start_tasks:
            self.drain_failed_requests.change_interval(seconds=Config.DRAIN_INTERVAL_SECONDS)
            self.sync_admins.change_interval(minutes=Config.RECONCILE_INTERVAL_MINUTES)
            self.drain_failed_requests.start()
            self.sync_admins.start()
            self.logger.info("MySquadStats: Background tasks started")
        
        self.mounted = True
    
    async def unmount(self):
        """Stop listening, stop background tasks and drop session state"""
        if not self.mounted:
            return
        
        for event, handler in self._subscriptions().items():
            self.server.remove_listener(event, handler)
        
        self.drain_failed_requests.cancel()
        self.sync_admins.cancel()
        self.session.clear()
        self.mounted = False
        self.logger.info("MySquadStats: Background tasks stopped")
    
    async def close(self):
        await self.unmount()
        await self.api.close()
    
    @tasks.loop(seconds=60)
    async def drain_failed_requests(self):
        """Background task replaying queued requests every minute"""
        try:
            self.logger.info("Pinging My Squad Stats...")
            report = await self.queue.drain()
            if report.delivered or report.remaining:
                self.logger.info(
                    f"Retried failed requests: {report.delivered} delivered, {report.remaining} still pending"
                )
        except Exception as e:
            self.logger.error(f"Error in retry drain task: {e}", exc_info=True)
    
    @tasks.loop(minutes=30)
    async def sync_admins(self):
        """Background task mirroring admin lists to the API every 30 minutes"""
        try:
            sources = self.admin_lists if self.admin_lists is not None else Config.get_admin_lists()
            await self.reconciler.reconcile(sources)
        except Exception as e:
            self.logger.error(f"Error in admin sync task: {e}", exc_info=True)
