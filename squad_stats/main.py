"""
Standalone entry point.

The plugin normally lives inside the game server process. This runner is for
operators: replay the retry ledgers or run an admin sync by hand, or keep
both background loops running without a game server attached.

    python -m squad_stats.main --drain-once
    python -m squad_stats.main --reconcile-once
    python -m squad_stats.main
"""

import argparse
import asyncio
import sys

from squad_stats.api.transport import StatsApiClient
from squad_stats.config import Config
from squad_stats.plugin import MySquadStatsPlugin
from squad_stats.utils.logger import setup_logger

logger = setup_logger(__name__)


class DetachedServer:
    """Stand-in server with no events, used when running maintenance loops only"""
    
    def __init__(self, server_name: str):
        self.server_name = server_name
    
    def on(self, event, handler):
        pass
    
    def remove_listener(self, event, handler):
        pass


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="MySquadStats forwarder maintenance runner")
    group = parser.add_mutually_exclusive_group()
    group.add_argument('--drain-once', action='store_true', help='Replay queued requests once and exit')
    group.add_argument('--reconcile-once', action='store_true', help='Run one admin roster sync and exit')
    return parser.parse_args(argv)


async def main(argv=None) -> int:
    """Main entry point"""
    args = parse_args(argv)
    
    try:
        Config.validate()
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1
    
    api = StatsApiClient()
    plugin = MySquadStatsPlugin(DetachedServer(Config.SERVER_NAME), api=api)
    
    try:
        if args.drain_once:
            report = await plugin.queue.drain()
            logger.info(
                f"Drain finished: skipped={report.skipped} delivered={report.delivered} "
                f"remaining={report.remaining}"
            )
            return 0
        
        if args.reconcile_once:
            report = await plugin.reconciler.reconcile(Config.get_admin_lists())
            return 0 if not report.failed else 2
        
        await plugin.mount()
        # Loops run until the process is interrupted
        await asyncio.Event().wait()
        return 0
    except (KeyboardInterrupt, asyncio.CancelledError):
        return 0
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        return 1
    finally:
        await plugin.close()


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
