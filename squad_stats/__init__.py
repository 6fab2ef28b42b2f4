"""
MySquadStats forwarder.

Mirrors Squad server events to the MySquadStats statistics API, persisting
writes the API could not accept and keeping the API's admin flags in sync
with the server's admin lists.
"""

from squad_stats.constants import PLUGIN_VERSION

__version__ = PLUGIN_VERSION.lstrip('v')
