"""
Data models for the stats forwarder.

Plain dataclasses shared between the queue, the roster sync and the
event handlers. Persistence formats are defined alongside each model.
"""

from .admin import AdminListSource, AdminRecord, SourceKind
from .requests import OperationKind, PendingRequest

__all__ = [
    'AdminListSource',
    'AdminRecord',
    'OperationKind',
    'PendingRequest',
    'SourceKind',
]
