"""
Pending request models for the durable retry queue.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict


class OperationKind(Enum):
    """Write operations the queue can hold; each kind owns its own ledger."""
    CREATE = "create"  # POST
    UPDATE = "update"  # PATCH


@dataclass(eq=False)
class PendingRequest:
    """One undelivered write.
    
    Equality is identity: two requests with identical payloads are still two
    deliveries, and the ledger removes exactly the object that was replayed.
    Position in the ledger stands in for the enqueue time.
    """
    resource: str
    payload: Dict[str, Any] = field(default_factory=dict)
    
    def to_dict(self) -> Dict[str, Any]:
        return {'resource': self.resource, 'payload': self.payload}
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PendingRequest':
        if not isinstance(data, dict) or not isinstance(data.get('resource'), str):
            raise ValueError(f"Invalid pending request entry: {data!r}")
        payload = data.get('payload')
        return cls(resource=data['resource'], payload=payload if isinstance(payload, dict) else {})
