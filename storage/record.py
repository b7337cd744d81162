"""
SnapshotRecord: Envelope stored around every persisted payload.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import asdict, dataclass, field
from typing import Any, Dict


@dataclass
class SnapshotRecord:
    """
    Represents one persisted snapshot.

    Attributes:
        kind (str): Snapshot family, e.g. 'world' or 'controller'.
        payload (dict): The serialised World or controller.
        id (str): Unique identifier for this save.
        saved_at (float): Timestamp (in seconds) when the record was created.
        version (int): Format version of the envelope.
    """
    kind: str
    payload: Dict[str, Any]
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    saved_at: float = field(default_factory=time.time)
    version: int = 1

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SnapshotRecord":
        """
        Rebuild a record, raising on a missing or mistyped payload.

        Args:
            data (dict): Decoded JSON object.

        Returns:
            SnapshotRecord: The parsed record.

        Raises:
            KeyError: If 'kind' or 'payload' is missing.
            TypeError: If the payload is not an object.
        """
        payload = data["payload"]
        if not isinstance(payload, dict):
            raise TypeError(f"snapshot payload must be an object, got {type(payload).__name__}")
        return cls(
            kind=str(data["kind"]),
            payload=payload,
            id=str(data.get("id", "")),
            saved_at=float(data.get("saved_at", 0.0)),
            version=int(data.get("version", 1)),
        )
