"""Shared data type definitions used by the vault service and the blob server."""

from dataclasses import dataclass, field
from typing import Dict


@dataclass(frozen=True)
class StoredBlob:
    """
    An opaque blob together with the metadata attached when it was written.
    """
    key: str
    data: bytes
    content_type: str
    metadata: Dict[str, str] = field(default_factory=dict)

    @property
    def size(self) -> int:
        return len(self.data)
