"""Single-slot holder for the active chunk index."""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Optional

from docchat.telemetry import emit_session_event
from docchat.vectorstore import ChunkIndex

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SessionSnapshot:
    index: ChunkIndex
    version: int


class SessionStore:
    """Holds zero or one :class:`ChunkIndex`, replaced wholesale.

    The last successful :meth:`replace` wins. Readers always receive a whole
    index, either the previous one or the new one.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._snapshot: Optional[SessionSnapshot] = None
        self._version = 0

    def replace(self, index: ChunkIndex) -> int:
        """Publish ``index`` as the active one and return the new version."""

        with self._lock:
            self._version += 1
            self._snapshot = SessionSnapshot(index=index, version=self._version)
            version = self._version
        emit_session_event(source=index.source, kind=index.kind.value, chunks=len(index), version=version)
        return version

    def current(self) -> Optional[ChunkIndex]:
        snapshot = self.snapshot()
        return snapshot.index if snapshot is not None else None

    def snapshot(self) -> Optional[SessionSnapshot]:
        with self._lock:
            return self._snapshot
