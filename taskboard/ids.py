import threading
from typing import Dict


class IdGenerator:
    """Monotonic integer ids, one counter per entity kind ("user", "task", ...).

    Ids start at 1 and are never handed out twice, even if the record they
    were allocated for is later deleted or never stored.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._last: Dict[str, int] = {}

    def next_id(self, kind: str) -> int:
        with self._lock:
            value = self._last.get(kind, 0) + 1
            self._last[kind] = value
            return value

