from __future__ import annotations

from linguabundle.schemas.translation import Bundle


class SessionCache:
    """Process-lifetime mapping of resolved bundle paths to bundles.

    Entries are never evicted; restarting the process is the only way to
    observe bundles that changed in the store after they were cached.
    """

    def __init__(self) -> None:
        self._entries: dict[str, Bundle] = {}

    def get(self, key: str) -> Bundle | None:
        return self._entries.get(key)

    def put(self, key: str, bundle: Bundle) -> None:
        self._entries[key] = bundle

    def keys(self) -> list[str]:
        return sorted(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
