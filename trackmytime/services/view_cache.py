"""
Version counters for rendered dashboard views.

Every write that changes what a view shows bumps the version of the
affected paths. List endpoints publish the version as an ETag so clients
can tell a stale copy from a fresh one without re-reading the payload.
"""
import logging
from typing import Dict, Iterable, Optional

from trackmytime.core.config import settings

logger = logging.getLogger(__name__)


class ViewCache:
    def __init__(self):
        self._versions: Dict[str, int] = {}

    def version(self, path: str) -> int:
        return self._versions.get(path, 0)

    def etag(self, path: str) -> str:
        return f'W/"{path}:{self.version(path)}"'

    def invalidate(self, paths: Optional[Iterable[str]] = None) -> None:
        targets = list(paths) if paths is not None else list(settings.revalidate_paths)
        for path in targets:
            self._versions[path] = self.version(path) + 1
        logger.info("Invalidated cached views", extra={"paths": targets})

    def reset(self) -> None:
        self._versions.clear()


view_cache = ViewCache()


def get_view_cache() -> ViewCache:
    return view_cache
