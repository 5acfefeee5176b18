"""On-disk cache for context packs printed by the CLI.

Hooks may run ``contox context`` before every tool call, so identical
requests within a few minutes are answered from disk.
"""

import hashlib
import json
import logging
import tempfile
import time
from pathlib import Path

logger = logging.getLogger("contox.cache")

CACHE_TTL_SECONDS = 5 * 60


def get_cache_dir() -> Path:
    return Path(tempfile.gettempdir()) / "contox-context-cache"


def cache_key(task: str, scope: str, budget: int) -> str:
    return hashlib.sha256(f"{task}:{scope}:{budget}".encode()).hexdigest()[:12]


class ContextCache:
    """A directory of JSON entries keyed by request hash."""

    def __init__(self, directory: Path | None = None, ttl: float = CACHE_TTL_SECONDS):
        self.directory = directory or get_cache_dir()
        self.ttl = ttl

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def read(self, key: str) -> str | None:
        """Return cached content if present and fresh, else None."""
        path = self._path(key)
        try:
            entry = json.loads(path.read_text(encoding="utf-8"))
            created_at = entry["createdAt"] / 1000
            content = entry["content"]
        except FileNotFoundError:
            return None
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.debug("Ignoring unreadable cache entry %s: %s", path, e)
            return None

        if time.time() - created_at >= self.ttl:
            return None
        return content

    def write(self, key: str, content: str) -> None:
        entry = {"content": content, "createdAt": int(time.time() * 1000)}
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            self._path(key).write_text(json.dumps(entry), encoding="utf-8")
        except OSError as e:
            logger.debug("Could not write cache entry %s: %s", key, e)
