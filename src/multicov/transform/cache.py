"""Content-addressable cache around an instrumentation function.

The cache key is a hash of the source, the absolute filename and a salt
built from every option that changes instrumented output. Entries are
written once with an atomic rename and never modified, so concurrent
processes racing on the same key write identical bytes.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Callable, Dict, Optional, Union

from multicov.core.hashing import content_hash
from multicov.core.logging import get_logger

LOGGER = get_logger(__name__)

# (code, filename, hash) -> instrumented code
TransformFunction = Callable[[str, str, str], str]

# Number of write attempts before a cache write error propagates
WRITE_RETRIES = 3


class CachingTransform:
    """Callable ``(code, filename) -> instrumented code`` backed by a disk cache."""

    def __init__(
        self,
        cache_dir: Optional[Union[str, Path]],
        salt: str = "",
        transform: Optional[TransformFunction] = None,
        factory: Optional[Callable[[Optional[Path]], TransformFunction]] = None,
        ext: str = ".py",
        disable_cache: bool = False,
        hashes: Optional[Dict[str, str]] = None,
    ):
        """Initialize CachingTransform.

        Exactly one of ``transform`` and ``factory`` must be given. The
        factory is called with the cache directory on the first miss.

        Args:
            cache_dir: Directory holding cached output.
            salt: Serialized salt-relevant options.
            transform: Instrumentation function.
            factory: Lazily builds the instrumentation function.
            ext: Extension for cache files.
            disable_cache: Always instrument; never read or write the cache.
            hashes: filename -> last hash computed in this process. Pass
                one dict to every transform of a session to share it.
        """
        if (transform is None) == (factory is None):
            raise ValueError("Specify exactly one of 'transform' or 'factory'")
        self.cache_dir = Path(cache_dir) if cache_dir else None
        self.salt = salt
        self.ext = ext
        self.disable_cache = disable_cache or self.cache_dir is None
        self._transform = transform
        self._factory = factory
        self.hashes: Dict[str, str] = hashes if hashes is not None else {}

    def key(self, code: str, filename: str) -> str:
        """Cache key for ``code`` at ``filename``."""
        return content_hash(code, self.salt, extra=[filename])

    def cached_path(self, filename: str, hash_value: str) -> Path:
        if self.cache_dir is None:
            raise ValueError("No cache directory configured")
        return self.cache_dir / f"{Path(filename).stem}-{hash_value}{self.ext}"

    def _get_transform(self) -> TransformFunction:
        if self._transform is None:
            assert self._factory is not None
            self._transform = self._factory(self.cache_dir)
        return self._transform

    def __call__(self, code: str, filename: str) -> str:
        hash_value = self.key(code, filename)
        self.hashes[filename] = hash_value

        if self.disable_cache:
            return self._run(code, filename, hash_value)

        cached_path = self.cached_path(filename, hash_value)
        try:
            return cached_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            pass
        except (OSError, UnicodeDecodeError) as e:
            LOGGER.debug(f"Unreadable cache entry {cached_path}: {e}")

        result = self._run(code, filename, hash_value)
        self._store(cached_path, result)
        return result

    def _run(self, code: str, filename: str, hash_value: str) -> str:
        result = self._get_transform()(code, filename, hash_value)
        if not isinstance(result, str):
            raise TypeError("Caching transform must return a string")
        return result

    def _store(self, cached_path: Path, result: str) -> None:
        for attempt in range(1, WRITE_RETRIES + 1):
            try:
                cached_path.parent.mkdir(parents=True, exist_ok=True)
                fd, tmp_name = tempfile.mkstemp(
                    dir=str(cached_path.parent), prefix=".tmp-", suffix=self.ext
                )
                try:
                    with os.fdopen(fd, "w", encoding="utf-8") as handle:
                        handle.write(result)
                    os.replace(tmp_name, cached_path)
                except OSError:
                    Path(tmp_name).unlink(missing_ok=True)
                    raise
                return
            except OSError as e:
                # Most likely a race with another process creating the directory.
                if attempt == WRITE_RETRIES:
                    raise
                LOGGER.debug(f"Retrying cache write to {cached_path}: {e}")
