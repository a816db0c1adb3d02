"""Content hashing for the transform cache.

A cache key folds together the source text, the absolute filename and a
salt derived from every option that changes instrumented output, so a
change to any of them yields a new key.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any, Dict, Iterable

from multicov import __version__

CACHE_VERSION = __version__


def salt(options: Dict[str, Any], instrumenter_version: str = "") -> str:
    """Build the cache salt for a set of salt-relevant options.

    Args:
        options: Options that affect instrumentation output.
        instrumenter_version: Version of the instrumenter plugin in use.

    Returns:
        Deterministic string representation of the options.
    """
    return json.dumps(
        {
            "modules": {"multicov": CACHE_VERSION, "instrumenter": instrumenter_version},
            "options": options,
        },
        sort_keys=True,
        default=str,
    )


def content_hash(code: str, salt_value: str, extra: Iterable[str] = ()) -> str:
    """Hash source text together with the salt and extra key parts.

    Args:
        code: Source text.
        salt_value: Output of :func:`salt`.
        extra: Additional key material, usually the absolute filename.

    Returns:
        Hex sha256 digest.
    """
    digest = hashlib.sha256()
    for part in (CACHE_VERSION, code, salt_value, *extra):
        data = part.encode("utf-8", "surrogatepass")
        # Length prefix keeps ("ab", "c") and ("a", "bc") apart.
        digest.update(str(len(data)).encode("ascii"))
        digest.update(b":")
        digest.update(data)
    return digest.hexdigest()
