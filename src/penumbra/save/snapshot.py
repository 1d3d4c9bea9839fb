from __future__ import annotations

import hashlib
import json
import logging
from typing import Any, Dict

from ..errors import StateCorruption

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

REQUIRED_KEYS = ("schema_version", "seed", "rng", "turn", "dungeon", "player", "stats", "checksum")


def canonical_dumps(obj: Dict[str, Any]) -> str:
    """Canonical JSON dump for consistent hashing.

    - No whitespace (compact separators)
    - Keys sorted
    """
    return json.dumps(obj, separators=(",", ":"), sort_keys=True)


def payload_checksum(payload: Dict[str, Any]) -> str:
    body = {k: v for k, v in payload.items() if k != "checksum"}
    return hashlib.blake2b(canonical_dumps(body).encode("utf-8"), digest_size=16).hexdigest()


def seal(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Stamp schema version and checksum onto a snapshot payload."""
    sealed = dict(payload)
    sealed["schema_version"] = SCHEMA_VERSION
    sealed["checksum"] = payload_checksum(sealed)
    return sealed


def verify(data: Any) -> Dict[str, Any]:
    """Check structure and checksum of a snapshot dict.

    Raises StateCorruption on missing keys, unknown schema or checksum mismatch.
    Cross-field consistency is checked by the session on restore.
    """
    if not isinstance(data, dict):
        raise StateCorruption("snapshot must be a dict")
    missing = [k for k in REQUIRED_KEYS if k not in data]
    if missing:
        raise StateCorruption(f"snapshot missing keys: {', '.join(missing)}")
    if data["schema_version"] != SCHEMA_VERSION:
        raise StateCorruption(f"unsupported snapshot schema: {data['schema_version']!r}")
    try:
        expected = payload_checksum(data)
    except (TypeError, ValueError) as exc:
        raise StateCorruption(f"snapshot is not JSON-safe: {exc}") from exc
    if expected != data["checksum"]:
        logger.warning("Snapshot checksum mismatch")
        raise StateCorruption("snapshot checksum mismatch")
    return data
