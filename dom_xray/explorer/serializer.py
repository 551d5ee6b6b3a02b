from __future__ import annotations

import json
import logging
from typing import Any, Optional

from ..storage.base import StorageBackend


def to_json(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False)


def export_payload(
    payload: Any,
    filename: str,
    storage: StorageBackend,
    prefix: Optional[str] = None,
) -> str:
    """Write ``payload`` as JSON through ``storage`` and return the key used."""
    key = f"{prefix}/{filename}" if prefix else filename
    storage.save_bytes(key, to_json(payload).encode("utf-8"))
    logging.info("exported key=%s", key)
    return key
