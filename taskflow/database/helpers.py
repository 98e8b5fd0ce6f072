import json
import logging
from typing import Any

logger = logging.getLogger(__name__)


class DatabaseError(Exception):
    """Custom exception for local storage operations."""
    pass


def decode_json(raw: Any, key: str, default: Any) -> Any:
    """Decode a stored JSON value, falling back to default when corrupt.

    Unparseable values (hand-edited file, truncated write) are logged and
    treated as absent.
    """
    if raw is None:
        return default
    try:
        return json.loads(raw)
    except (TypeError, ValueError) as e:
        logger.warning(f"Discarding corrupt stored value for {key}: {e}")
        return default


def encode_json(value: Any) -> str:
    try:
        return json.dumps(value)
    except (TypeError, ValueError) as e:
        raise DatabaseError(f"Value is not JSON serializable: {e}") from e
