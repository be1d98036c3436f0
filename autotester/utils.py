import json
import os
import uuid
from datetime import datetime
from typing import Any, Optional

from .errors import PersistenceError


def new_id(prefix: str) -> str:
    """Short unique id such as `session_1a2b3c4d5e6f`."""
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def _serialize(obj: Any) -> Any:
    """Custom serializer for records and timestamps."""
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    if isinstance(obj, datetime):
        return obj.isoformat()
    if hasattr(obj, "__dict__"):
        return obj.__dict__
    return str(obj)


def save_text(path: str, text: str) -> str:
    """
    Write through a temp file so readers never see a partial document.

    Raises:
        PersistenceError: if the file cannot be written
    """
    tmp_path = f"{path}.tmp"
    try:
        os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
        with open(tmp_path, "w", encoding="utf-8") as f:
            f.write(text)
        os.replace(tmp_path, path)
    except OSError as e:
        raise PersistenceError(path, e) from e
    return path


def save_json(path: str, data: Any) -> str:
    try:
        text = json.dumps(data, indent=2, ensure_ascii=False, default=_serialize)
    except (TypeError, ValueError) as e:
        raise PersistenceError(path, e) from e
    return save_text(path, text)


def load_text(path: str) -> Optional[str]:
    if not os.path.exists(path):
        return None
    try:
        with open(path, "r", encoding="utf-8") as f:
            return f.read()
    except OSError as e:
        raise PersistenceError(path, e) from e


def load_json(path: str) -> Optional[Any]:
    """Loads a JSON document, or None when the file does not exist."""
    if not os.path.exists(path):
        return None
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        raise PersistenceError(path, e) from e


def append_jsonl(path: str, record: Any):
    """Appends one JSON line."""
    try:
        os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
        with open(path, "a", encoding="utf-8") as f:
            f.write(json.dumps(record, ensure_ascii=False, default=_serialize) + "\n")
    except (OSError, TypeError, ValueError) as e:
        raise PersistenceError(path, e) from e
