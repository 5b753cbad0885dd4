# trialhold/schemas/validator.py
from __future__ import annotations
import json
from typing import Any, Dict, Mapping

from fastapi import Request

from trialhold.core.errors import MissingFieldsError


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value == "")


async def read_json_body(request: Request) -> Dict[str, Any]:
    """
    Request JSON as a dict. Empty, malformed or non-object bodies read as {}
    so that presence validation reports every required field.
    """
    raw = await request.body()
    if not raw:
        return {}
    try:
        body = json.loads(raw)
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def require_fields_or_400(body: Mapping[str, Any], *fields: str) -> None:
    """
    Presence check only: no type or format validation.
    Raises MissingFieldsError (HTTP 400) naming every missing field.
    """
    missing = [f for f in fields if _is_blank(body.get(f))]
    if missing:
        raise MissingFieldsError(missing)
