from __future__ import annotations

from typing import Any

from flask import jsonify, request


def request_payload() -> dict[str, Any]:
    """Body of the current request as a dict, whether it was posted as JSON or as a form."""
    if request.is_json:
        data = request.get_json(silent=True)
        return data if isinstance(data, dict) else {}
    return request.form.to_dict()


def clean(value: Any) -> str | None:
    """Strip strings; blank or missing values become None."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def json_error(message: str, status: int):
    return jsonify({"success": False, "error": message}), status
