from __future__ import annotations

from typing import Any, Dict

from flask import Request


def request_fields(request: Request) -> Dict[str, Any]:
    """Merge query-string and JSON-body inputs; the body wins on conflicts.

    GET requests may carry their inputs in the query string or in a JSON
    body, so both are read and the result is validated afterwards.
    """
    fields: Dict[str, Any] = dict(request.args.items())
    payload = request.get_json(silent=True)
    if isinstance(payload, dict):
        fields.update({key: value for key, value in payload.items() if value is not None})
    return fields
