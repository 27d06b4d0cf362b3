# Overview: Request parsing shared by the API blueprints.

from flask import request

from ..errors import ValidationError


def request_body() -> dict:
    """JSON body as a dict; a missing body reads as {}."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")
    return data


def request_seller_id(data: dict | None = None) -> int:
    """seller_id from the JSON body, falling back to the query string."""
    raw = (data or {}).get("seller_id")
    if raw is None:
        raw = request.args.get("seller_id")
    if raw is None or raw == "":
        raise ValidationError("seller_id is required")
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValidationError("seller_id must be an integer")
