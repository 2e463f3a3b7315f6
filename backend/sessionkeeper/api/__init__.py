from flask import request

from sessionkeeper.errors import ValidationError


def json_body() -> dict:
    """The request's JSON object; an absent body reads as ``{}``."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data
