"""
Helpers for multipart endpoints that carry a JSON document in a form field
"""

from typing import Any, Iterable, List, Type, TypeVar

from pydantic import BaseModel, ValidationError

from campus_events.core.errors import ValidationFailed

M = TypeVar("M", bound=BaseModel)


def error_details(errors: Iterable[dict]) -> List[dict]:
    """Reduce pydantic error entries to JSON-safe location and message pairs"""
    return [
        {"field": ".".join(str(p) for p in e.get("loc", ()) if p != "body"), "message": e.get("msg", "")}
        for e in errors
    ]


def parse_json_form(model: Type[M], raw: Any) -> M:
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        raise ValidationFailed("Missing form field 'data'")
    try:
        return model.model_validate_json(raw)
    except ValidationError as e:
        raise ValidationFailed("Invalid request", details=error_details(e.errors()))
