"""Deterministic JSON serialization for analysis results.

Identical results always produce byte-identical JSON (sorted keys, stable
indentation), so serialized output can be diffed, cached and snapshot
tested.
"""

from __future__ import annotations

import json
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

M = TypeVar("M", bound=BaseModel)


def to_jsonable(result: Any) -> Any:
    """Convert a result (model, list of models, plain data or ``None``) to JSON types."""
    if isinstance(result, BaseModel):
        return result.model_dump(mode="json")
    if isinstance(result, (list, tuple)):
        return [to_jsonable(item) for item in result]
    if isinstance(result, dict):
        return {str(k): to_jsonable(v) for k, v in result.items()}
    return result


def serialize_result(result: Any) -> str:
    """Serialize any engine result to a deterministic JSON string."""
    # ``model_dump_json`` has no ``sort_keys``; go through a dict.
    return json.dumps(to_jsonable(result), indent=2, sort_keys=True, ensure_ascii=False)


def deserialize_result(json_str: str, model: type[M]) -> M:
    """Hydrate a serialized result back into *model*.

    Raises
    ------
    pydantic.ValidationError
        If the JSON does not conform to *model*.
    """
    return model.model_validate_json(json_str)


def validate_result_schema(json_str: str, model: type[BaseModel]) -> list[str]:
    """Validate a JSON string against *model* without raising."""
    try:
        model.model_validate_json(json_str)
    except ValidationError as exc:
        return [
            f"{'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}" if err.get("loc") else err["msg"]
            for err in exc.errors()
        ]
    except (ValueError, TypeError) as exc:
        return [f"Invalid JSON: {exc}"]

    return []
