"""
Custom JSON encoder for conversion results.

Handles serialization of Pydantic models (GraphNode, GraphEdge, ImportResult,
ValidationResult) and enums to JSON-compatible values for the CLI.
"""

import json
from enum import Enum
from typing import Any
from datetime import datetime


class PydanticJSONEncoder(json.JSONEncoder):
    """
    JSON encoder that handles Pydantic models and other non-serializable objects.

    Automatically converts:
    - Pydantic models to dicts via model_dump(mode="json")
    - Enums to their values
    - Datetime objects to ISO format strings
    """

    def default(self, obj: Any) -> Any:
        """
        Convert non-serializable objects to JSON-serializable format.

        Args:
            obj: Object to serialize

        Returns:
            JSON-serializable representation of the object
        """
        if hasattr(obj, 'model_dump'):
            return obj.model_dump(mode="json", exclude_none=True)

        if isinstance(obj, Enum):
            return obj.value

        if isinstance(obj, datetime):
            return obj.isoformat()

        return super().default(obj)


def json_dump_safe(obj: Any, fp: Any, **kwargs) -> None:
    """
    Serialize object to a JSON file, handling Pydantic models.

    Args:
        obj: Object to serialize
        fp: File-like object to write to
        **kwargs: Additional arguments for json.dump
    """
    json.dump(obj, fp, cls=PydanticJSONEncoder, ensure_ascii=False, **kwargs)


def json_dumps_safe(obj: Any, **kwargs) -> str:
    """
    Serialize object to a JSON string, handling Pydantic models.

    Args:
        obj: Object to serialize
        **kwargs: Additional arguments for json.dumps

    Returns:
        JSON string representation of the object
    """
    return json.dumps(obj, cls=PydanticJSONEncoder, ensure_ascii=False, **kwargs)
