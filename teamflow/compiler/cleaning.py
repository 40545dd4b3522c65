"""Strip editor bookkeeping from node data and documents before saving."""

from typing import Any

from teamflow.models.canvas_graph import EDITOR_ONLY_KEYS


def clean_node_data(data: dict[str, Any]) -> dict[str, Any]:
    """Copy of node data without editor-only keys (one level)."""
    return {key: value for key, value in data.items() if key not in EDITOR_ONLY_KEYS}


def clean_document(value: Any) -> Any:
    """Recursively drop editor-only keys from a JSON-like document."""
    if isinstance(value, list):
        return [clean_document(item) for item in value]
    if isinstance(value, dict):
        return {
            key: clean_document(item)
            for key, item in value.items()
            if key not in EDITOR_ONLY_KEYS
        }
    return value
