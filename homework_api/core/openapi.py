"""OpenAPI metadata and customization utilities.

Enriches the generated schema with tags metadata and documents the
Retry-After header on every rate-limited (429) response. Keeps
documentation concerns out of the app factory.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

_TAGS = [
    {
        "name": "Chat",
        "description": "Rate-limited proxy to the upstream chat-completion API.",
    },
    {
        "name": "Health",
        "description": "Liveness checks (not rate limited).",
    },
]

_RETRY_AFTER_HEADER = {
    "description": "Seconds to wait before retrying.",
    "schema": {"type": "integer", "minimum": 1},
}


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add tags and 429 headers."""

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        schema = original_openapi()

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        for tag in _TAGS:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        for methods in schema.get("paths", {}).values():
            for method_obj in methods.values():
                if not isinstance(method_obj, dict):
                    continue
                throttled = method_obj.get("responses", {}).get("429")
                if throttled is not None:
                    throttled.setdefault("headers", {})["Retry-After"] = _RETRY_AFTER_HEADER

        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
