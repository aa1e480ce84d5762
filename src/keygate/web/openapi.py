from typing import Any

from fastapi import FastAPI
from fastapi.openapi.utils import get_openapi
from pydantic import BaseModel, Field

from keygate.config import Config
from keygate.core.modules.gate.extractors import API_KEY_HEADER, SESSION_TOKEN_HEADER


def set_custom_openapi(app: FastAPI, config: Config) -> None:
    def custom_openapi() -> dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema

        openapi_schema = get_openapi(
            title="keygate API",
            version="0.1.0",
            summary="Authentication gate for a local automation server",
            routes=app.routes,
        )

        # Add security schemes, listed in the order the gate consults them
        openapi_schema.setdefault("components", {})["securitySchemes"] = {
            "ApiKeyHeader": {
                "type": "apiKey",
                "in": "header",
                "name": API_KEY_HEADER,
                "description": "The server's API key",
            },
            "SessionCookie": {
                "type": "apiKey",
                "in": "cookie",
                "name": config.session_cookie_name,
                "description": "Session token set by login",
            },
            "SessionTokenHeader": {
                "type": "apiKey",
                "in": "header",
                "name": SESSION_TOKEN_HEADER,
                "description": "Session token for clients that cannot use cookies",
            },
        }

        # Apply security globally (will be overridden for public endpoints)
        openapi_schema["security"] = [
            {"ApiKeyHeader": []},
            {"SessionCookie": []},
            {"SessionTokenHeader": []},
        ]

        public_endpoints = {
            ("GET", "/api/auth/status"),
            ("POST", "/api/auth/login"),
            ("POST", "/api/auth/logout"),
            ("GET", "/health"),
        }

        for path, path_item in openapi_schema["paths"].items():
            for method, operation in path_item.items():
                if (method.upper(), path) in public_endpoints:
                    operation["security"] = []

        app.openapi_schema = openapi_schema
        return app.openapi_schema

    app.openapi = custom_openapi  # type: ignore[method-assign]


class ErrorResponse(BaseModel):
    """Standard error response format."""

    success: bool = Field(False, description="Always false for errors")
    error: str = Field(..., description="Human-readable error message")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"success": False, "error": "Authentication required."},
                {"success": False, "error": "Invalid API key."},
                {"success": False, "error": "API key is required."},
            ]
        }
    }
