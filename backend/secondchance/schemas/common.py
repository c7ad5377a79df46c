"""Shared API schemas: camelCase base model and the response envelope."""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """Base for API payloads: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ErrorBody(CamelModel):
    code: str
    message: str
    details: Any = None


class Envelope(CamelModel, Generic[T]):
    """Uniform response wrapper returned by every step endpoint."""

    success: bool
    status: str
    data: T | None = None
    error: ErrorBody | None = None


def ok(data: Any) -> dict:
    return {"success": True, "status": "success", "data": data}


def failure(code: str, message: str, details: Any = None) -> dict:
    return {
        "success": False,
        "status": "error",
        "error": {"code": code, "message": message, "details": details},
    }
