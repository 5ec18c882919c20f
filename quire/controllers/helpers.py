"""Shared helpers for editor API controllers."""

from typing import Any, TypeVar
from uuid import UUID

import pydantic
from litestar import Request
from litestar.exceptions import SerializationException

from quire.lib.exceptions import ValidationError

WORKSPACE_HEADER = "x-workspace-id"
USER_HEADER = "x-user-id"

M = TypeVar("M", bound=pydantic.BaseModel)


def parse_uuid(value: str | None, name: str) -> UUID | None:
    if value is None or value == "":
        return None
    try:
        return UUID(value)
    except ValueError as exc:
        raise ValidationError(f"'{name}' must be a UUID", details={name: value}) from exc


def provide_workspace_id(request: Request) -> UUID:
    """Tenant of the request, set upstream by the auth layer."""
    workspace_id = parse_uuid(request.headers.get(WORKSPACE_HEADER), "workspace")
    if workspace_id is None:
        raise ValidationError("Workspace required")
    return workspace_id


def provide_author_id(request: Request) -> str | None:
    return request.headers.get(USER_HEADER) or None


async def parse_body(request: Request, model: type[M]) -> M:
    """Decode the JSON body into ``model``; an empty body counts as ``{}``."""
    try:
        data = await request.json()
    except SerializationException as exc:
        raise ValidationError("Request body is not valid JSON") from exc
    return validate(model, data if data is not None else {})


def validate(model: type[M], data: Any) -> M:
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as exc:
        raise ValidationError(
            "Invalid request body",
            details=exc.errors(include_url=False, include_context=False),
        ) from exc
