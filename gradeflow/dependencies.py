"""
FastAPI dependencies: service lookup, identity resolution and body parsing.

Bodies are read inside handlers, after authorization, so an actor without the
required role gets 403 whatever the payload looks like.
"""
from __future__ import annotations

from typing import Optional, Type, TypeVar

from fastapi import Depends, Request
from pydantic import BaseModel, ValidationError
from starlette.datastructures import FormData, UploadFile

from .blob_store import FileUpload
from .errors import InvalidInput
from .identity import Actor, Identity, resolve_actor
from .services import Services
from .utils.auth import extract_bearer_token

M = TypeVar("M", bound=BaseModel)


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_identity(request: Request, services: Services = Depends(get_services)) -> Identity:
    token = extract_bearer_token(request.headers)
    identity = services.identity.verify(token)
    request.state.identity = identity
    return identity


def get_actor(
    request: Request,
    identity: Identity = Depends(get_identity),
    services: Services = Depends(get_services),
) -> Actor:
    actor = resolve_actor(identity, services.repos.users.get(identity.user_id))
    request.state.actor = actor
    return actor


def describe_validation_error(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(p) for p in error.get("loc", ()) if p != "body")
        parts.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return "Invalid request: " + "; ".join(parts)


async def read_json(request: Request, model: Type[M]) -> M:
    try:
        body = await request.json()
    except ValueError as e:
        raise InvalidInput("Request body must be valid JSON") from e
    if not isinstance(body, dict):
        raise InvalidInput("Request body must be a JSON object")
    try:
        return model.model_validate(body)
    except ValidationError as e:
        raise InvalidInput(describe_validation_error(e)) from e


def form_text(form: FormData, name: str) -> Optional[str]:
    value = form.get(name)
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return None


async def form_upload(form: FormData, name: str = "file") -> Optional[FileUpload]:
    item = form.get(name)
    if not isinstance(item, UploadFile):
        return None
    content = await item.read()
    return FileUpload(
        filename=item.filename or "",
        content=content,
        content_type=item.content_type or "application/octet-stream",
    )
