"""REST routes for the managed entities.

Every handler acts as the authenticated user; the services enforce that the
user is a stakeholder of whatever they touch.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError
from starlette.authentication import requires
from starlette.responses import JSONResponse
from starlette.routing import Route

from coach_realtime.domain.errors import NotFoundError, PermissionDeniedError

if TYPE_CHECKING:
    from starlette.requests import Request

    from coach_realtime.domain.ports import MessagingService, SharedEntityService

logger = logging.getLogger(__name__)


async def read_json_object(request: Request) -> dict[str, Any]:
    """Read the request body, which must be a JSON object.

    Raises:
        ValueError: If the body is not valid JSON or not an object.
    """
    body = await request.json()
    if not isinstance(body, dict):
        raise ValueError("request body must be a JSON object")
    return body


def current_user_id(request: Request) -> str:
    return str(request.user.identity)


def entity_routes(prefix: str, service: SharedEntityService[Any]) -> list[Route]:
    """Build list/create/get/update/delete routes for one collection.

    Args:
        prefix: URL prefix, e.g. ``/api/sessions``.
        service: CRUD service for the collection.
    """
    name = service.entity_type.value

    @requires("authenticated", status_code=401)
    async def list_entities(request: Request) -> JSONResponse:
        entities = await service.list_for_user(current_user_id(request))
        return JSONResponse([entity.to_json() for entity in entities])

    @requires("authenticated", status_code=401)
    async def create_entity(request: Request) -> JSONResponse:
        data = await read_json_object(request)
        entity = await service.create(current_user_id(request), data)
        return JSONResponse(entity.to_json(), status_code=201)

    @requires("authenticated", status_code=401)
    async def get_entity(request: Request) -> JSONResponse:
        entity = await service.get_for_user(
            request.path_params["entity_id"], current_user_id(request)
        )
        return JSONResponse(entity.to_json())

    @requires("authenticated", status_code=401)
    async def update_entity(request: Request) -> JSONResponse:
        changes = await read_json_object(request)
        entity = await service.update(
            request.path_params["entity_id"], current_user_id(request), changes
        )
        return JSONResponse(entity.to_json())

    @requires("authenticated", status_code=401)
    async def delete_entity(request: Request) -> JSONResponse:
        entity = await service.delete(request.path_params["entity_id"], current_user_id(request))
        return JSONResponse({"message": f"{name} removed", "id": entity.id})

    return [
        Route(prefix, list_entities, methods=["GET"], name=f"list_{name}s"),
        Route(prefix, create_entity, methods=["POST"], name=f"create_{name}"),
        Route(f"{prefix}/{{entity_id}}", get_entity, methods=["GET"], name=f"get_{name}"),
        Route(f"{prefix}/{{entity_id}}", update_entity, methods=["PUT"], name=f"update_{name}"),
        Route(
            f"{prefix}/{{entity_id}}", delete_entity, methods=["DELETE"], name=f"delete_{name}"
        ),
    ]


def messaging_routes(service: MessagingService) -> list[Route]:
    """Build the conversation and message routes."""

    @requires("authenticated", status_code=401)
    async def list_conversations(request: Request) -> JSONResponse:
        conversations = await service.list_conversations(current_user_id(request))
        return JSONResponse([conversation.to_json() for conversation in conversations])

    @requires("authenticated", status_code=401)
    async def find_or_create_conversation(request: Request) -> JSONResponse:
        data = await read_json_object(request)
        participant_id = data.get("participantId")
        if not isinstance(participant_id, str):
            raise ValueError("participantId is required")
        conversation, created = await service.find_or_create_conversation(
            current_user_id(request), participant_id
        )
        return JSONResponse(conversation.to_json(), status_code=201 if created else 200)

    @requires("authenticated", status_code=401)
    async def list_messages(request: Request) -> JSONResponse:
        messages = await service.list_messages(
            request.path_params["conversation_id"], current_user_id(request)
        )
        return JSONResponse([message.to_json() for message in messages])

    @requires("authenticated", status_code=401)
    async def post_message(request: Request) -> JSONResponse:
        data = await read_json_object(request)
        content = data.get("content")
        if not isinstance(content, str):
            raise ValueError("content is required")
        message = await service.post_message(
            request.path_params["conversation_id"], current_user_id(request), content
        )
        return JSONResponse(message.to_json(), status_code=201)

    @requires("authenticated", status_code=401)
    async def mark_read(request: Request) -> JSONResponse:
        message = await service.mark_read(
            request.path_params["message_id"], current_user_id(request)
        )
        return JSONResponse(message.to_json())

    return [
        Route("/api/conversations", list_conversations, methods=["GET"]),
        Route(
            "/api/conversations/find-or-create", find_or_create_conversation, methods=["POST"]
        ),
        Route(
            "/api/conversations/{conversation_id}/messages", list_messages, methods=["GET"]
        ),
        Route(
            "/api/conversations/{conversation_id}/messages", post_message, methods=["POST"]
        ),
        Route("/api/messages/{message_id}/read", mark_read, methods=["POST"]),
    ]


async def not_found(_request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse({"error": str(exc)}, status_code=404)


async def permission_denied(_request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse({"error": str(exc)}, status_code=403)


async def validation_failed(_request: Request, exc: Exception) -> JSONResponse:
    if isinstance(exc, ValidationError):
        details = exc.errors(include_url=False, include_context=False, include_input=False)
        return JSONResponse({"error": "validation failed", "details": details}, status_code=400)
    if isinstance(exc, json.JSONDecodeError):
        return JSONResponse({"error": "request body is not valid JSON"}, status_code=400)
    return JSONResponse({"error": str(exc)}, status_code=400)


# Maps domain errors to HTTP responses. pydantic's ValidationError and
# json.JSONDecodeError are ValueErrors, so one handler covers all bad input.
EXCEPTION_HANDLERS = {
    NotFoundError: not_found,
    PermissionDeniedError: permission_denied,
    ValueError: validation_failed,
}
