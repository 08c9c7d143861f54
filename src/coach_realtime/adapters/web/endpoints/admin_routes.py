"""Operational endpoints: health check and admin maintenance.

Admin endpoints are guarded by a shared secret provided via
ADMIN_COMMAND_TOKEN. They are meant for use from curl and are not part of
the client API.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from starlette.responses import JSONResponse, Response
from starlette.routing import Route

if TYPE_CHECKING:
    from starlette.requests import Request

    from coach_realtime.adapters.config import AppConfig
    from coach_realtime.adapters.web.connections import (
        ConnectionDirectory,
        ConnectionLifecycleHandler,
    )
    from coach_realtime.adapters.web.presence import PresenceRegistry

logger = logging.getLogger(__name__)


def check_admin_token(request: Request, config: AppConfig) -> JSONResponse | None:
    """Verify the X-Admin-Token header.

    Returns:
        An error response when the request is not allowed, otherwise None.
    """
    expected_token = config.admin_command_token
    if not expected_token:
        return JSONResponse(
            {"error": "admin endpoint disabled - ADMIN_COMMAND_TOKEN not configured"},
            status_code=503,
        )

    provided_token = request.headers.get("X-Admin-Token", "")
    if provided_token != expected_token:
        logger.warning(f"Unauthorized attempt to call admin endpoint {request.url.path}")
        return JSONResponse({"error": "forbidden"}, status_code=403)
    return None


def admin_routes(
    config: AppConfig,
    registry: PresenceRegistry,
    directory: ConnectionDirectory,
    handler: ConnectionLifecycleHandler,
) -> list[Route]:
    """Build the health check and admin routes."""

    async def healthz(_request: Request) -> Response:
        """Health check endpoint for load balancers and monitoring."""
        return Response(content="Ok", media_type="text/plain")

    async def presence(request: Request) -> JSONResponse:
        """List who is connected, and on which connection."""
        denied = check_admin_token(request, config)
        if denied is not None:
            return denied

        connections = {connection.connection_id: connection for connection in directory.all()}
        records = []
        for record in registry.records():
            connection = connections.get(record.connection_id)
            records.append(
                {
                    "userId": record.user_id,
                    "connectionId": record.connection_id,
                    "ip": connection.info.ip if connection else None,
                    "pending": connection.pending if connection else None,
                }
            )
        return JSONResponse(
            {
                "total_users": registry.get_total_count(),
                "open_connections": len(directory),
                "records": records,
            }
        )

    async def reset_connections(request: Request) -> JSONResponse:
        """Close every live connection and drop all presence records.

        Clients reconnect on their own and register again.
        """
        denied = check_admin_token(request, config)
        if denied is not None:
            return denied

        connections = directory.all()
        logger.info(f"Admin reset_connections: closing {len(connections)} connections")
        for connection in connections:
            handler.on_close(connection)
            await connection.close()

        # Records can only outlive their connection through a bug; drop them too.
        presence_removed = registry.clear()

        logger.info(
            "Admin reset_connections completed: "
            f"closed_connections={len(connections)}, presence_removed={presence_removed}"
        )
        return JSONResponse(
            {
                "status": "ok",
                "closed_connections": len(connections),
                "presence_removed": presence_removed,
            }
        )

    # Typical usage:
    #   curl -X POST https://coach.example.com/admin/reset-connections \
    #        -H "X-Admin-Token: $ADMIN_COMMAND_TOKEN"
    return [
        Route("/healthz", healthz, methods=["GET"]),
        Route("/admin/presence", presence, methods=["GET"]),
        Route("/admin/reset-connections", reset_connections, methods=["POST"]),
    ]
