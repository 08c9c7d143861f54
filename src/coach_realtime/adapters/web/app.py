"""Starlette application factory."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.authentication import AuthenticationMiddleware
from starlette.middleware.cors import CORSMiddleware
from starlette.routing import WebSocketRoute

from coach_realtime.adapters.auth import BearerTokenBackend, TokenService, on_auth_error
from coach_realtime.adapters.web.endpoints import (
    EXCEPTION_HANDLERS,
    RealtimeEndpoint,
    admin_routes,
    entity_routes,
    messaging_routes,
)
from coach_realtime.adapters.web.rate_limit_middleware import RateLimitMiddleware

if TYPE_CHECKING:
    from coach_realtime.adapters.config import AppConfig
    from coach_realtime.adapters.web.connections import (
        ConnectionDirectory,
        ConnectionLifecycleHandler,
    )
    from coach_realtime.adapters.web.presence import PresenceRegistry
    from coach_realtime.domain.ports import MessagingService, SharedEntityService

logger = logging.getLogger(__name__)


def create_app(
    config: AppConfig,
    tokens: TokenService,
    sessions: SharedEntityService[Any],
    invoices: SharedEntityService[Any],
    messaging: MessagingService,
    registry: PresenceRegistry,
    directory: ConnectionDirectory,
    handler: ConnectionLifecycleHandler,
) -> Starlette:
    """Build the ASGI application.

    Middleware runs outermost first: CORS, then authentication, then rate
    limiting keyed by the authenticated user.
    """
    realtime = RealtimeEndpoint(config, handler)
    routes = [
        *entity_routes("/api/sessions", sessions),
        *entity_routes("/api/invoices", invoices),
        *messaging_routes(messaging),
        *admin_routes(config, registry, directory, handler),
        WebSocketRoute(config.ws_path, realtime.handle, name="realtime"),
    ]
    middleware = [
        Middleware(
            CORSMiddleware,
            allow_origins=[config.frontend_url],
            allow_methods=["GET", "POST", "PUT", "DELETE"],
            allow_headers=["Authorization", "Content-Type"],
            allow_credentials=True,
        ),
        Middleware(
            AuthenticationMiddleware,
            backend=BearerTokenBackend(tokens),
            on_error=on_auth_error,
        ),
    ]
    if config.rate_limit_per_minute > 0:
        middleware.append(
            Middleware(RateLimitMiddleware, requests_per_minute=config.rate_limit_per_minute)
        )
    else:
        logger.warning("Rate limiting disabled")

    logger.info(f"Live connections served at {config.ws_path}, CORS origin {config.frontend_url}")
    return Starlette(
        routes=routes,
        middleware=middleware,
        exception_handlers=EXCEPTION_HANDLERS,
    )
