"""
Common dependencies shared across routers.

Authentication is handled upstream; the gateway forwards the tenant and
the acting user as headers.
"""

from typing import Optional

from fastapi import Header, Request, status

from catalog_shared.config.logging import get_logger, mask_email
from catalog_shared.infrastructure.correlation import get_request_id
from catalog_shared.schemas import ActorContext
from catalog_shared.utils.exceptions import AppException

logger = get_logger(__name__)


def current_actor(
    request: Request,
    x_organization_id: Optional[str] = Header(default=None),
    x_actor_id: Optional[str] = Header(default=None),
    x_actor_email: Optional[str] = Header(default=None),
) -> ActorContext:
    """Build the ActorContext for the current request."""
    organization_id = (x_organization_id or "").strip()
    if not organization_id:
        raise AppException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            code="organizationRequired",
            detail="X-Organization-Id header is required",
            path=request.url.path,
        )

    request_id = getattr(request.state, "request_id", None) or get_request_id()
    logger.debug(
        "Actor resolved",
        organization_id=organization_id,
        actor_id=x_actor_id,
        actor_email=mask_email(x_actor_email),
    )
    return ActorContext(
        organization_id=organization_id,
        actor_id=x_actor_id or None,
        actor_email=x_actor_email or None,
        request_id=request_id,
    )
