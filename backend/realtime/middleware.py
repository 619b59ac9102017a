"""JWT authentication for dispatch and car WebSocket connections."""

import logging
from urllib.parse import parse_qs

from channels.db import database_sync_to_async
from channels.middleware import BaseMiddleware
from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import AccessToken

logger = logging.getLogger(__name__)


@database_sync_to_async
def member_for_token(raw_token: str):
    """Active member the access token belongs to, or AnonymousUser."""
    try:
        user_id = AccessToken(raw_token)["user_id"]
    except (TokenError, KeyError) as e:
        logger.debug("Rejected WebSocket token: %s", e)
        return AnonymousUser()

    member = get_user_model().objects.filter(id=user_id, is_active=True).first()
    return member or AnonymousUser()


class JWTAuthMiddleware(BaseMiddleware):
    """
    Sets scope["user"] from ?token=<access>. Consumers close anonymous
    connections.
    """

    async def __call__(self, scope, receive, send):
        params = parse_qs(scope.get("query_string", b"").decode())
        tokens = params.get("token")

        scope["user"] = await member_for_token(tokens[0]) if tokens else AnonymousUser()
        return await super().__call__(scope, receive, send)
