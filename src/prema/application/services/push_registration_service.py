"""Push notification registration.

Hey future me - three steps, in order: ask the OS for permission, get the device push
token, hand it to the backend. Every step can fail for boring reasons (simulator
without push, user tapped "Don't allow", backend hiccup) and NONE of them may break
login. So register() never raises - it returns the token on success and None
otherwise, and logs why.
"""

import logging

from prema.domain.ports import IPushTokenProvider
from prema.infrastructure.integrations import PremaApiClient, RequestContext

logger = logging.getLogger(__name__)


class PushRegistrationService:
    """Registers the device push token for the logged-in user."""

    def __init__(
        self,
        client: PremaApiClient,
        push_provider: IPushTokenProvider | None = None,
    ) -> None:
        self._client = client
        self._push_provider = push_provider

    @property
    def is_available(self) -> bool:
        """True when the host shell supplied a push token provider."""
        return self._push_provider is not None

    async def register(self, ctx: RequestContext) -> str | None:
        """Run permission -> token -> backend registration.

        Args:
            ctx: Credentials of the user the token belongs to

        Returns:
            The registered push token, or None if any step did not succeed
        """
        if self._push_provider is None:
            logger.debug("No push token provider configured, skipping registration")
            return None

        try:
            granted = await self._push_provider.request_permission()
            if not granted:
                logger.info("Push notification permission not granted")
                return None

            push_token = await self._push_provider.get_push_token()
            if not push_token:
                logger.warning("Push token provider returned no token")
                return None

            await self._client.register_push_token(ctx, push_token)
        except Exception as e:
            logger.warning("Push notification registration failed: %s", e)
            return None

        logger.info("Push token registered")
        return push_token
