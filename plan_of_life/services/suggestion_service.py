from __future__ import annotations

import logging
import time

import httpx

from plan_of_life.errors import ServiceError
from plan_of_life.services.insight_service import InsightStats
from plan_of_life.settings import Settings

logger = logging.getLogger(__name__)

TOKEN_REFRESH_MARGIN_SECONDS = 60

SYSTEM_PROMPT = """You are a compassionate spiritual advisor helping someone maintain their daily spiritual practices.
Provide ONE specific, actionable suggestion in 1-2 sentences.
Be concrete and practical, not general or vague."""

USER_PROMPT = """Over the past {days} days, this person has completed {overall_rate}% of their spiritual norms.
Their least consistent practices are: {weakest_norms}.
Give one specific actionable tip to improve."""


def _raise_for_status(response: httpx.Response, context: str) -> None:
    if response.is_success:
        return
    logger.error("%s failed: %s %s", context, response.status_code, response.text[:500])
    if response.status_code == 429:
        raise ServiceError("Rate limit exceeded, please try again in a moment.", kind="rate_limited", status_code=429)
    if response.status_code == 402:
        raise ServiceError("AI credits exhausted, please check the billing settings.", kind="quota_exhausted", status_code=402)
    raise ServiceError(f"{context} failed", kind="upstream", status_code=502)


class TokenProvider:
    """OAuth2 client-credentials token, cached until shortly before it expires."""

    def __init__(
        self,
        client_id: str | None,
        client_secret: str | None,
        token_url: str,
        timeout: float = 20.0,
        transport: httpx.AsyncBaseTransport | None = None,
        clock=time.time,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.token_url = token_url
        self.timeout = timeout
        self._transport = transport
        self._clock = clock
        self._access_token: str | None = None
        self._expires_at: float = 0.0

    def _cached_token(self) -> str | None:
        if self._access_token and self._expires_at > self._clock() + TOKEN_REFRESH_MARGIN_SECONDS:
            return self._access_token
        return None

    async def get_token(self) -> str:
        if not self.client_id or not self.client_secret:
            raise ServiceError(
                "GLOO_CLIENT_ID and GLOO_CLIENT_SECRET must be configured",
                kind="config",
                status_code=503,
            )
        cached = self._cached_token()
        if cached:
            return cached
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    self.token_url,
                    auth=(self.client_id, self.client_secret),
                    data={"grant_type": "client_credentials", "scope": "api/access"},
                )
        except httpx.HTTPError as exc:
            logger.error("Token request failed: %s", exc)
            raise ServiceError("Failed to get access token", kind="upstream") from exc
        _raise_for_status(response, "Token request")
        try:
            token_data = response.json()
            access_token = str(token_data["access_token"])
            expires_in = int(token_data.get("expires_in", 3600) or 3600)
        except (KeyError, TypeError, ValueError) as exc:
            raise ServiceError("Malformed token response", kind="upstream") from exc
        self._access_token = access_token
        self._expires_at = self._clock() + expires_in
        logger.info("Refreshed suggestion service token, valid for %ss", expires_in)
        return access_token

    def invalidate(self) -> None:
        self._access_token = None
        self._expires_at = 0.0


class SuggestionGenerator:
    def __init__(
        self,
        token_provider: TokenProvider,
        chat_url: str,
        model: str,
        max_tokens: int = 80,
        timeout: float = 20.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.token_provider = token_provider
        self.chat_url = chat_url
        self.model = model
        self.max_tokens = max_tokens
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings, transport: httpx.AsyncBaseTransport | None = None) -> "SuggestionGenerator":
        provider = TokenProvider(
            settings.gloo_client_id,
            settings.gloo_client_secret,
            settings.gloo_token_url,
            timeout=settings.suggestion_timeout_seconds,
            transport=transport,
        )
        return cls(
            provider,
            settings.gloo_chat_url,
            settings.suggestion_model,
            max_tokens=settings.suggestion_max_tokens,
            timeout=settings.suggestion_timeout_seconds,
            transport=transport,
        )

    def build_messages(self, stats: InsightStats) -> list[dict]:
        user_prompt = USER_PROMPT.format(
            days=stats.days,
            overall_rate=stats.overall_rate,
            weakest_norms=stats.weakest_norms_text,
        )
        return [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": user_prompt},
        ]

    async def generate(self, stats: InsightStats) -> str:
        access_token = await self.token_provider.get_token()
        body = {
            "model": self.model,
            "messages": self.build_messages(stats),
            "max_tokens": self.max_tokens,
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    self.chat_url,
                    headers={"Authorization": f"Bearer {access_token}"},
                    json=body,
                )
        except httpx.HTTPError as exc:
            logger.error("Chat completion request failed: %s", exc)
            raise ServiceError("Suggestion service unreachable", kind="upstream") from exc
        if response.status_code == 401:
            self.token_provider.invalidate()
        _raise_for_status(response, "Chat completion")
        try:
            data = response.json()
            return data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            raise ServiceError("Malformed suggestion response", kind="upstream") from exc
