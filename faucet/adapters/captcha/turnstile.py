"""Cloudflare Turnstile verifier.

See https://developers.cloudflare.com/turnstile/get-started/server-side-validation/
"""

from __future__ import annotations

import logging

import httpx

from faucet.adapters.captcha.base import AbstractCaptchaVerifier, CaptchaResult

logger = logging.getLogger(__name__)

MISSING_INPUT_RESPONSE = "missing-input-response"
VERIFICATION_ERROR = "verification-error"


class TurnstileCaptchaVerifier(AbstractCaptchaVerifier):
    """Verifies Turnstile tokens against the siteverify endpoint."""

    def __init__(
        self,
        *,
        enabled: bool,
        secret_key: str | None,
        site_key: str = "",
        verify_url: str = "https://challenges.cloudflare.com/turnstile/v0/siteverify",
        timeout_seconds: float = 5.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the verifier.

        Args:
            enabled: When False every token is accepted without a network call.
            secret_key: Turnstile secret key.
            site_key: Public site key served to the frontend.
            verify_url: Siteverify endpoint.
            timeout_seconds: Timeout for the verification request.
            client: Optional preconfigured HTTP client (tests).
        """
        self._enabled = enabled
        self._secret_key = secret_key or ""
        self._site_key = site_key
        self.verify_url = verify_url
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)

        if enabled and not secret_key:
            logger.warning("captcha.secret_missing", extra={"provider": "turnstile"})

        logger.info("captcha.initialized", extra={"enabled": enabled, "provider": "turnstile"})

    def is_enabled(self) -> bool:
        return self._enabled

    def get_site_key(self) -> str:
        return self._site_key

    async def verify(self, token: str | None, origin_ip: str | None = None) -> CaptchaResult:
        if not self._enabled:
            logger.debug("captcha.skipped", extra={"reason": "disabled"})
            return CaptchaResult(success=True)

        if not token:
            logger.warning("captcha.missing_token")
            return CaptchaResult(success=False, error_codes=[MISSING_INPUT_RESPONSE])

        form = {"secret": self._secret_key, "response": token}
        if origin_ip:
            form["remoteip"] = origin_ip

        try:
            response = await self._client.post(self.verify_url, data=form)
            response.raise_for_status()
            body = response.json()
            success = body["success"] is True
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as exc:
            logger.error(
                "captcha.verification_error",
                extra={"error_type": type(exc).__name__, "error": str(exc)},
            )
            return CaptchaResult(success=False, error_codes=[VERIFICATION_ERROR])

        result = CaptchaResult(
            success=success,
            error_codes=list(body.get("error-codes") or []),
            hostname=body.get("hostname"),
            challenge_ts=body.get("challenge_ts"),
            action=body.get("action"),
        )

        if result.success:
            logger.info(
                "captcha.verified",
                extra={"hostname": result.hostname, "captcha_action": result.action},
            )
        else:
            logger.warning("captcha.rejected", extra={"error_codes": result.error_codes})
        return result

    async def close(self) -> None:
        await self._client.aclose()
