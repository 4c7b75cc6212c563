"""Factory for the captcha verifier."""

from faucet.adapters.captcha.base import AbstractCaptchaVerifier
from faucet.adapters.captcha.turnstile import TurnstileCaptchaVerifier
from faucet.core.config import CaptchaSettings, settings


def create_captcha_verifier(captcha_settings: CaptchaSettings | None = None) -> AbstractCaptchaVerifier:
    """Instantiate the Turnstile verifier from ``CAPTCHA_*`` settings."""
    cfg = captcha_settings or settings.captcha
    return TurnstileCaptchaVerifier(
        enabled=cfg.enabled,
        secret_key=cfg.secret_key.get_secret_value() if cfg.secret_key else None,
        site_key=cfg.site_key,
        verify_url=cfg.verify_url,
        timeout_seconds=cfg.timeout_seconds,
    )
