"""Captcha adapter layer - proof-of-humanity verification."""

from faucet.adapters.captcha.base import AbstractCaptchaVerifier, CaptchaResult
from faucet.adapters.captcha.factory import create_captcha_verifier
from faucet.adapters.captcha.turnstile import TurnstileCaptchaVerifier

__all__ = [
    "AbstractCaptchaVerifier",
    "CaptchaResult",
    "TurnstileCaptchaVerifier",
    "create_captcha_verifier",
]
