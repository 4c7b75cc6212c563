from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass(frozen=True)
class CaptchaResult:
    """Verdict returned by a captcha verifier."""

    success: bool
    error_codes: list[str] = field(default_factory=list)
    hostname: str | None = None
    challenge_ts: str | None = None
    action: str | None = None


class AbstractCaptchaVerifier(ABC):
    """Interface for proof-of-humanity token verification."""

    @abstractmethod
    async def verify(self, token: str | None, origin_ip: str | None = None) -> CaptchaResult:
        """Verify a token issued to the client.

        Never raises for remote failures; those are reported as an
        unsuccessful result so callers can fail closed.
        """
        ...

    @abstractmethod
    def is_enabled(self) -> bool:
        ...

    @abstractmethod
    def get_site_key(self) -> str:
        ...

    async def close(self) -> None:  # pragma: no cover - default no-op
        return None
