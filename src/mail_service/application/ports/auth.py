from __future__ import annotations

from typing import Protocol

from mail_service.application.dto.principal import Principal


class TokenVerifier(Protocol):
    """Resolves a bearer token to the calling principal; raises when it is invalid or expired."""

    async def verify(self, token: str) -> Principal: ...
