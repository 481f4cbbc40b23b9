from __future__ import annotations

from typing import Any

import jwt

from mail_service.application.dto.principal import Principal
from mail_service.domain.value_objects.enums import PrincipalKind


def _principal_kind(payload: dict[str, Any]) -> PrincipalKind:
    raw = payload.get("kind", payload.get("role"))
    try:
        return PrincipalKind(raw)
    except ValueError:
        return PrincipalKind.USER


def _roles(payload: dict[str, Any]) -> list[str]:
    roles = payload.get("roles") or []
    if isinstance(roles, str):
        return [roles]
    return [str(r) for r in roles]


class HS256Verifier:
    """Verify storefront identity-provider JWTs signed with a shared HS256 secret.

    Storefront tokens carry no audience, so ``aud`` is not checked; ``sub`` is
    required. An empty secret rejects every token.
    """

    def __init__(self, secret: str, algorithm: str = "HS256") -> None:
        self._secret = secret
        self._algorithm = algorithm

    async def verify(self, token: str) -> Principal:
        if not self._secret:
            raise jwt.InvalidTokenError("JWT secret is not configured")
        payload = jwt.decode(
            token,
            self._secret,
            algorithms=[self._algorithm],
            options={"verify_aud": False, "require": ["sub"]},
        )
        return Principal(
            kind=_principal_kind(payload),
            subject_id=str(payload["sub"]),
            roles=_roles(payload),
        )
