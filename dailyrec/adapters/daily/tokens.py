"""Self-signed Daily meeting tokens.

Meeting tokens are HS256 JWTs signed with the domain API key, so they can
be minted locally without a round trip to the REST API.
"""

import time
from typing import Any

import jwt

TOKEN_TTL_SECONDS = 2 * 60 * 60


def build_meeting_token_claims(
    room_name: str,
    domain_id: str,
    user_name: str,
    is_owner: bool,
    now: int | None = None,
    ttl_seconds: int = TOKEN_TTL_SECONDS,
) -> dict[str, Any]:
    """Build the claim set for a meeting token.

    Owners may start cloud recordings (sr/er claims); the built-in
    recording UI is hidden for everyone.
    """
    if not room_name or not domain_id:
        raise ValueError("room_name and domain_id are required for a meeting token")

    issued_at = int(time.time()) if now is None else now
    claims: dict[str, Any] = {
        "r": room_name,
        "d": domain_id,
        "u": user_name,
        "o": is_owner,
        "iat": issued_at,
        "exp": issued_at + ttl_seconds,
        "enable_recording_ui": False,
        "p": {
            "hasPresence": True,
            "canSend": True,
            "canReceive": {"base": True},
        },
    }
    if is_owner:
        claims["sr"] = True
        claims["er"] = "cloud"
    return claims


def generate_meeting_token(
    api_key: str,
    room_name: str,
    domain_id: str,
    user_name: str,
    is_owner: bool = False,
    now: int | None = None,
    ttl_seconds: int = TOKEN_TTL_SECONDS,
) -> str:
    """Sign a meeting token with the API key."""
    claims = build_meeting_token_claims(
        room_name, domain_id, user_name, is_owner, now=now, ttl_seconds=ttl_seconds
    )
    return jwt.encode(claims, api_key, algorithm="HS256")


__all__ = ["TOKEN_TTL_SECONDS", "build_meeting_token_claims", "generate_meeting_token"]
