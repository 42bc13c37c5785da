"""Signed tokens embedded in the assessor's decision links."""

import datetime
import logging
from typing import Optional
from urllib.parse import urlencode

import jwt
from pydantic import BaseModel

from evalent.libs.config_loader import ConfigType, get_config, get_secret

LOG = logging.getLogger(__name__)

ISSUER = "evalent"
ALGORITHM = "HS256"
DEFAULT_TTL_DAYS = 30

DECISIONS = ("admit", "admit_with_support", "waitlist", "reject", "request_info")


class DecisionTokenPayload(BaseModel):
    sub: str
    email: str
    school_id: str = ""
    student_name: str = ""
    grade: int


def _signing_secret(configs: ConfigType) -> str:
    secret = get_secret("email.decision_secret", "JWT_SIGNING_SECRET", configs)
    if not secret:
        raise RuntimeError("JWT_SIGNING_SECRET not configured")
    return secret


def create_decision_token(payload: DecisionTokenPayload, configs: ConfigType,
                          now: Optional[datetime.datetime] = None) -> str:
    """Sign a decision token that expires after ``email.token_ttl_days`` (30 by default)."""
    now = now or datetime.datetime.now(datetime.timezone.utc)
    ttl_days = get_config("email.token_ttl_days", configs, default=DEFAULT_TTL_DAYS)
    claims = payload.model_dump()
    claims.update({
        "iss": ISSUER,
        "iat": now,
        "exp": now + datetime.timedelta(days=ttl_days),
    })
    return jwt.encode(claims, _signing_secret(configs), algorithm=ALGORITHM)


def verify_decision_token(token: str, configs: ConfigType) -> DecisionTokenPayload:
    """
    Verify and decode a decision token.

    Raises:
        jwt.ExpiredSignatureError: If the token has expired
        jwt.InvalidTokenError: If the token is tampered with or has the wrong issuer
    """
    claims = jwt.decode(token, _signing_secret(configs), algorithms=[ALGORITHM], issuer=ISSUER)
    return DecisionTokenPayload.model_validate(claims)


def decision_url(app_url: str, token: str, decision: str) -> str:
    if decision not in DECISIONS:
        raise ValueError(f"Unknown decision {decision!r}")
    return f"{app_url.rstrip('/')}/api/decision?" + urlencode({"token": token, "decision": decision})
