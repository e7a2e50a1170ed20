"""
Identity provider and agency context.

A Clerk session token is verified against the instance JWKS, its subject
is resolved to a user via the Backend API, and the user's primary email
is joined to the agency table.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence
import logging

import httpx
import jwt

from partner_portal.core.config import Settings
from partner_portal.core.errors import MSG_NO_EMAIL, ConfigurationError, UnauthorizedError
from partner_portal.datastore.models import Agency
from partner_portal.datastore.repositories import AgencyRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CurrentUser:
    id: str
    email_addresses: List[str] = field(default_factory=list)
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    @property
    def primary_email(self) -> Optional[str]:
        return self.email_addresses[0] if self.email_addresses else None

    @property
    def display_name(self) -> str:
        name = " ".join(p for p in (self.first_name, self.last_name) if p).strip()
        return name or (self.primary_email or "")


class IdentityProvider(Protocol):
    def current_user(self, token: Optional[str]) -> Optional[CurrentUser]:
        ...


def user_from_clerk(payload: Dict[str, Any]) -> CurrentUser:
    """Primary address first, the rest in the order Clerk lists them."""
    primary_id = payload.get("primary_email_address_id")
    addresses = payload.get("email_addresses") or []
    ordered = sorted(addresses, key=lambda a: a.get("id") != primary_id)
    return CurrentUser(
        id=payload.get("id", ""),
        email_addresses=[a["email_address"] for a in ordered if a.get("email_address")],
        first_name=payload.get("first_name"),
        last_name=payload.get("last_name"),
    )


class ClerkIdentityProvider:
    """Clerk-backed identity: RS256 session JWT + Backend API user lookup."""

    def __init__(
        self,
        secret_key: str,
        *,
        api_url: str = "https://api.clerk.com/v1",
        jwks_url: Optional[str] = None,
        authorized_parties: Sequence[str] = (),
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
        jwks_client: Optional[jwt.PyJWKClient] = None,
    ) -> None:
        if not secret_key:
            raise ConfigurationError("CLERK_SECRET_KEY is not defined in environment variables")
        self.api_url = api_url.rstrip("/")
        self.authorized_parties = set(authorized_parties)
        headers = {"Authorization": f"Bearer {secret_key}"}
        self.jwks_client = jwks_client or jwt.PyJWKClient(
            jwks_url or f"{self.api_url}/jwks", headers=headers, timeout=int(timeout),
        )
        self.http = httpx.Client(base_url=self.api_url, headers=headers, timeout=timeout, transport=transport)

    @classmethod
    def from_settings(cls, settings: Settings) -> "ClerkIdentityProvider":
        return cls(
            settings.clerk_secret_key.strip(),
            api_url=settings.clerk_api_url,
            jwks_url=settings.resolved_jwks_url(),
            authorized_parties=settings.clerk_authorized_parties,
            timeout=settings.clerk_timeout_seconds,
        )

    def verify(self, token: str) -> Optional[Dict[str, Any]]:
        """Verified claims, or None for an invalid/expired token."""
        try:
            key = self.jwks_client.get_signing_key_from_jwt(token).key
            claims = jwt.decode(token, key, algorithms=["RS256"], options={"require": ["sub", "exp"]})
        except jwt.PyJWTError as e:
            logger.info(f"Rejected session token: {e}")
            return None
        azp = claims.get("azp")
        if self.authorized_parties and azp and azp not in self.authorized_parties:
            logger.info(f"Rejected session token from unauthorized party {azp}")
            return None
        return claims

    def fetch_user(self, user_id: str) -> Optional[CurrentUser]:
        try:
            r = self.http.get(f"/users/{user_id}")
        except httpx.HTTPError as e:
            raise ConfigurationError(f"Identity provider unreachable: {e}") from e
        if r.status_code == 404:
            return None
        if not r.is_success:
            raise ConfigurationError(f"Identity provider error: {r.status_code}")
        return user_from_clerk(r.json())

    def current_user(self, token: Optional[str]) -> Optional[CurrentUser]:
        if not token:
            return None
        claims = self.verify(token)
        if claims is None:
            return None
        return self.fetch_user(str(claims["sub"]))

    def close(self) -> None:
        self.http.close()


# ---------------------------------------------------------------------------
# Agency context
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AgencyContext:
    """The verified viewer and the agency their email resolves to (if any)."""
    email: str
    display_name: str
    agency: Optional[Agency] = None

    @property
    def commission_rate(self) -> float:
        return self.agency.commission_rate if self.agency else 0.0

    @property
    def is_admin(self) -> bool:
        return bool(self.agency and self.agency.is_admin)

    @property
    def agency_id(self) -> Optional[str]:
        return self.agency.id if self.agency else None


def require_email(user: Optional[CurrentUser]) -> str:
    if user is None:
        raise UnauthorizedError()
    email = user.primary_email
    if not email:
        raise UnauthorizedError(MSG_NO_EMAIL)
    return email


def resolve_agency_context(user: Optional[CurrentUser], agencies: AgencyRepository) -> AgencyContext:
    """
    Raises UnauthorizedError without an identity or email. A missing agency
    is not an error: the context just carries no agency (zero commission).
    """
    email = require_email(user)
    agency = agencies.get_by_email(email)
    if agency is None:
        logger.info(f"No agency registered for {email}")
    return AgencyContext(email=email, display_name=user.display_name, agency=agency)
