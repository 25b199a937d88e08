"""Portal records — principals, sessions, firewall policy, search results."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from lumina.core.enums import ContentType, LockoutState, LoginStatus, Role, SecurityLevel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionProjection(BaseModel):
    """The part of a principal that is safe to persist and display."""
    identifier: str
    role: Role
    department: Optional[str] = None
    title: Optional[str] = None


class Principal(BaseModel):
    model_config = ConfigDict(frozen=True)

    identifier: str
    secret: str = Field(repr=False)
    role: Role = Role.USER
    department: Optional[str] = None
    title: Optional[str] = None

    def projection(self) -> SessionProjection:
        return SessionProjection(
            identifier=self.identifier,
            role=self.role,
            department=self.department,
            title=self.title,
        )


class FirewallPolicy(BaseModel):
    """Mutable security policy consulted by the query firewall.

    Persisted with camelCase keys (``allowedDomains``, ``blockWords``, ...).
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    enabled: bool = True
    block_unauthorized_ips: bool = True
    allowed_domains: List[str] = Field(
        default_factory=lambda: ["*.google.com", "*.bing.com", "*.duckduckgo.com"]
    )
    block_words: List[str] = Field(
        default_factory=lambda: ["malware", "phishing", "exploit"]
    )
    security_level: SecurityLevel = SecurityLevel.MEDIUM
    malware_protection: bool = True
    intrusion_detection: bool = True
    auto_update_definitions: bool = True
    last_updated: datetime = Field(default_factory=_utcnow)

    def to_record(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class SearchResult(BaseModel):
    id: str
    title: str
    url: str
    description: str
    domain: str
    favicon: Optional[str] = None
    published_date: Optional[str] = None
    content_type: ContentType = ContentType.ARTICLE
    relevance_score: int = Field(default=50, ge=0, le=100)


class LockoutStatus(BaseModel):
    state: LockoutState
    failed_count: int = 0
    attempts_remaining: int = 0
    lockout_end_time: Optional[datetime] = None
    seconds_remaining: int = 0


class LoginOutcome(BaseModel):
    """Result of a login call as seen by the UI layer."""
    status: LoginStatus
    session: Optional[SessionProjection] = None
    attempts_remaining: Optional[int] = None
    seconds_remaining: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.status == LoginStatus.SUCCESS
