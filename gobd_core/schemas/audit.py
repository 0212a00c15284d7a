"""Schemas for audit chain entries."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class ActorType(str, Enum):
    USER = "USER"
    SYSTEM = "SYSTEM"
    AI = "AI"


class EventClass(str, Enum):
    ACCOUNTING = "ACCOUNTING"
    SECURITY = "SECURITY"
    OPS = "OPS"
    AI_GOVERNANCE = "AI_GOVERNANCE"
    NOTIFICATION = "NOTIFICATION"


class EventStatus(str, Enum):
    SUCCESS = "SUCCESS"
    DENIED = "DENIED"


class ScopeType(str, Enum):
    COMPANY = "COMPANY"
    GLOBAL = "GLOBAL"


@dataclass(frozen=True)
class Actor:
    """Who performed an audited action.

    Users carry their id, AI actors the model version that produced the
    output, and the system carries nothing. There is no sentinel user id.
    """

    type: ActorType
    user_id: Optional[int] = None
    model_version: Optional[str] = None

    def __post_init__(self) -> None:
        if self.type is ActorType.USER and self.user_id is None:
            raise ValueError("USER actors require a user_id")
        if self.type is not ActorType.USER and self.user_id is not None:
            raise ValueError(f"{self.type.value} actors cannot carry a user_id")

    @classmethod
    def user(cls, user_id: int) -> "Actor":
        return cls(ActorType.USER, user_id=user_id)

    @classmethod
    def system(cls) -> "Actor":
        return cls(ActorType.SYSTEM)

    @classmethod
    def ai(cls, model_version: str) -> "Actor":
        return cls(ActorType.AI, model_version=model_version)


class AuditEntryCreate(BaseModel):
    """An audit-worthy action about to be appended to the chain."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    action: str = Field(..., max_length=120)
    resource_type: str = Field(..., max_length=64)
    resource_id: Optional[str] = Field(default=None, max_length=128)
    actor: Actor
    company_id: Optional[int] = None
    scope_type: Optional[ScopeType] = Field(
        default=None,
        description="Defaults to COMPANY when company_id is set, GLOBAL otherwise.",
    )
    event_class: EventClass
    status: EventStatus = EventStatus.SUCCESS
    reason: str
    old_values: Optional[Any] = None
    new_values: Optional[Any] = None
    request_id: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("resource_id", mode="before")
    @classmethod
    def stringify_resource_id(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        return str(value)

    @model_validator(mode="after")
    def enforce_timezone(self) -> "AuditEntryCreate":
        if self.timestamp.tzinfo is None:
            self.timestamp = self.timestamp.replace(tzinfo=timezone.utc)
        else:
            self.timestamp = self.timestamp.astimezone(timezone.utc)
        return self

    def system_context(self) -> Dict[str, Any]:
        """Project the entry onto the SystemContext shape checked before writing."""

        scope = self.scope_type or (ScopeType.COMPANY if self.company_id is not None else ScopeType.GLOBAL)
        return {
            "actor_type": self.actor.type.value,
            "actor_id": self.actor.user_id,
            "company_id": self.company_id,
            "scope_type": scope.value,
            "event_class": self.event_class.value,
            "status": self.status.value,
            "reason": self.reason,
            "request_id": self.request_id,
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
        }
