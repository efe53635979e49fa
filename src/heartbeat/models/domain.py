from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Status(str, Enum):
    HEALTHY = "HEALTHY"
    DEGRADED = "DEGRADED"
    DOWN = "DOWN"


class Target(BaseModel):
    """A monitored endpoint as stored in the `projects` table."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str
    name: str = ""
    url: str

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value):
        # Supabase hands back bigint primary keys as JSON numbers
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


class ProbeOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: Status
    latency_ms: int = Field(default=0, ge=0)
    http_status_code: Optional[int] = None
    error_text: Optional[str] = None


class CheckRecord(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    timestamp_ms: int = Field(alias="ts")
    status: Status
    latency_ms: int = Field(default=0, ge=0, alias="latency")
    # 0 when no response was received
    http_status_code: int = Field(default=0, alias="code")
    error_text: Optional[str] = Field(default=None, alias="error")

    @classmethod
    def from_outcome(cls, outcome: ProbeOutcome, timestamp_ms: int) -> CheckRecord:
        return cls(
            timestamp_ms=timestamp_ms,
            status=outcome.status,
            latency_ms=outcome.latency_ms,
            http_status_code=outcome.http_status_code or 0,
            error_text=outcome.error_text or None,
        )


class Incident(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    timestamp_ms: int = Field(alias="ts")
    target_id: str = Field(alias="projectId")
    target_name: str = Field(alias="projectName")
    new_status: Status = Field(alias="status")
    message: str

    def to_payload(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
