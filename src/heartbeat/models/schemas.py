from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from heartbeat.models.domain import CheckRecord, Incident, Status


class TargetStatus(BaseModel):
    id: str
    name: str
    url: str
    status: Status
    latency: int = 0


class HistoryResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    project_id: str = Field(alias="projectId")
    items: list[CheckRecord] = []


class IncidentsResponse(BaseModel):
    items: list[Incident] = []


class HealthResponse(BaseModel):
    ok: bool = True


class IndexResponse(BaseModel):
    name: str = "heartbeat-backend"
    ok: bool = True
    routes: list[str] = []


class ConfirmationRequest(BaseModel):
    email: str = ""
    username: str = ""
