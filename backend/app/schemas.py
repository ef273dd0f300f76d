"""Pydantic models for the voice-over script API."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class SetupStatus(BaseModel):
    """Credential precondition report."""

    configured: bool
    missing: list[str] = Field(default_factory=list)
    instructions: str | None = None


class ModelOption(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    model_id: str
    label: str


class SettingsResponse(BaseModel):
    """Selected model plus the supported choices."""

    model_config = ConfigDict(protected_namespaces=())

    model_id: str
    supported_models: list[ModelOption]
    saved: bool | None = None


class SettingsUpdate(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    model_id: str


class PromptsResponse(BaseModel):
    prompt1: str
    prompt2: str


class PromptsUpdate(BaseModel):
    """Partial prompt edit; omitted fields keep their current value."""

    prompt1: str | None = None
    prompt2: str | None = None


class PromptsReset(BaseModel):
    confirm: bool = False


class JobStatus(BaseModel):
    """Job status response."""

    model_config = ConfigDict(protected_namespaces=())

    job_id: str
    status: Literal["processing", "completed", "failed"]
    stage: str
    message: str | None = None
    model_id: str | None = None
    error: str | None = None
    error_kind: str | None = None


class JobResult(BaseModel):
    """Both generated texts for a completed run."""

    model_config = ConfigDict(protected_namespaces=())

    job_id: str
    model_id: str
    step1_output: str
    step2_output: str
