"""Read-only views handed to the host transport."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class JobStatusView(BaseModel):
    step: Literal["pending", "running", "done", "failed"]
    files_converted: int = Field(..., ge=0)
    total_files: int = Field(..., ge=0)
    error: str | None = None


class JobView(BaseModel):
    id: str
    status: JobStatusView
    module: str = Field(..., description="Label of the module converting this job")
    unlimited_downloads: bool = Field(
        ..., description="True when the job survives downloads of its converted files"
    )
    options: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime


class OptionView(BaseModel):
    id: str
    label: str
    description: Optional[str] = None
    type: Literal["string", "number", "boolean"]
    default: Any = None
    required: bool = False


class ModuleView(BaseModel):
    id: str
    label: str
    description: Optional[str] = None
    from_: List[str] = Field(..., alias="from")
    to: str
    return_mode: Literal["mutate", "replace"]
    options: List[OptionView] = Field(default_factory=list)

    model_config = {"populate_by_name": True}


class StatisticsView(BaseModel):
    initialized_at: datetime
    files_converted: int = Field(..., ge=0)
    data_converted_mb: float = Field(..., ge=0.0)


class MimeTypeInfo(BaseModel):
    valid: bool
    extension: str | None = None
    charset: str | None = None
    content_type: str | None = None
