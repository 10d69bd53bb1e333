"""Inbound event payloads emitted by the scan and commit backend.

All payloads arrive as UTF-8 JSON. Every model exposes ``decode`` which turns
pydantic validation failures into ``PayloadDecodeError`` so consumers handle a
single error type.
"""

from enum import IntEnum
from typing import List, Optional, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    RootModel,
    ValidationError,
    field_validator,
    model_validator,
)

from turbo_tasker.exceptions import PayloadDecodeError
from turbo_tasker.schemas.staging import AckStatus

Payload = Union[str, bytes, bytearray]


def _error_summary(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ())) or "payload"
    return f"{location}: {first.get('msg', 'invalid value')}"


class ProgressEvent(BaseModel):
    """Incremental scan progress. Every count is a delta since the previous event."""

    resources: int = Field(ge=0)
    directories: int = Field(ge=0)
    files: int = Field(ge=0)
    size: int = Field(ge=0, description="Delta of bytes seen")
    timestamp: str = ""
    # Backend quotes this value, lax mode accepts numeric strings
    wall_time_nanos: int = Field(default=0, ge=0)

    @classmethod
    def decode(cls, payload: Payload) -> "ProgressEvent":
        try:
            return cls.model_validate_json(payload)
        except ValidationError as e:
            raise PayloadDecodeError("progress", _error_summary(e)) from e


class Compressibility(IntEnum):
    """Whether compressing a resource is worthwhile."""

    ARCHIVE = -1  # already an archive container
    NOT_COMPRESSIBLE = 0
    COMPRESSIBLE = 1


class RankedResource(BaseModel):
    """One row of the ranked (largest first) resource list."""

    rank: int = Field(ge=1)
    path: str = Field(min_length=1)
    bytes: int = Field(ge=0)
    mime_type: str = Field(
        default="application/octet-stream",
        validation_alias=AliasChoices("mime_type", "type"),
    )
    compressible: Compressibility = Compressibility.NOT_COMPRESSIBLE
    modified: Optional[str] = None
    accessed: Optional[str] = None
    modified_days: Optional[int] = None
    accessed_days: Optional[int] = None

    @field_validator("compressible", mode="before")
    @classmethod
    def parse_compressible(cls, v):
        """Backend sends "1", "0" or "-1"."""
        if isinstance(v, str):
            return int(v.strip())
        return v


class RankSnapshot(RootModel[List[RankedResource]]):
    """A complete ranked list. Replaces any previous snapshot wholesale."""

    @model_validator(mode="after")
    def check_unique_paths(self) -> "RankSnapshot":
        seen = set()
        for resource in self.root:
            if resource.path in seen:
                raise ValueError(f"duplicate path in snapshot: {resource.path}")
            seen.add(resource.path)
        return self

    @classmethod
    def decode(cls, payload: Payload) -> "RankSnapshot":
        try:
            return cls.model_validate_json(payload)
        except ValidationError as e:
            raise PayloadDecodeError("rank-snapshot", _error_summary(e)) from e


class CommitAcknowledgement(BaseModel):
    """Per-path outcome of a committed action. Extra result fields are kept."""

    model_config = ConfigDict(extra="allow")

    path: str = Field(min_length=1)
    status: str = "success"

    @property
    def result_status(self) -> AckStatus:
        return AckStatus.from_result(self.status)

    @classmethod
    def decode(cls, payload: Payload) -> "CommitAcknowledgement":
        try:
            return cls.model_validate_json(payload)
        except ValidationError as e:
            raise PayloadDecodeError("commit-ack", _error_summary(e)) from e
