"""
Job payloads.

Every job on either queue carries one of these, tagged by `kind`, so the
worker has a single entrypoint and one dispatch.
"""

from typing import Annotated, List, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter

from intervai.models import ExperienceLevel, ExportFormat


class GenerationPayload(BaseModel):
    kind: Literal["generation"] = "generation"
    role: str
    experience: ExperienceLevel
    topics: List[str] = Field(min_length=1)
    session_id: str
    user_id: str
    cache_key: str


class RegenerationPayload(BaseModel):
    """Rewrite one existing question in place."""
    kind: Literal["regeneration"] = "regeneration"
    question_id: str
    role: str
    experience: ExperienceLevel
    topics: List[str] = Field(min_length=1)
    session_id: str
    user_id: str


class ExportPayload(BaseModel):
    kind: Literal["export"] = "export"
    session_id: str
    user_id: str
    format: ExportFormat


JobPayload = Annotated[
    Union[GenerationPayload, RegenerationPayload, ExportPayload],
    Field(discriminator="kind")
]

_payload_adapter = TypeAdapter(JobPayload)


def parse_payload(data: dict) -> GenerationPayload | RegenerationPayload | ExportPayload:
    """Validate a raw job payload into its tagged type."""
    return _payload_adapter.validate_python(data)
