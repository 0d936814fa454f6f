"""Pydantic request/response schemas used by the API.

Schemas keep API input/output shapes stable. Fields are snake_case in
Python and camelCase on the wire (`userId`, `passwordHash`, ...), which
is the format the existing frontend sends and expects.
"""

import uuid
from datetime import datetime
from typing import ClassVar, Optional

from pydantic import BaseModel, ConfigDict, field_serializer
from pydantic.alias_generators import to_camel


class DTO(BaseModel):
    """Base for entity payloads; `id_field` names the identifier field."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id_field: ClassVar[str]

    @property
    def identifier(self) -> uuid.UUID:
        return getattr(self, self.id_field)


class UserDTO(DTO):
    """User payload; `passwordHash` is accepted on input but never echoed."""
    id_field: ClassVar[str] = "user_id"

    user_id: uuid.UUID
    name: str
    email: str
    role: str
    password_hash: str = ""

    @field_serializer("password_hash")
    def _blank_secret(self, _value: str) -> str:
        return ""


class CourseDTO(DTO):
    id_field: ClassVar[str] = "course_id"

    course_id: uuid.UUID
    title: str
    description: str
    instructor_id: uuid.UUID
    media_url: Optional[str] = None


class AssessmentDTO(DTO):
    id_field: ClassVar[str] = "assessment_id"

    assessment_id: uuid.UUID
    title: str
    questions: str
    max_score: int
    course_id: uuid.UUID


class ResultDTO(DTO):
    id_field: ClassVar[str] = "result_id"

    result_id: uuid.UUID
    assessment_id: uuid.UUID
    user_id: uuid.UUID
    score: int
    attempt_date: datetime


class LoginIn(BaseModel):
    """Payload for the login endpoint; blank values are rejected by the route."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    email: Optional[str] = None
    password_hash: Optional[str] = None
