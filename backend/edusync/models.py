"""SQLModel data models.

This module defines the application's database tables using SQLModel.
Identifiers are UUIDs supplied by the client, matching the identifiers
the frontend already generates.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlmodel import SQLModel, Field


class User(SQLModel, table=True):
    """A platform user (student or instructor).

    Fields:
    - `email`: login name, looked up by the login endpoint
    - `password_hash`: salted one-way hash of the submitted secret
    """
    user_id: uuid.UUID = Field(primary_key=True)
    name: str
    email: str = Field(index=True)
    role: str
    password_hash: str


class Course(SQLModel, table=True):
    """A course taught by an instructor."""
    course_id: uuid.UUID = Field(primary_key=True)
    title: str
    description: str
    instructor_id: uuid.UUID = Field(foreign_key="user.user_id", index=True)
    media_url: Optional[str] = None


class Assessment(SQLModel, table=True):
    """An assessment belonging to a course.

    `questions` holds the serialized question set as sent by the client.
    """
    assessment_id: uuid.UUID = Field(primary_key=True)
    title: str
    questions: str
    max_score: int
    course_id: uuid.UUID = Field(foreign_key="course.course_id", index=True)


class Result(SQLModel, table=True):
    """A user's scored attempt at an assessment."""
    result_id: uuid.UUID = Field(primary_key=True)
    assessment_id: uuid.UUID = Field(foreign_key="assessment.assessment_id", index=True)
    user_id: uuid.UUID = Field(foreign_key="user.user_id", index=True)
    score: int
    attempt_date: datetime
