"""Database model for the professor profile used to sign outgoing letters."""

import uuid
from datetime import datetime, timezone
from sqlmodel import Field, SQLModel


class Professor(SQLModel, table=True):
    __tablename__ = "professors"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)

    email: str = Field(index=True, unique=True)
    name: str
    title: str | None = None
    department: str | None = None
    institution: str | None = None
    signature: str | None = None

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
