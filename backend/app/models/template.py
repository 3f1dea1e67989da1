"""Database models for reusable letter templates."""

import uuid
from datetime import datetime, timezone
from sqlmodel import Field, SQLModel, Column, JSON


class Template(SQLModel, table=True):
    """Reusable letter text with ``{{ variable }}`` placeholders.

    ``variables`` declares the placeholders the template expects, each as
    ``{"name": ..., "description": ..., "category": ...}``. At most one
    template is the default at any time.
    """

    __tablename__ = "templates"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)

    name: str
    description: str | None = None
    content: str
    variables: list[dict] = Field(default_factory=list, sa_column=Column(JSON))
    category: str | None = Field(default=None, index=True)

    is_active: bool = Field(default=True)
    is_default: bool = Field(default=False, index=True)

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
