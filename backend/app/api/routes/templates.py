"""Letter template endpoints."""

import logging
import uuid

from fastapi import APIRouter
from pydantic import BaseModel

from app.api.deps import SessionDep
from app.fulfillment import templates as template_service
from app.fulfillment.interpolation import SYSTEM_VARIABLES, find_tokens
from app.fulfillment.schemas import TemplateCreate, TemplatePreview, TemplateUpdate
from app.models.template import Template

logger = logging.getLogger(__name__)

templates_router = APIRouter(prefix="/templates", tags=["templates"])


class PreviewResponse(BaseModel):
    content: str
    missing_variables: list[str]


@templates_router.get("", response_model=list[Template])
async def list_templates(
    session: SessionDep,
    active_only: bool = False,
    category: str | None = None,
) -> list[Template]:
    return template_service.list_templates(session, active_only=active_only, category=category)


@templates_router.get("/variables")
async def system_variables() -> list[dict[str, str]]:
    """Variables every letter can use, grouped by category."""
    return SYSTEM_VARIABLES


@templates_router.post("/preview", response_model=PreviewResponse)
async def preview(data: TemplatePreview) -> PreviewResponse:
    """Preview unsaved content. Every token in it counts as declared."""
    result = template_service.preview_template(data.content, data.variables, declared=find_tokens(data.content))
    return PreviewResponse(**result)


@templates_router.post("", response_model=Template, status_code=201)
async def create_template(data: TemplateCreate, session: SessionDep) -> Template:
    return template_service.create_template(session, data)


@templates_router.get("/{template_id}", response_model=Template)
async def get_template(template_id: uuid.UUID, session: SessionDep) -> Template:
    return template_service.get_template(session, template_id)


@templates_router.put("/{template_id}", response_model=Template)
async def update_template(template_id: uuid.UUID, patch: TemplateUpdate, session: SessionDep) -> Template:
    return template_service.update_template(session, template_id, patch)


@templates_router.post("/{template_id}/duplicate", response_model=Template, status_code=201)
async def duplicate_template(template_id: uuid.UUID, session: SessionDep) -> Template:
    return template_service.duplicate_template(session, template_id)


@templates_router.post("/{template_id}/default", response_model=Template)
async def set_default(template_id: uuid.UUID, session: SessionDep) -> Template:
    return template_service.set_default_template(session, template_id)


@templates_router.post("/{template_id}/preview", response_model=PreviewResponse)
async def preview_saved(template_id: uuid.UUID, session: SessionDep) -> PreviewResponse:
    """Preview a stored template with sample values and report unfilled declared variables."""
    template = template_service.get_template(session, template_id)
    result = template_service.preview_template(
        template.content, declared=template_service.declared_variable_names(template)
    )
    return PreviewResponse(**result)


@templates_router.delete("/{template_id}", status_code=204)
async def delete_template(template_id: uuid.UUID, session: SessionDep) -> None:
    template_service.delete_template(session, template_id)
