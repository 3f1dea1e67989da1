"""Letter template catalogue.

At most one template is the default. Promoting a template clears the
previous default inside the same transaction, so readers never see two.
"""

import logging
import uuid
from datetime import datetime, timezone

from sqlmodel import Session, col, select

from app.core.errors import NotFoundError
from app.fulfillment.interpolation import interpolate_template, missing_variables, sample_variables
from app.fulfillment.schemas import TemplateCreate, TemplateUpdate, apply_patch
from app.models.letter import Letter
from app.models.template import Template

logger = logging.getLogger(__name__)


def get_template(session: Session, template_id: uuid.UUID) -> Template:
    template = session.get(Template, template_id)
    if template is None:
        raise NotFoundError("template", template_id)
    return template


def list_templates(
    session: Session,
    active_only: bool = False,
    category: str | None = None,
) -> list[Template]:
    statement = select(Template)
    if active_only:
        statement = statement.where(Template.is_active == True)  # noqa: E712
    if category:
        statement = statement.where(Template.category == category)
    statement = statement.order_by(col(Template.is_default).desc(), col(Template.name).asc())
    return list(session.exec(statement).all())


def get_default_template(session: Session) -> Template | None:
    return session.exec(select(Template).where(Template.is_default == True)).first()  # noqa: E712


def _clear_default(session: Session, keep_id: uuid.UUID | None = None) -> None:
    statement = select(Template).where(Template.is_default == True)  # noqa: E712
    if keep_id is not None:
        statement = statement.where(Template.id != keep_id)
    for previous in session.exec(statement).all():
        previous.is_default = False
        previous.updated_at = datetime.now(timezone.utc)
        session.add(previous)


def create_template(session: Session, data: TemplateCreate) -> Template:
    if data.is_default:
        _clear_default(session)

    template = Template(
        name=data.name,
        description=data.description,
        content=data.content,
        variables=[variable.model_dump() for variable in data.variables],
        category=data.category,
        is_default=data.is_default,
    )
    session.add(template)
    session.commit()
    session.refresh(template)

    logger.info(
        "Template created",
        extra={"template_id": str(template.id), "is_default": template.is_default},
    )
    return template


def update_template(session: Session, template_id: uuid.UUID, patch: TemplateUpdate) -> Template:
    """Apply a partial update.

    Promoting a template clears the previous default. Sending
    ``is_default=False`` for the current default leaves no default at all,
    which "at most one default" allows; letter generation always names its
    template explicitly.
    """
    template = get_template(session, template_id)

    if patch.is_default:
        _clear_default(session, keep_id=template.id)

    changed = apply_patch(template, patch)
    template.updated_at = datetime.now(timezone.utc)
    session.add(template)
    session.commit()
    session.refresh(template)

    logger.info(
        "Template updated",
        extra={"template_id": str(template_id), "fields": sorted(changed)},
    )
    return template


def set_default_template(session: Session, template_id: uuid.UUID) -> Template:
    return update_template(session, template_id, TemplateUpdate(is_default=True))


def delete_template(session: Session, template_id: uuid.UUID) -> None:
    template = get_template(session, template_id)

    # Letters keep their content; only the traceability link goes
    for letter in session.exec(select(Letter).where(Letter.template_id == template_id)).all():
        letter.template_id = None
        session.add(letter)
    session.delete(template)
    session.commit()

    logger.info("Template deleted", extra={"template_id": str(template_id)})


def duplicate_template(session: Session, template_id: uuid.UUID) -> Template:
    source = get_template(session, template_id)

    copy = Template(
        name=f"{source.name} (Copy)",
        description=source.description,
        content=source.content,
        variables=list(source.variables or []),
        category=source.category,
        is_default=False,
    )
    session.add(copy)
    session.commit()
    session.refresh(copy)
    return copy


def declared_variable_names(template: Template) -> list[str]:
    return [variable["name"] for variable in template.variables or [] if variable.get("name")]


def preview_template(
    content: str,
    variables: dict[str, str | None] | None = None,
    declared: list[str] | None = None,
) -> dict[str, object]:
    """Render ``content`` with sample (or supplied) values.

    Returns:
        {"content": rendered text, "missing_variables": declared names left unfilled}
    """
    values = variables if variables is not None else sample_variables()
    return {
        "content": interpolate_template(content, values),
        "missing_variables": missing_variables(declared or [], values),
    }
