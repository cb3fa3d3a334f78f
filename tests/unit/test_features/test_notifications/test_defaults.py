"""Tests for built-in notification templates and rules."""

from __future__ import annotations

from sqlalchemy import select

from crane_crm.features.notifications.defaults import (
    DEFAULT_RULES,
    DEFAULT_TEMPLATES,
    default_rule,
    default_template,
    seed_defaults,
)
from crane_crm.features.notifications.models import NotificationRule, NotificationTemplate
from crane_crm.features.templates.placeholders import extract_variables


def test_every_template_has_a_rule():
    assert set(DEFAULT_TEMPLATES) == set(DEFAULT_RULES)


def test_transient_rows():
    template = default_template("job_assigned")
    assert template.template_type == "job_assigned"
    assert "jobTitle" in extract_variables(template.sms_template)

    rule = default_rule("job_assigned")
    assert rule.user_roles == ["operator", "operations_manager"]
    assert rule.channels == ["in_app", "email", "sms"]
    assert rule.is_active is True

    assert default_template("nope") is None
    assert default_rule("nope") is None


async def test_seed_inserts_missing_rows_only(db_session):
    db_session.add(
        NotificationTemplate(
            template_type="lead_created",
            subject_template="Custom {{customerName}}",
            message_template="Custom",
        )
    )
    await db_session.commit()

    inserted = await seed_defaults(db_session)
    assert inserted == {"templates": len(DEFAULT_TEMPLATES) - 1, "rules": len(DEFAULT_RULES)}

    custom = (
        await db_session.execute(
            select(NotificationTemplate).where(NotificationTemplate.template_type == "lead_created")
        )
    ).scalar_one()
    assert custom.subject_template == "Custom {{customerName}}"

    assert await seed_defaults(db_session) == {"templates": 0, "rules": 0}
    rules = (await db_session.execute(select(NotificationRule))).scalars().all()
    assert len(rules) == len(DEFAULT_RULES)
