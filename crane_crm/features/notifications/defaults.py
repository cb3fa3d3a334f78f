"""Built-in notification templates and routing rules.

The engine falls back to these when the database holds no row for an event
type. ``seed_defaults`` writes them so administrators can edit them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from sqlalchemy import select

from crane_crm.features.notifications.models import NotificationRule, NotificationTemplate

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DefaultTemplate:
    subject: str
    message: str
    email: str | None = None
    sms: str | None = None


@dataclass(frozen=True)
class DefaultRule:
    user_roles: tuple[str, ...]
    channels: tuple[str, ...]
    conditions: dict = field(default_factory=dict)


DEFAULT_TEMPLATES: dict[str, DefaultTemplate] = {
    "lead_created": DefaultTemplate(
        subject="New Lead: {{customerName}}",
        message="New lead received from {{customerName}} for {{serviceNeeded}}",
        email="""
<h2>New Lead Received</h2>
<p><strong>Customer:</strong> {{customerName}}</p>
<p><strong>Company:</strong> {{companyName}}</p>
<p><strong>Service Needed:</strong> {{serviceNeeded}}</p>
<p><strong>Location:</strong> {{siteLocation}}</p>
<p><a href="{{leadUrl}}">View Lead Details</a></p>
""".strip(),
        sms="New lead from {{customerName}} for {{serviceNeeded}}. Check CRM for details.",
    ),
    "quotation_created": DefaultTemplate(
        subject="Quotation Created: {{quotationId}}",
        message="Quotation {{quotationId}} created for {{customerName}}",
        email="""
<h2>Quotation Created</h2>
<p><strong>Quotation ID:</strong> {{quotationId}}</p>
<p><strong>Customer:</strong> {{customerName}}</p>
<p><strong>Total Amount:</strong> ₹{{totalCost}}</p>
<p><strong>Machine Type:</strong> {{machineType}}</p>
<p><strong>Duration:</strong> {{numberOfDays}} days</p>
<p><a href="{{quotationUrl}}">View Quotation</a></p>
""".strip(),
        sms="Quotation {{quotationId}} created for {{customerName}} - ₹{{totalCost}}",
    ),
    "job_assigned": DefaultTemplate(
        subject="Job Assignment: {{jobTitle}}",
        message="You have been assigned to job: {{jobTitle}}",
        email="""
<h2>New Job Assignment</h2>
<p><strong>Job:</strong> {{jobTitle}}</p>
<p><strong>Customer:</strong> {{customerName}}</p>
<p><strong>Location:</strong> {{location}}</p>
<p><strong>Start Date:</strong> {{startDate}}</p>
<p><strong>Equipment:</strong> {{equipment}}</p>
<p><a href="{{jobUrl}}">View Job Details</a></p>
""".strip(),
        sms="Job assigned: {{jobTitle}} at {{location}} starting {{startDate}}",
    ),
    "deal_won": DefaultTemplate(
        subject="Deal Closed: {{dealTitle}}",
        message='Congratulations! Deal "{{dealTitle}}" worth ₹{{dealValue}} has been won!',
        email="""
<h2>🎉 Deal Won!</h2>
<p><strong>Deal:</strong> {{dealTitle}}</p>
<p><strong>Value:</strong> ₹{{dealValue}}</p>
<p><strong>Customer:</strong> {{customerName}}</p>
<p><a href="{{dealUrl}}">View Deal</a></p>
""".strip(),
        sms="Deal won! {{dealTitle}} - ₹{{dealValue}} from {{customerName}}",
    ),
    "followup_reminder": DefaultTemplate(
        subject="Follow-up Reminder: {{customerName}}",
        message="Time to follow up with {{customerName}}",
        email="""
<h2>Follow-up Reminder</h2>
<p><strong>Customer:</strong> {{customerName}}</p>
<p><strong>Last Contact:</strong> {{lastContact}}</p>
<p><strong>Status:</strong> {{status}}</p>
<p><a href="{{leadUrl}}">View Lead</a></p>
""".strip(),
        sms="Follow-up reminder: {{customerName}} - {{serviceNeeded}}",
    ),
    "job_completed": DefaultTemplate(
        subject="Job Completed: {{jobTitle}}",
        message="Job {{jobTitle}} for {{customerName}} was completed on {{completedDate}}",
        email="""
<h2>Job Completed</h2>
<p><strong>Job:</strong> {{jobTitle}}</p>
<p><strong>Customer:</strong> {{customerName}}</p>
<p><strong>Completed:</strong> {{completedDate}}</p>
<p><a href="{{jobUrl}}">View Job</a></p>
""".strip(),
        sms="Job completed: {{jobTitle}} for {{customerName}}",
    ),
    "payment_overdue": DefaultTemplate(
        subject="Payment Overdue: {{invoiceNumber}}",
        message="Invoice {{invoiceNumber}} from {{customerName}} for ₹{{amount}} was due on {{dueDate}}",
        email="""
<h2>Payment Overdue</h2>
<p><strong>Invoice:</strong> {{invoiceNumber}}</p>
<p><strong>Customer:</strong> {{customerName}}</p>
<p><strong>Amount:</strong> ₹{{amount}}</p>
<p><strong>Due Date:</strong> {{dueDate}}</p>
<p><a href="{{invoiceUrl}}">View Invoice</a></p>
""".strip(),
        sms="Payment overdue: invoice {{invoiceNumber}} - ₹{{amount}} from {{customerName}}",
    ),
    "general": DefaultTemplate(
        subject="{{title}}",
        message="{{message}}",
    ),
}

DEFAULT_RULES: dict[str, DefaultRule] = {
    "lead_created": DefaultRule(("sales_agent", "admin"), ("in_app", "email")),
    "quotation_created": DefaultRule(("sales_agent", "admin"), ("in_app", "email")),
    "job_assigned": DefaultRule(("operator", "operations_manager"), ("in_app", "email", "sms")),
    "deal_won": DefaultRule(("sales_agent", "admin"), ("in_app", "email")),
    "followup_reminder": DefaultRule(("sales_agent",), ("in_app", "email")),
    "job_completed": DefaultRule(("operations_manager", "admin"), ("in_app", "email")),
    "payment_overdue": DefaultRule(("admin",), ("in_app", "email", "sms")),
    "general": DefaultRule(("admin",), ("in_app",)),
}


def default_template(notification_type: str) -> NotificationTemplate | None:
    """Transient (unsaved) template row for a built-in event type."""
    builtin = DEFAULT_TEMPLATES.get(notification_type)
    if builtin is None:
        return None
    return NotificationTemplate(
        template_type=notification_type,
        subject_template=builtin.subject,
        message_template=builtin.message,
        email_template=builtin.email,
        sms_template=builtin.sms,
        is_active=True,
    )


def default_rule(notification_type: str) -> NotificationRule | None:
    """Transient (unsaved) rule row for a built-in event type."""
    builtin = DEFAULT_RULES.get(notification_type)
    if builtin is None:
        return None
    return NotificationRule(
        event_type=notification_type,
        user_roles=list(builtin.user_roles),
        channels=list(builtin.channels),
        conditions=dict(builtin.conditions),
        is_active=True,
    )


async def seed_defaults(session: AsyncSession, *, commit: bool = True) -> dict[str, int]:
    """Insert built-in templates and rules that are not yet stored.

    Existing rows are left untouched.

    Returns:
        Number of templates and rules inserted.
    """
    stored_templates = set(
        (await session.execute(select(NotificationTemplate.template_type))).scalars().all()
    )
    stored_rules = set((await session.execute(select(NotificationRule.event_type))).scalars().all())

    inserted = {"templates": 0, "rules": 0}
    for notification_type in DEFAULT_TEMPLATES:
        if notification_type not in stored_templates:
            session.add(default_template(notification_type))
            inserted["templates"] += 1
    for notification_type in DEFAULT_RULES:
        if notification_type not in stored_rules:
            session.add(default_rule(notification_type))
            inserted["rules"] += 1

    await session.flush()
    if commit:
        await session.commit()

    logger.info("Seeded notification defaults", extra=inserted)
    return inserted
