"""Business-event helpers that build notification data with frontend links.

Each helper maps a CRM entity (lead, quotation, job, deal, invoice) to the
placeholder keys its template expects and calls the engine.

Example:
    await notify_lead_created(session, {"id": "L-12", "customerName": "Acme Infra", ...})
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any

from crane_crm.core.settings import get_app_settings
from crane_crm.features.notifications.engine import get_notification_engine

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from sqlalchemy.ext.asyncio import AsyncSession

    from crane_crm.features.notifications.engine import ScheduledResult, SendResult

    Outcome = SendResult | ScheduledResult | bool


def _link(path: str, entity_id: Any) -> str:
    base = get_app_settings().frontend_url.rstrip("/")
    return f"{base}/{path}/{entity_id}"


def format_inr(value: Any) -> str:
    """Format a number with Indian digit grouping (``1234567`` -> ``12,34,567``).

    Non-numeric input is returned as a string unchanged.
    """
    try:
        amount = Decimal(str(value).replace(",", ""))
    except (InvalidOperation, ValueError):
        return "" if value is None else str(value)

    sign = "-" if amount < 0 else ""
    amount = abs(amount)
    whole, _, fraction = f"{amount:.2f}".partition(".")
    if len(whole) > 3:
        head, tail = whole[:-3], whole[-3:]
        groups = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        whole = ",".join([*groups, tail])
    fraction = fraction.rstrip("0")
    return f"{sign}{whole}.{fraction}" if fraction else f"{sign}{whole}"


def _format_date(value: Any) -> str | None:
    if isinstance(value, datetime | date):
        return value.strftime("%d/%m/%Y")
    return value


def _first(entity: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        value = entity.get(key)
        if value not in (None, ""):
            return value
    return default


async def notify_lead_created(session: AsyncSession, lead: Mapping[str, Any]) -> Outcome:
    return await get_notification_engine().send_notification(
        session,
        type="lead_created",
        data={
            "customerName": _first(lead, "customerName", "customer_name"),
            "companyName": _first(lead, "companyName", "company_name", default="N/A"),
            "serviceNeeded": _first(lead, "serviceNeeded", "service_needed"),
            "siteLocation": _first(lead, "siteLocation", "site_location"),
            "leadUrl": _link("leads", lead["id"]),
            "referenceId": lead["id"],
            "referenceType": "lead",
        },
        priority="high",
    )


async def notify_quotation_created(session: AsyncSession, quotation: Mapping[str, Any]) -> Outcome:
    return await get_notification_engine().send_notification(
        session,
        type="quotation_created",
        data={
            "quotationId": quotation["id"],
            "customerName": _first(quotation, "customerName", "customer_name"),
            "totalCost": format_inr(_first(quotation, "totalCost", "total_cost", default=0)),
            "machineType": _first(quotation, "machineType", "machine_type"),
            "numberOfDays": _first(quotation, "numberOfDays", "number_of_days"),
            "quotationUrl": _link("quotations", quotation["id"]),
            "referenceId": quotation["id"],
            "referenceType": "quotation",
        },
        priority="medium",
    )


async def notify_job_assigned(
    session: AsyncSession,
    job: Mapping[str, Any],
    operator_ids: Sequence[str],
) -> Outcome:
    """Notify the assigned operators directly, including by SMS."""
    return await get_notification_engine().send_notification(
        session,
        type="job_assigned",
        recipients=[{"id": operator_id} for operator_id in operator_ids],
        channels=["in_app", "email", "sms"],
        data={
            "jobTitle": _first(job, "title", "jobTitle"),
            "customerName": _first(job, "customerName", "customer_name"),
            "location": _first(job, "location", "siteLocation"),
            "startDate": _format_date(_first(job, "scheduledStartDate", "startDate", "start_date")),
            "equipment": _first(job, "equipmentName", "equipment", default="TBD"),
            "jobUrl": _link("jobs", job["id"]),
            "referenceId": job["id"],
            "referenceType": "job",
        },
        priority="high",
    )


async def notify_deal_won(session: AsyncSession, deal: Mapping[str, Any]) -> Outcome:
    return await get_notification_engine().send_notification(
        session,
        type="deal_won",
        data={
            "dealTitle": _first(deal, "title", "dealTitle"),
            "dealValue": format_inr(_first(deal, "value", "dealValue", default=0)),
            "customerName": _first(deal, "customerName", "customer_name"),
            "dealUrl": _link("deals", deal["id"]),
            "referenceId": deal["id"],
            "referenceType": "deal",
        },
        priority="high",
    )


def _followup_data(lead: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "customerName": _first(lead, "customerName", "customer_name"),
        "lastContact": _format_date(_first(lead, "updatedAt", "updated_at", "lastContact")),
        "status": lead.get("status"),
        "serviceNeeded": _first(lead, "serviceNeeded", "service_needed"),
        "leadUrl": _link("leads", lead["id"]),
        "referenceId": lead["id"],
        "referenceType": "lead",
    }


async def notify_followup_reminder(session: AsyncSession, lead: Mapping[str, Any]) -> Outcome:
    recipients = [{"id": lead["assignedTo"]}] if lead.get("assignedTo") else None
    return await get_notification_engine().send_notification(
        session,
        type="followup_reminder",
        recipients=recipients,
        data=_followup_data(lead),
        priority="medium",
    )


async def schedule_followup_reminder(
    session: AsyncSession,
    lead: Mapping[str, Any],
    reminder_date: datetime,
) -> Outcome:
    """Store a follow-up reminder for the sweep to deliver at ``reminder_date``."""
    recipients = [{"id": lead["assignedTo"]}] if lead.get("assignedTo") else None
    return await get_notification_engine().send_notification(
        session,
        type="followup_reminder",
        recipients=recipients,
        data=_followup_data(lead),
        priority="medium",
        schedule_at=reminder_date,
    )


async def notify_job_completed(session: AsyncSession, job: Mapping[str, Any]) -> Outcome:
    return await get_notification_engine().send_notification(
        session,
        type="job_completed",
        data={
            "jobTitle": _first(job, "title", "jobTitle"),
            "customerName": _first(job, "customerName", "customer_name"),
            "completedDate": _format_date(
                _first(job, "actualEndDate", "completedDate", "completed_at", default=date.today())
            ),
            "jobUrl": _link("jobs", job["id"]),
            "referenceId": job["id"],
            "referenceType": "job",
        },
        priority="medium",
    )


async def notify_payment_overdue(session: AsyncSession, invoice: Mapping[str, Any]) -> Outcome:
    return await get_notification_engine().send_notification(
        session,
        type="payment_overdue",
        data={
            "invoiceNumber": _first(invoice, "number", "invoiceNumber", default=invoice["id"]),
            "amount": format_inr(_first(invoice, "amount", "totalAmount", default=0)),
            "dueDate": _format_date(_first(invoice, "dueDate", "due_date")),
            "customerName": _first(invoice, "customerName", "customer_name"),
            "invoiceUrl": _link("invoices", invoice["id"]),
            "referenceId": invoice["id"],
            "referenceType": "invoice",
        },
        priority="high",
    )


async def send_bulk_notification(
    session: AsyncSession,
    notification_type: str,
    message: Mapping[str, Any],
    user_ids: Sequence[str],
    priority: str = "medium",
) -> Outcome:
    """Send one message to an explicit list of users."""
    return await get_notification_engine().send_notification(
        session,
        type=notification_type,
        recipients=[{"id": user_id} for user_id in user_ids],
        data=dict(message),
        priority=priority,
    )
