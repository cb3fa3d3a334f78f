"""Sample render context used for template previews."""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta
from typing import Any


def sample_quotation_data(today: date | None = None) -> dict[str, Any]:
    """Return the ASP Cranes sample quotation context.

    Dates are formatted ``DD/MM/YYYY`` relative to ``today`` (default: the
    current UTC date) with a 30 day validity.
    """
    today = today or datetime.now(UTC).date()
    valid_until = today + timedelta(days=30)
    return {
        "company": {
            "name": "ASP Cranes Pvt. Ltd.",
            "address": "Industrial Area, Pune, Maharashtra 411019",
            "phone": "+91 99999 88888",
            "email": "sales@aspcranes.com",
            "website": "www.aspcranes.com",
        },
        "client": {
            "name": "John Doe",
            "company": "Construction Corp.",
            "address": "Mumbai, Maharashtra",
            "phone": "+91 98765 43210",
            "email": "john@constructioncorp.com",
        },
        "quotation": {
            "number": "QUO-2025-001",
            "date": today.strftime("%d/%m/%Y"),
            "validUntil": valid_until.strftime("%d/%m/%Y"),
            "paymentTerms": "50% advance, balance on completion",
            "terms": "This quotation is valid for 30 days. All rates are inclusive of GST.",
        },
        "items": [
            {
                "no": 1,
                "description": "Tower Crane Rental - Potain MC 175",
                "capacity": "175MT",
                "jobType": "monthly",
                "quantity": 1,
                "duration": "30 days",
                "rate": "₹25,000",
                "rental": "₹7,50,000",
                "mobilization": "₹50,000",
                "demobilization": "₹50,000",
                "amount": "₹8,50,000",
            },
            {
                "no": 2,
                "description": "Mobile Crane - Liebherr LTM 1090",
                "capacity": "90MT",
                "jobType": "daily",
                "quantity": 1,
                "duration": "5 days",
                "rate": "₹15,000",
                "rental": "₹75,000",
                "mobilization": "₹10,000",
                "demobilization": "₹10,000",
                "amount": "₹95,000",
            },
        ],
        "totals": {
            "subtotal": "₹8,25,000",
            "discount": "₹25,000",
            "tax": "₹1,44,000",
            "total": "₹9,44,000",
        },
        "tax": {"rate": 18},
    }
