"""FastAPI dependencies for the quotation templates feature."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends

from crane_crm.features.templates.service import (
    QuotationTemplateService,
    get_template_service,
)

TemplateServiceDep = Annotated[QuotationTemplateService, Depends(get_template_service)]

__all__ = ["TemplateServiceDep"]
