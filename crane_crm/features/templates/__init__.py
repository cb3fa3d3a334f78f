"""Quotation templates: element model, rendering and the template store.

Architecture:
    - Elements: typed element parsing with legacy aliases (``elements``)
    - Placeholders: ``{{ path }}`` resolution against a render context
    - Renderer: one routine per element kind producing HTML fragments
    - Assembler: Jinja2 document shell, theme CSS and computed footer
    - Builder: in-memory editing of a template configuration
    - Service: persisted templates, single default, preview and print

Example:
    ```python
    service = get_template_service()
    html = await service.preview(session, template_id=1)
    result = await service.generate_document(session, template_id=1, data=context)
    ```
"""

from __future__ import annotations

from crane_crm.features.templates.assembler import DocumentAssembler
from crane_crm.features.templates.builder import (
    ElementNotFoundError,
    InvalidThemeError,
    TemplateBuilder,
)
from crane_crm.features.templates.elements import Element, ElementKind
from crane_crm.features.templates.models import QuotationTemplate
from crane_crm.features.templates.placeholders import extract_variables, find_missing, resolve
from crane_crm.features.templates.renderer import ElementRenderer
from crane_crm.features.templates.sample import sample_quotation_data
from crane_crm.features.templates.service import QuotationTemplateService, get_template_service

__all__ = [
    "DocumentAssembler",
    "Element",
    "ElementKind",
    "ElementNotFoundError",
    "ElementRenderer",
    "InvalidThemeError",
    "QuotationTemplate",
    "QuotationTemplateService",
    "TemplateBuilder",
    "extract_variables",
    "find_missing",
    "get_template_service",
    "resolve",
    "sample_quotation_data",
]
