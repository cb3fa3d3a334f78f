"""API router for quotation templates.

Endpoints:
- POST /templates - Create template
- GET /templates - List templates
- GET /templates/default - Current default template
- GET /templates/sample-data - Sample render context
- GET /templates/{template_id} - Get template
- PUT /templates/{template_id} - Update template (version +1)
- DELETE /templates/{template_id} - Soft delete
- POST /templates/{template_id}/set-default - Make default
- POST /templates/{template_id}/duplicate - Copy template
- POST /templates/preview - Render preview HTML
- POST /templates/print - Render print HTML or PDF
"""

from __future__ import annotations

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Query, Response, status
from fastapi.responses import HTMLResponse

from crane_crm.core.dependencies import CurrentUserDep, SessionDep
from crane_crm.core.exceptions import NotFoundException
from crane_crm.features.templates.dependencies import TemplateServiceDep
from crane_crm.features.templates.sample import sample_quotation_data
from crane_crm.features.templates.schemas import (
    PreviewRequest,
    PrintRequest,
    TemplateCreate,
    TemplateDuplicateRequest,
    TemplateListResponse,
    TemplateResponse,
    TemplateUpdate,
)
from crane_crm.infra.logging import get_lazy_logger

logger = logging.getLogger(__name__)
lazy_logger = get_lazy_logger(__name__)

router = APIRouter(prefix="/templates", tags=["templates"])


@router.post(
    "/",
    response_model=TemplateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a quotation template",
)
async def create_template(
    payload: TemplateCreate,
    user: CurrentUserDep,
    session: SessionDep,
    service: TemplateServiceDep,
) -> TemplateResponse:
    template = await service.create_template(session, payload, created_by=user.id)
    return TemplateResponse.model_validate(template)


@router.get("/", response_model=TemplateListResponse, summary="List quotation templates")
async def list_templates(
    user: CurrentUserDep,
    session: SessionDep,
    service: TemplateServiceDep,
    include_inactive: Annotated[
        bool,
        Query(description="Include soft-deleted templates"),
    ] = False,
) -> TemplateListResponse:
    templates = await service.list_templates(session, include_inactive=include_inactive)
    return TemplateListResponse(
        items=[TemplateResponse.model_validate(t) for t in templates],
        total=len(templates),
    )


@router.get(
    "/default",
    response_model=TemplateResponse,
    summary="Get the default template",
    responses={404: {"description": "No default template configured"}},
)
async def get_default_template(
    user: CurrentUserDep,
    session: SessionDep,
    service: TemplateServiceDep,
) -> TemplateResponse:
    template = await service.get_default(session)
    if template is None:
        raise NotFoundException(
            detail="No default template configured",
            type="default-template-not-found",
        )
    return TemplateResponse.model_validate(template)


@router.get("/sample-data", summary="Sample render context for previews")
async def get_sample_data(user: CurrentUserDep) -> dict[str, Any]:
    return sample_quotation_data()


@router.post(
    "/preview",
    response_class=HTMLResponse,
    summary="Render a template preview",
    description="""
Render a stored (`template_id`) or inline (`template`) template.
Without either, the default template is used. Without `data`, sample
data is used.
""",
)
async def preview_template(
    payload: PreviewRequest,
    user: CurrentUserDep,
    session: SessionDep,
    service: TemplateServiceDep,
) -> HTMLResponse:
    html = await service.preview(
        session,
        template_id=payload.template_id,
        template=payload.template,
        data=payload.data,
    )
    return HTMLResponse(content=html)


@router.post(
    "/print",
    summary="Render a print document",
    description="""
Returns `application/pdf` when PDF rendering succeeds. When the PDF engine
is unavailable or fails, the print-ready HTML is returned instead with the
`X-PDF-Fallback: true` header.
""",
    responses={
        200: {
            "content": {"application/pdf": {}, "text/html": {}},
            "description": "PDF document or HTML fallback",
        }
    },
)
async def print_document(
    payload: PrintRequest,
    user: CurrentUserDep,
    session: SessionDep,
    service: TemplateServiceDep,
) -> Response:
    result = await service.generate_document(
        session,
        template_id=payload.template_id,
        template=payload.template,
        data=payload.data,
        output=payload.format,
        options=payload.options,
    )
    if isinstance(result, str):
        return HTMLResponse(content=result)

    if result.fallback:
        headers = {"X-PDF-Fallback": "true"}
        if result.error:
            logger.warning("Serving HTML fallback for print", extra={"error": result.error})
        return Response(content=result.data, media_type="text/html; charset=utf-8", headers=headers)

    quotation = (payload.data or {}).get("quotation")
    number = quotation.get("number") if isinstance(quotation, dict) else None
    filename = f"quotation-{number}.pdf" if number else "quotation.pdf"
    return Response(
        content=result.data,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get(
    "/{template_id}",
    response_model=TemplateResponse,
    summary="Get a template",
    responses={404: {"description": "Template not found"}},
)
async def get_template(
    template_id: int,
    user: CurrentUserDep,
    session: SessionDep,
    service: TemplateServiceDep,
) -> TemplateResponse:
    template = await service.get_template(session, template_id)
    return TemplateResponse.model_validate(template)


@router.put(
    "/{template_id}",
    response_model=TemplateResponse,
    summary="Update a template",
    responses={404: {"description": "Template not found"}},
)
async def update_template(
    template_id: int,
    payload: TemplateUpdate,
    user: CurrentUserDep,
    session: SessionDep,
    service: TemplateServiceDep,
) -> TemplateResponse:
    template = await service.update_template(session, template_id, payload)
    return TemplateResponse.model_validate(template)


@router.delete(
    "/{template_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Soft delete a template",
    responses={404: {"description": "Template not found"}},
)
async def delete_template(
    template_id: int,
    user: CurrentUserDep,
    session: SessionDep,
    service: TemplateServiceDep,
) -> Response:
    await service.delete_template(session, template_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{template_id}/set-default",
    response_model=TemplateResponse,
    summary="Make a template the default",
    responses={404: {"description": "Template not found"}},
)
async def set_default_template(
    template_id: int,
    user: CurrentUserDep,
    session: SessionDep,
    service: TemplateServiceDep,
) -> TemplateResponse:
    template = await service.set_default(session, template_id)
    return TemplateResponse.model_validate(template)


@router.post(
    "/{template_id}/duplicate",
    response_model=TemplateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Duplicate a template",
    responses={404: {"description": "Template not found"}},
)
async def duplicate_template(
    template_id: int,
    user: CurrentUserDep,
    session: SessionDep,
    service: TemplateServiceDep,
    payload: TemplateDuplicateRequest | None = None,
) -> TemplateResponse:
    template = await service.duplicate_template(
        session,
        template_id,
        payload.name if payload else None,
        created_by=user.id,
    )
    return TemplateResponse.model_validate(template)
