"""Base service class for business logic."""

from __future__ import annotations

import logging

from crane_crm.infra.logging import get_lazy_logger


class BaseService:
    """Base class for service objects.

    Loggers:
        - self.logger: Standard logger for INFO/WARNING/ERROR
        - self._lazy: Lazy logger for DEBUG messages built from lambdas

    Example:
        class QuotationTemplateService(BaseService):
            async def get_template(self, session, template_id):
                self.logger.info("Fetching template", extra={"template_id": template_id})
                self._lazy.debug(lambda: f"Elements: {template.elements!r}")
    """

    def __init__(self) -> None:
        class_name = self.__class__.__name__
        self.logger = logging.getLogger(class_name)
        self._lazy = get_lazy_logger(class_name)
