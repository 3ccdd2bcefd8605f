"""FastAPI providers for the external gateways; tests swap them via dependency_overrides."""

from __future__ import annotations

from functools import lru_cache

from ecoscan.core.config import settings
from ecoscan.modules.gateways.classification import HttpClassificationGateway
from ecoscan.modules.gateways.compliance import HttpComplianceGateway
from ecoscan.modules.gateways.storage import LocalStorage


@lru_cache
def get_classification_gateway() -> HttpClassificationGateway:
    return HttpClassificationGateway(
        url=settings.classifier_url,
        api_key=settings.classifier_api_key,
        timeout=settings.classifier_timeout,
    )


@lru_cache
def get_compliance_gateway() -> HttpComplianceGateway:
    return HttpComplianceGateway(
        url=settings.compliance_url,
        api_key=settings.compliance_api_key,
        timeout=settings.compliance_timeout,
        prohibited_terms=settings.prohibited_term_list,
    )


@lru_cache
def get_storage() -> LocalStorage:
    return LocalStorage(settings.uploads_root, settings.uploads_base_url)


__all__ = [
    "get_classification_gateway",
    "get_compliance_gateway",
    "get_storage",
]
