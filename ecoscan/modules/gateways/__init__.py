"""Contracts and HTTP/filesystem clients for external collaborators."""

from .contracts import (
    ClassificationGateway,
    ClassificationOutcome,
    ClassificationResult,
    ComplianceAction,
    ComplianceGateway,
    ComplianceVerdict,
    NotificationSink,
    Retry,
    Storage,
)

__all__ = [
    "ClassificationGateway",
    "ClassificationOutcome",
    "ClassificationResult",
    "ComplianceAction",
    "ComplianceGateway",
    "ComplianceVerdict",
    "NotificationSink",
    "Retry",
    "Storage",
]
