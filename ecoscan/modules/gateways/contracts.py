"""Value types and protocols for the external collaborators of the core.

Classification, compliance, blob storage and notification delivery are reached only through
these shapes, which keeps the lifecycles testable with in-memory fakes.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Union

from ecoscan.modules.scans.models import ItemCategory


@dataclass(frozen=True)
class ClassificationResult:
    name: str
    category: ItemCategory
    confidence: float
    points: int
    can_trade: bool = False
    has_creative_potential: bool = False
    suggestion: Optional[str] = None
    creative_suggestion: Optional[str] = None

    @property
    def flags(self) -> dict:
        return {
            "canTrade": self.can_trade,
            "hasCreativePotential": self.has_creative_potential,
            "creativeSuggestion": self.creative_suggestion,
        }


@dataclass(frozen=True)
class Retry:
    """The image could not be identified; nothing is stored and the caller should retry."""

    reason: str = "unidentified"


ClassificationOutcome = Union[ClassificationResult, Retry]


class ComplianceAction(str, enum.Enum):
    AUTO_APPROVE = "auto_approve"
    NEEDS_REVIEW = "needs_review"
    AUTO_REJECT = "auto_reject"


@dataclass(frozen=True)
class ComplianceVerdict:
    risk_score: int
    action: ComplianceAction
    violations: List[str] = field(default_factory=list)
    source: str = "remote"


class ClassificationGateway(Protocol):
    def classify(self, image: bytes, content_type: Optional[str] = None) -> ClassificationOutcome:
        ...


class ComplianceGateway(Protocol):
    def check(
        self,
        title: str,
        description: Optional[str],
        category: str,
        image_url: Optional[str] = None,
    ) -> ComplianceVerdict:
        ...


class Storage(Protocol):
    async def put(
        self, data: bytes, *, filename: Optional[str] = None, content_type: Optional[str] = None
    ) -> str:
        ...

    async def delete(self, url: str) -> bool:
        ...


class NotificationSink(Protocol):
    def push(
        self,
        target_account_id: Optional[int],
        title: str,
        message: str,
        kind: str,
        *,
        created_by: Optional[int] = None,
    ):
        ...


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
