"""HTTP client for the image classifier plus normalisation of its answers."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

import requests

from ecoscan.core.exceptions import ClassificationUnavailable
from ecoscan.modules.gateways.contracts import (
    ClassificationOutcome,
    ClassificationResult,
    Retry,
)
from ecoscan.modules.scans import policy
from ecoscan.modules.scans.models import ItemCategory

logger = logging.getLogger(__name__)

_UNIDENTIFIED_NAMES = {"", "human", "null", "unknown", "none"}
# Categories that always carry a reuse idea, without earning the creative bonus.
_CREATIVE_CATEGORIES = {ItemCategory.CLOTHING, ItemCategory.RECYCLABLE}


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes"}
    return bool(value)


def normalize_classification(data: Mapping[str, Any]) -> ClassificationOutcome:
    """Turn a raw classifier payload into a result the scan lifecycle can trust."""
    name = str(data.get("name") or "").strip()
    if _as_bool(data.get("isRetry")):
        return Retry(reason="classifier_requested_retry")
    if name.lower() in _UNIDENTIFIED_NAMES:
        if _as_bool(data.get("isHuman")):
            return Retry(reason="human_detected")
        return Retry(reason="unidentified")

    raw_category = str(data.get("category") or "").strip().lower()
    creative = _as_bool(data.get("hasCreativePotential"))
    if raw_category == "creative":
        category = ItemCategory.RECYCLABLE
        creative = True
    else:
        try:
            category = ItemCategory(raw_category)
        except ValueError:
            category = ItemCategory.OTHER

    points = policy.clamp_base_points(data.get("points"), creative=creative)

    try:
        confidence = float(data.get("confidence") or 0.0)
    except (TypeError, ValueError):
        confidence = 0.0
    confidence = min(max(confidence, 0.0), 1.0)

    can_trade = _as_bool(data.get("canTrade"))
    suggestion = data.get("aiSuggestion") or policy.default_suggestion(category, can_trade)
    has_creative = creative or category in _CREATIVE_CATEGORIES

    return ClassificationResult(
        name=name,
        category=category,
        confidence=confidence,
        points=points,
        can_trade=can_trade,
        has_creative_potential=has_creative,
        suggestion=suggestion,
        creative_suggestion=(data.get("creativeSuggestion") if has_creative else None),
    )


class HttpClassificationGateway:
    """Posts an image to the configured classifier endpoint."""

    def __init__(
        self,
        *,
        url: Optional[str],
        api_key: Optional[str] = None,
        timeout: float = 20.0,
        session: Optional[requests.Session] = None,
    ):
        self.url = url
        self.timeout = timeout
        self.headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
        self.session = session or requests.Session()

    def classify(
        self, image: bytes, content_type: Optional[str] = None
    ) -> ClassificationOutcome:
        if not self.url:
            raise ClassificationUnavailable("Item recognition is not configured")
        if not image:
            return Retry(reason="empty_image")

        try:
            response = self.session.post(
                self.url,
                files={"file": ("scan", image, content_type or "image/jpeg")},
                headers=self.headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as exc:
            logger.warning("Classifier request failed: %s", exc)
            raise ClassificationUnavailable() from exc
        except ValueError as exc:
            logger.warning("Classifier returned invalid JSON: %s", exc)
            raise ClassificationUnavailable() from exc

        if not isinstance(data, Mapping) or data.get("error"):
            logger.warning("Classifier reported an error: %s", data)
            raise ClassificationUnavailable()

        outcome = normalize_classification(data)
        logger.info("Classified image as %s", outcome)
        return outcome


__all__ = ["HttpClassificationGateway", "normalize_classification"]
