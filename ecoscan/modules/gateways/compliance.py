"""Listing compliance checks: remote moderation service with a keyword fallback."""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Mapping, Optional

import requests

from ecoscan.modules.gateways.contracts import ComplianceAction, ComplianceVerdict

logger = logging.getLogger(__name__)

REVIEW_THRESHOLD = 7
REJECT_THRESHOLD = 9
KEYWORD_HIT_SCORE = 7
CLEAN_SCORE = 2


def action_for(risk_score: int) -> ComplianceAction:
    if risk_score < REVIEW_THRESHOLD:
        return ComplianceAction.AUTO_APPROVE
    if risk_score < REJECT_THRESHOLD:
        return ComplianceAction.NEEDS_REVIEW
    return ComplianceAction.AUTO_REJECT


def clamp_score(value: Any) -> int:
    try:
        score = int(round(float(value)))
    except (TypeError, ValueError):
        return CLEAN_SCORE
    return min(10, max(0, score))


def keyword_verdict(
    title: str, description: Optional[str], terms: Iterable[str]
) -> ComplianceVerdict:
    """Local heuristic used whenever the remote check is missing or failing."""
    text = f"{title} {description or ''}".lower()
    hits = sorted({term for term in terms if term and term in text})
    score = KEYWORD_HIT_SCORE if hits else CLEAN_SCORE
    violations = [f"Potential policy violation: {term}" for term in hits]
    return ComplianceVerdict(
        risk_score=score,
        action=action_for(score),
        violations=violations,
        source="heuristic",
    )


def verdict_from_payload(data: Mapping[str, Any]) -> ComplianceVerdict:
    score = clamp_score(data.get("riskScore"))
    violations = data.get("violations")
    if not isinstance(violations, list):
        violations = []
    return ComplianceVerdict(
        risk_score=score,
        action=action_for(score),
        violations=[str(v) for v in violations],
        source="remote",
    )


class HttpComplianceGateway:
    """Calls the moderation endpoint; falls back to keywords when it is unreachable."""

    def __init__(
        self,
        *,
        url: Optional[str],
        prohibited_terms: List[str],
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self.url = url
        self.prohibited_terms = [term.lower() for term in prohibited_terms]
        self.timeout = timeout
        self.headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
        self.session = session or requests.Session()

    def check(
        self,
        title: str,
        description: Optional[str],
        category: str,
        image_url: Optional[str] = None,
    ) -> ComplianceVerdict:
        if not self.url:
            return keyword_verdict(title, description, self.prohibited_terms)

        payload = {
            "title": title,
            "description": description,
            "category": category,
            "imageUrl": image_url,
        }
        try:
            response = self.session.post(
                self.url, json=payload, headers=self.headers, timeout=self.timeout
            )
            response.raise_for_status()
            data = response.json()
            if not isinstance(data, Mapping):
                raise ValueError("compliance payload is not an object")
        except (requests.RequestException, ValueError) as exc:
            logger.warning("Compliance service unavailable, using keywords: %s", exc)
            return keyword_verdict(title, description, self.prohibited_terms)

        return verdict_from_payload(data)


__all__ = [
    "HttpComplianceGateway",
    "action_for",
    "clamp_score",
    "keyword_verdict",
    "verdict_from_payload",
]
