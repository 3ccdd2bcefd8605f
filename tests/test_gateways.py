"""Classifier/compliance HTTP clients and the local blob store."""
from types import SimpleNamespace

import pytest
import requests

from ecoscan.core.exceptions import ClassificationUnavailable
from ecoscan.modules.gateways.classification import (
    HttpClassificationGateway,
    normalize_classification,
)
from ecoscan.modules.gateways.compliance import (
    HttpComplianceGateway,
    action_for,
    clamp_score,
    keyword_verdict,
)
from ecoscan.modules.gateways.contracts import ClassificationResult, ComplianceAction, Retry
from ecoscan.modules.gateways.storage import LocalStorage
from ecoscan.modules.scans.models import ItemCategory


class FakeResponse:
    def __init__(self, payload=None, status_code=200, invalid_json=False):
        self.payload = payload
        self.status_code = status_code
        self.invalid_json = invalid_json

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        if self.invalid_json:
            raise ValueError("not json")
        return self.payload


class FakeHTTP:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []

    def post(self, url, **kwargs):
        self.requests.append(SimpleNamespace(url=url, **kwargs))
        if self.error is not None:
            raise self.error
        return self.response


# ==================== Classification ====================


def test_normalize_regular_item():
    result = normalize_classification(
        {"name": "Laptop", "category": "electronics", "confidence": 0.93, "points": 18}
    )
    assert isinstance(result, ClassificationResult)
    assert result.category == ItemCategory.ELECTRONICS
    assert result.points == 18
    assert result.suggestion.startswith("Take to an e-waste")


@pytest.mark.parametrize(
    "payload, reason",
    [
        ({"name": "", "category": "other"}, "unidentified"),
        ({"name": "Unknown", "category": "other"}, "unidentified"),
        ({"name": "human", "isHuman": True}, "human_detected"),
        ({"name": "Bottle", "isRetry": True}, "classifier_requested_retry"),
    ],
)
def test_unidentifiable_payloads_ask_for_retry(payload, reason):
    assert normalize_classification(payload) == Retry(reason=reason)


def test_creative_category_becomes_recyclable_with_bonus():
    result = normalize_classification(
        {
            "name": "Glass jar",
            "category": "creative",
            "points": 10,
            "creativeSuggestion": "Make a lantern",
        }
    )
    assert result.category == ItemCategory.RECYCLABLE
    assert result.points == 15
    assert result.has_creative_potential is True
    assert result.creative_suggestion == "Make a lantern"


def test_clothing_always_has_creative_potential_without_bonus():
    result = normalize_classification({"name": "Shirt", "category": "clothing", "points": 10})
    assert result.has_creative_potential is True
    assert result.points == 10


def test_unknown_category_falls_back_to_other_and_points_are_clamped():
    result = normalize_classification(
        {"name": "Widget", "category": "spaceship", "points": 99, "confidence": 4}
    )
    assert result.category == ItemCategory.OTHER
    assert result.points == 30
    assert result.confidence == 1.0


def test_classifier_client_posts_image():
    http = FakeHTTP(FakeResponse({"name": "Banana peel", "category": "compost", "points": 6}))
    gateway = HttpClassificationGateway(
        url="https://classifier.test/scan", api_key="k", session=http
    )

    result = gateway.classify(b"img", "image/png")

    assert result.category == ItemCategory.COMPOST
    [request] = http.requests
    assert request.url == "https://classifier.test/scan"
    assert request.headers == {"Authorization": "Bearer k"}
    assert request.files["file"][1:] == (b"img", "image/png")


@pytest.mark.parametrize(
    "http",
    [
        FakeHTTP(error=requests.ConnectionError("down")),
        FakeHTTP(FakeResponse(status_code=502)),
        FakeHTTP(FakeResponse(invalid_json=True)),
        FakeHTTP(FakeResponse({"error": "quota exceeded"})),
    ],
)
def test_classifier_failures_are_unavailable(http):
    gateway = HttpClassificationGateway(url="https://classifier.test/scan", session=http)
    with pytest.raises(ClassificationUnavailable) as exc_info:
        gateway.classify(b"img")
    assert exc_info.value.status_code == 503
    assert exc_info.value.error_code == "classification_unavailable"


def test_unconfigured_classifier_is_unavailable():
    with pytest.raises(ClassificationUnavailable):
        HttpClassificationGateway(url=None).classify(b"img")


# ==================== Compliance ====================


@pytest.mark.parametrize(
    "score, action",
    [
        (0, ComplianceAction.AUTO_APPROVE),
        (6, ComplianceAction.AUTO_APPROVE),
        (7, ComplianceAction.NEEDS_REVIEW),
        (8, ComplianceAction.NEEDS_REVIEW),
        (9, ComplianceAction.AUTO_REJECT),
        (10, ComplianceAction.AUTO_REJECT),
    ],
)
def test_action_thresholds(score, action):
    assert action_for(score) == action


def test_clamp_score():
    assert clamp_score(15) == 10
    assert clamp_score(-3) == 0
    assert clamp_score("7") == 7
    assert clamp_score(None) == 2


def test_keyword_fallback():
    flagged = keyword_verdict("Fake designer bag", None, ["fake", "weapon"])
    assert flagged.risk_score == 7
    assert flagged.action == ComplianceAction.NEEDS_REVIEW
    assert flagged.violations == ["Potential policy violation: fake"]
    assert flagged.source == "heuristic"

    clean = keyword_verdict("Wooden chair", "Sturdy", ["fake"])
    assert (clean.risk_score, clean.action) == (2, ComplianceAction.AUTO_APPROVE)


def test_remote_compliance_verdict():
    http = FakeHTTP(FakeResponse({"riskScore": 12, "violations": ["counterfeit goods"]}))
    gateway = HttpComplianceGateway(
        url="https://moderation.test/check", prohibited_terms=["fake"], session=http
    )
    verdict = gateway.check("Watch", "Shiny", "other", "/uploads/w.jpg")

    assert verdict.risk_score == 10
    assert verdict.action == ComplianceAction.AUTO_REJECT
    assert verdict.source == "remote"
    assert http.requests[0].json["imageUrl"] == "/uploads/w.jpg"


def test_remote_failure_falls_back_to_keywords():
    http = FakeHTTP(error=requests.Timeout("slow"))
    gateway = HttpComplianceGateway(
        url="https://moderation.test/check", prohibited_terms=["Stolen"], session=http
    )
    verdict = gateway.check("Stolen bike", None, "other")
    assert verdict.source == "heuristic"
    assert verdict.action == ComplianceAction.NEEDS_REVIEW


# ==================== Storage ====================


@pytest.mark.asyncio
async def test_local_storage_put_and_delete(tmp_path):
    storage = LocalStorage(tmp_path, "/uploads/")
    url = await storage.put(b"\x89PNG", filename="photo.PNG")

    assert url.startswith("/uploads/")
    assert url.endswith(".png")
    stored = tmp_path / url.rsplit("/", 1)[1]
    assert stored.read_bytes() == b"\x89PNG"

    assert await storage.delete(url) is True
    assert not stored.exists()
    assert await storage.delete(url) is False


@pytest.mark.asyncio
async def test_local_storage_rejects_foreign_urls(tmp_path):
    storage = LocalStorage(tmp_path)
    assert await storage.delete("https://elsewhere.test/a.jpg") is False
    assert await storage.delete("/uploads/../secret") is False

    url = await storage.put(b"data", content_type="image/jpeg")
    assert url.endswith((".jpg", ".jpe", ".jpeg"))
