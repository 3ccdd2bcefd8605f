"""End-to-end HTTP flows through the FastAPI app."""
from ecoscan.core.exceptions import ClassificationUnavailable
from ecoscan.modules.accounts.models import Account
from ecoscan.modules.gateways.contracts import ComplianceAction, ComplianceVerdict, Retry
from ecoscan.modules.marketplace.models import Listing, ListingStatus
from ecoscan.modules.scans.models import ScanRecord
from tests.conftest import classified
from tests.testclient import TestClient

IMAGE = {"file": ("item.jpg", b"\xff\xd8\xff fake jpeg", "image/jpeg")}


def _guest_headers(client, device_id="guest_e2e"):
    response = client.post("/auth/guest", json={"device_id": device_id})
    assert response.status_code == 200
    return TestClient.device(response.json()["device_id"])


def test_health_endpoints(client):
    assert client.get("/livez").json() == {"status": "ok"}
    ready = client.get("/readyz")
    assert ready.status_code == 200
    assert ready.json()["details"]["database"] == "connected"
    assert "X-Request-ID" in ready.headers


def test_anonymous_requests_are_rejected(client):
    response = client.get("/accounts/me")
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "not_authenticated"


def test_invalid_token(client):
    response = client.get("/accounts/me", headers=TestClient.bearer("not-a-token"))
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "invalid_token"


def test_guest_scan_then_register_migrates(client, classifier, session):
    headers = _guest_headers(client)
    classifier.queue(classified("other", points=14, name="Ceramic mug"))

    scanned = client.post("/scans/", files=IMAGE, headers=headers)
    assert scanned.status_code == 201
    body = scanned.json()
    assert body["status"] == "approved"
    assert body["needs_choice"] is False
    assert body["image_url"].startswith("/uploads/")

    stats = client.get("/accounts/me/stats", headers=headers).json()
    assert stats["total_points"] == 14
    assert stats["scans_today"] == 1

    registered = client.post(
        "/auth/register",
        json={
            "email": "eco@example.com",
            "username": "eco",
            "password": "secret123",
            "device_id": "guest_e2e",
        },
    )
    assert registered.status_code == 201
    token = registered.json()
    assert token["migration"] == {"migrated": True, "scans_moved": 1, "total_points": 14}

    me = client.get("/accounts/me", headers=TestClient.bearer(token["access_token"])).json()
    assert me["is_guest"] is False
    assert me["stats"]["total_points"] == 14
    assert session.query(Account).filter(Account.is_guest.is_(True)).count() == 0


def test_unrecognised_photo_asks_for_retry(client, classifier, session):
    headers = _guest_headers(client)
    classifier.queue(Retry(reason="human_detected"))

    response = client.post("/scans/", files=IMAGE, headers=headers)

    assert response.status_code == 200
    assert response.json() == {"retry": True, "reason": "human_detected"}
    assert session.query(ScanRecord).count() == 0

    retaken = client.post("/scans/", files=IMAGE, headers=headers)
    assert retaken.status_code == 201
    assert session.query(ScanRecord).count() == 1


def test_classifier_outage_is_503(client, classifier):
    headers = _guest_headers(client)
    classifier.queue(ClassificationUnavailable())
    response = client.post("/scans/", files=IMAGE, headers=headers)
    assert response.status_code == 503
    assert response.json()["error"]["code"] == "classification_unavailable"


def test_scan_choice_and_admin_review(client, classifier, member, member_headers, admin_headers):
    classifier.queue(classified("clothing", points=10))
    scan = client.post("/scans/", files=IMAGE, headers=member_headers).json()
    assert scan["status"] == "pending"
    assert {o["choice"]: o["points"] for o in scan["options"]} == {
        "donate": 20,
        "trade": 18,
        "discard": 10,
    }

    invalid = client.post(
        f"/scans/{scan['id']}/disposal", json={"choice": "special"}, headers=member_headers
    )
    assert invalid.status_code == 422
    assert invalid.json()["error"]["code"] == "invalid_disposal_choice"

    chosen = client.post(
        f"/scans/{scan['id']}/disposal", json={"choice": "donate"}, headers=member_headers
    )
    assert chosen.json()["final_points"] == 20

    again = client.post(
        f"/scans/{scan['id']}/disposal", json={"choice": "donate"}, headers=member_headers
    )
    assert again.status_code == 409

    forbidden = client.get("/admin/scans/pending", headers=member_headers)
    assert forbidden.status_code == 403

    pending = client.get("/admin/scans/pending", headers=admin_headers).json()
    assert [(p["id"], p["username"]) for p in pending] == [(scan["id"], member.username)]

    approved = client.post(f"/admin/scans/{scan['id']}/approve", headers=admin_headers)
    assert approved.json()["changed"] is True
    repeated = client.post(f"/admin/scans/{scan['id']}/approve", headers=admin_headers)
    assert repeated.json()["changed"] is False

    stats = client.get("/accounts/me/stats", headers=member_headers).json()
    assert (stats["total_points"], stats["pending_points"]) == (20, 0)

    inbox = client.get("/notifications/", headers=member_headers).json()
    assert [n["title"] for n in inbox] == ["Scan Approved!"]


def test_guests_are_kept_out_of_the_marketplace(client):
    headers = _guest_headers(client)
    response = client.post(
        "/listings/",
        json={"title": "Chair", "category": "other", "price_points": 10},
        headers=headers,
    )
    assert response.status_code == 403
    assert client.get("/listings/").status_code == 200


def test_listing_submission_and_purchase(
    client, session, compliance, make_member, token_for, admin_headers
):
    seller = make_member()
    buyer = make_member(points=100)
    seller_headers = TestClient.bearer(token_for(seller))
    buyer_headers = TestClient.bearer(token_for(buyer))

    draft = Listing(
        seller_id=seller.id,
        title="Road bike",
        category="other",
        price_points=60,
        status=ListingStatus.DRAFT,
    )
    session.add(draft)
    session.commit()

    compliance.verdict = ComplianceVerdict(
        risk_score=7, action=ComplianceAction.NEEDS_REVIEW, violations=["check brand"]
    )
    submitted = client.post(f"/listings/{draft.id}/submit", headers=seller_headers)
    assert submitted.status_code == 200
    assert submitted.json()["listing"]["status"] == "pending_review"
    assert submitted.json()["action"] == "needs_review"

    assert client.get(f"/listings/{draft.id}").status_code == 404
    approved = client.post(
        f"/admin/listings/{draft.id}/approve", json={"note": "ok"}, headers=admin_headers
    )
    assert approved.json()["listing"]["status"] == "active"

    browse = client.get("/listings/").json()
    assert [item["id"] for item in browse] == [draft.id]
    assert browse[0]["seller"]["display_name"] == seller.username

    own = client.post(f"/listings/{draft.id}/purchase", headers=seller_headers)
    assert own.status_code == 403

    order = client.post(f"/listings/{draft.id}/purchase", headers=buyer_headers)
    assert order.status_code == 201
    assert order.json()["status"] == "completed"

    late = client.post(f"/listings/{draft.id}/purchase", headers=buyer_headers)
    assert late.status_code == 409
    assert late.json()["error"]["code"] == "listing_unavailable"

    assert len(client.get("/orders", headers=seller_headers).json()) == 1
    conversations = client.get("/messages/conversations", headers=seller_headers).json()
    assert conversations[0]["counterpart_id"] == buyer.id
    assert conversations[0]["unread_count"] == 1

    marked = client.post(
        "/messages/read",
        params={"listing_id": draft.id, "counterpart_id": buyer.id},
        headers=seller_headers,
    )
    assert marked.json() == {"updated": 1}

    reply = client.post(
        "/messages/",
        json={"listing_id": draft.id, "receiver_id": buyer.id, "content": "See you at 5"},
        headers=seller_headers,
    )
    assert reply.status_code == 201
    thread = client.get(
        "/messages/thread",
        params={"listing_id": draft.id, "counterpart_id": seller.id},
        headers=buyer_headers,
    ).json()
    assert [m["content"] for m in thread][-1] == "See you at 5"


def test_rejected_submission_is_422(client, session, compliance, member, member_headers):
    draft = Listing(
        seller_id=member.id,
        title="Replica watch",
        category="other",
        price_points=20,
        status=ListingStatus.DRAFT,
    )
    session.add(draft)
    session.commit()
    compliance.verdict = ComplianceVerdict(
        risk_score=10, action=ComplianceAction.AUTO_REJECT, violations=["counterfeit"]
    )

    response = client.post(f"/listings/{draft.id}/submit", headers=member_headers)

    assert response.status_code == 422
    assert response.json()["error"]["details"]["violations"] == ["counterfeit"]


def test_insufficient_points_for_purchase(client, session, make_member, token_for):
    seller = make_member()
    buyer = make_member(points=5)
    listing = Listing(
        seller_id=seller.id,
        title="Sofa",
        category="other",
        price_points=80,
        status=ListingStatus.ACTIVE,
    )
    session.add(listing)
    session.commit()

    response = client.post(
        f"/listings/{listing.id}/purchase", headers=TestClient.bearer(token_for(buyer))
    )
    assert response.status_code == 400
    assert response.json()["error"]["details"] == {"required": 80, "available": 5}


def test_admin_notifications_and_roles(client, member, member_headers, admin_headers):
    sent = client.post(
        "/admin/notifications",
        json={"title": "Cleanup day", "message": "Join us on Saturday"},
        headers=admin_headers,
    )
    assert sent.status_code == 201
    assert sent.json()["target_account_id"] is None

    assert [n["title"] for n in client.get("/notifications/", headers=member_headers).json()] == [
        "Cleanup day"
    ]
    assert len(client.get("/admin/notifications", headers=admin_headers).json()) == 1

    deleted = client.delete(f"/admin/notifications/{sent.json()['id']}", headers=admin_headers)
    assert deleted.status_code == 204
    assert client.get("/notifications/", headers=member_headers).json() == []

    promoted = client.patch(
        f"/admin/accounts/{member.id}/role", json={"is_admin": True}, headers=admin_headers
    )
    assert promoted.json()["is_admin"] is True


def test_login_returns_token(client, make_member):
    make_member(email="login2@example.com", password="pass12345")
    bad = client.post("/auth/login", json={"email": "login2@example.com", "password": "nope"})
    assert bad.status_code == 401
    good = client.post(
        "/auth/login", json={"email": "login2@example.com", "password": "pass12345"}
    )
    assert good.status_code == 200
    assert good.json()["token_type"] == "bearer"
    assert good.json()["migration"] is None
