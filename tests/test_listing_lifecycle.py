"""ListingLifecycle: publishing, editing, compliance submission and withdrawal."""
import pytest

from ecoscan.core.events import ListingPublished
from ecoscan.core.exceptions import (
    ComplianceRejected,
    GuestNotAllowedException,
    PermissionDeniedException,
    ResourceNotFoundException,
    StaleTransition,
)
from ecoscan.modules.gateways.contracts import ComplianceAction, ComplianceVerdict
from ecoscan.modules.marketplace.models import Listing, ListingStatus
from ecoscan.modules.marketplace.schemas import ListingCreate, ListingUpdate
from ecoscan.modules.marketplace.service import ListingLifecycle
from tests.conftest import FakeCompliance, actor_of


def _payload(**overrides):
    data = {
        "title": "  Vintage lamp ",
        "description": "Works fine",
        "category": "electronics",
        "price_points": 40,
    }
    data.update(overrides)
    return ListingCreate(**data)


def _draft(session, seller, **fields):
    listing = Listing(
        seller_id=seller.id,
        title=fields.pop("title", "Old bike"),
        description=fields.pop("description", "Rideable"),
        category=fields.pop("category", "other"),
        price_points=fields.pop("price_points", 50),
        status=fields.pop("status", ListingStatus.DRAFT),
        **fields,
    )
    session.add(listing)
    session.commit()
    session.refresh(listing)
    return listing


def _verdict(score, action, violations=()):
    return ComplianceVerdict(risk_score=score, action=action, violations=list(violations))


def test_create_listing_publishes_directly(session, member, bus):
    listing = ListingLifecycle(session, bus=bus).create_listing(actor_of(member), _payload())
    assert listing.status == ListingStatus.ACTIVE
    assert listing.title == "Vintage lamp"
    assert listing.seller_id == member.id
    assert [e.listing_id for e in bus.of_type(ListingPublished)] == [listing.id]


def test_guests_cannot_sell(session, make_guest):
    with pytest.raises(GuestNotAllowedException):
        ListingLifecycle(session).create_listing(actor_of(make_guest()), _payload())


def test_update_listing_changes_open_listing(session, member):
    lifecycle = ListingLifecycle(session)
    listing = lifecycle.create_listing(actor_of(member), _payload())
    updated = lifecycle.update_listing(
        actor_of(member), listing.id, ListingUpdate(price_points=55, title=" Lamp ")
    )
    assert updated.price_points == 55
    assert updated.title == "Lamp"


def test_sold_listing_cannot_be_edited(session, member):
    listing = _draft(session, member, status=ListingStatus.SOLD)
    with pytest.raises(StaleTransition) as exc_info:
        ListingLifecycle(session).update_listing(
            actor_of(member), listing.id, ListingUpdate(price_points=10)
        )
    assert exc_info.value.detail["details"]["current_status"] == "sold"


def test_only_seller_can_change_listing(session, member, make_member):
    listing = _draft(session, member)
    with pytest.raises(PermissionDeniedException):
        ListingLifecycle(session).cancel(actor_of(make_member()), listing.id)


def test_submit_low_risk_goes_live(session, member, bus):
    compliance = FakeCompliance(_verdict(3, ComplianceAction.AUTO_APPROVE))
    listing = _draft(session, member)

    result = ListingLifecycle(session, compliance=compliance, bus=bus).submit(
        actor_of(member), listing.id
    )

    assert result.listing.status == ListingStatus.ACTIVE
    assert result.listing.risk_score == 3
    assert compliance.calls == [("Old bike", "Rideable", "other", None)]
    assert bus.names() == ["ListingPublished"]


def test_submit_medium_risk_waits_for_review(session, member, bus):
    compliance = FakeCompliance(
        _verdict(8, ComplianceAction.NEEDS_REVIEW, ["Potential policy violation: fake"])
    )
    listing = _draft(session, member)

    result = ListingLifecycle(session, compliance=compliance, bus=bus).submit(
        actor_of(member), listing.id
    )

    assert result.listing.status == ListingStatus.PENDING_REVIEW
    assert result.listing.violations == ["Potential policy violation: fake"]
    assert bus.events == []


def test_submit_high_risk_is_rejected_but_keeps_the_draft(session, member):
    compliance = FakeCompliance(_verdict(10, ComplianceAction.AUTO_REJECT, ["weapon"]))
    listing = _draft(session, member)

    with pytest.raises(ComplianceRejected) as exc_info:
        ListingLifecycle(session, compliance=compliance).submit(actor_of(member), listing.id)
    assert exc_info.value.detail["details"] == {"risk_score": 10, "violations": ["weapon"]}

    session.refresh(listing)
    assert listing.status == ListingStatus.DRAFT
    assert listing.risk_score == 10


def test_only_drafts_can_be_submitted(session, member, compliance):
    listing = _draft(session, member, status=ListingStatus.ACTIVE)
    with pytest.raises(StaleTransition):
        ListingLifecycle(session, compliance=compliance).submit(actor_of(member), listing.id)
    assert compliance.calls == []


def test_cancel_is_final(session, member):
    lifecycle = ListingLifecycle(session)
    listing = _draft(session, member, status=ListingStatus.ACTIVE)
    assert lifecycle.cancel(actor_of(member), listing.id).status == ListingStatus.CANCELLED
    with pytest.raises(StaleTransition):
        lifecycle.cancel(actor_of(member), listing.id)


def test_browse_shows_active_listings_only(session, member):
    lifecycle = ListingLifecycle(session)
    active = lifecycle.create_listing(actor_of(member), _payload(category="clothing"))
    lifecycle.create_listing(actor_of(member), _payload(category="electronics"))
    _draft(session, member)

    assert len(lifecycle.browse()) == 2
    only_clothing = lifecycle.browse(category="clothing")
    assert [item.id for item in only_clothing] == [active.id]
    assert only_clothing[0].seller.display_name == member.username


def test_non_active_listing_hidden_from_strangers(session, member, make_member, admin):
    lifecycle = ListingLifecycle(session)
    draft = _draft(session, member)

    assert lifecycle.get_listing(actor_of(member), draft.id).id == draft.id
    assert lifecycle.get_listing(actor_of(admin), draft.id).id == draft.id
    with pytest.raises(ResourceNotFoundException):
        lifecycle.get_listing(None, draft.id)
    with pytest.raises(ResourceNotFoundException):
        lifecycle.get_listing(actor_of(make_member()), draft.id)


def test_mine_lists_own_listings(session, member, make_member):
    lifecycle = ListingLifecycle(session)
    own = _draft(session, member)
    _draft(session, make_member())
    assert [item.id for item in lifecycle.mine(actor_of(member))] == [own.id]
