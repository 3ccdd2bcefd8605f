"""ScanLifecycle: recording scans and applying disposal choices."""
from datetime import date

import pytest

from ecoscan.core.events import ScanApproved, ScanRecorded
from ecoscan.core.exceptions import (
    InvalidDisposalChoice,
    ResourceNotFoundException,
    StaleTransition,
)
from ecoscan.modules.gateways.contracts import Retry
from ecoscan.modules.marketplace.models import Listing, ListingStatus
from ecoscan.modules.scans.models import ScanRecord, ScanStatus
from ecoscan.modules.scans.service import ScanLifecycle
from tests.conftest import actor_of, classified

TODAY = date(2026, 5, 4)


def _record(session, account, outcome, bus=None):
    return ScanLifecycle(session, bus=bus).record_scan(
        actor_of(account), outcome, image_url="/uploads/a.jpg", today=TODAY
    )


def test_retry_outcome_stores_nothing(session, member, bus):
    result = _record(session, member, Retry(reason="human_detected"), bus)
    assert result == Retry(reason="human_detected")
    assert session.query(ScanRecord).count() == 0
    assert bus.events == []
    session.refresh(member)
    assert member.streak == 0


def test_item_needing_a_choice_starts_pending(session, member, bus):
    scan = _record(session, member, classified("clothing", points=10), bus)

    assert scan.status == ScanStatus.PENDING
    assert scan.disposal_choice is None
    assert scan.base_points == scan.final_points == 10
    assert scan.image_url == "/uploads/a.jpg"
    session.refresh(member)
    assert member.pending_points == 10
    assert member.total_points == 0
    assert member.streak == 1
    assert member.last_scan_date == TODAY
    assert bus.names() == ["ScanRecorded"]


def test_other_category_is_approved_and_credited_at_once(session, member, bus):
    scan = _record(session, member, classified("other", points=12, name="Mug"), bus)

    assert scan.status == ScanStatus.APPROVED
    assert scan.reviewed_at is not None
    session.refresh(member)
    assert member.total_points == 12
    assert member.items_recycled == 1
    assert member.pending_points == 0
    [recorded] = bus.of_type(ScanRecorded)
    assert recorded.status == "approved"
    assert [e.final_points for e in bus.of_type(ScanApproved)] == [12]


def test_flags_and_default_suggestion_are_persisted(session, member):
    outcome = classified(
        "recyclable",
        points=15,
        can_trade=True,
        has_creative_potential=True,
        creative_suggestion="Turn it into a planter",
    )
    scan = _record(session, member, outcome)
    assert scan.flags["canTrade"] is True
    assert scan.flags["creativeSuggestion"] == "Turn it into a planter"
    assert scan.ai_suggestion.startswith("This item is still usable")


def test_discard_approves_immediately(session, member, bus):
    lifecycle = ScanLifecycle(session, bus=bus)
    scan = _record(session, member, classified("electronics", points=10))

    result = lifecycle.apply_disposal_choice(actor_of(member), scan.id, "discard")

    assert result.status == ScanStatus.APPROVED
    assert result.final_points == 5
    session.refresh(member)
    assert member.total_points == 5
    assert member.pending_points == 0
    assert member.items_recycled == 1
    assert [e.scan_id for e in bus.of_type(ScanApproved)] == [scan.id]


def test_reviewable_choice_moves_pending_total(session, member):
    lifecycle = ScanLifecycle(session)
    scan = _record(session, member, classified("clothing", points=10))

    result = lifecycle.apply_disposal_choice(actor_of(member), scan.id, "donate")

    assert result.status == ScanStatus.PENDING
    assert result.final_points == 20
    session.refresh(member)
    assert member.pending_points == 20
    assert member.total_points == 0


def test_choice_can_only_be_applied_once(session, member):
    lifecycle = ScanLifecycle(session)
    scan = _record(session, member, classified("clothing", points=10))
    lifecycle.apply_disposal_choice(actor_of(member), scan.id, "donate")

    with pytest.raises(StaleTransition) as exc_info:
        lifecycle.apply_disposal_choice(actor_of(member), scan.id, "trade")
    assert exc_info.value.detail["details"]["current_status"] == "pending"

    session.refresh(member)
    assert member.pending_points == 20


def test_choice_on_auto_approved_scan_is_rejected(session, member):
    scan = _record(session, member, classified("other", points=10))
    with pytest.raises(InvalidDisposalChoice):
        ScanLifecycle(session).apply_disposal_choice(actor_of(member), scan.id, "discard")


def test_invalid_choice_for_category(session, member):
    scan = _record(session, member, classified("hazardous", points=10, name="Battery"))
    with pytest.raises(InvalidDisposalChoice):
        ScanLifecycle(session).apply_disposal_choice(actor_of(member), scan.id, "discard")
    session.refresh(scan)
    assert scan.disposal_choice is None


def test_only_the_owner_may_choose(session, member, make_member):
    scan = _record(session, member, classified("clothing"))
    stranger = make_member()
    with pytest.raises(ResourceNotFoundException):
        ScanLifecycle(session).apply_disposal_choice(actor_of(stranger), scan.id, "donate")


def test_member_trade_choice_seeds_a_draft_listing(session, member):
    scan = _record(session, member, classified("clothing", points=10))
    ScanLifecycle(session).apply_disposal_choice(actor_of(member), scan.id, "trade")

    listing = session.query(Listing).filter(Listing.scan_id == scan.id).one()
    assert listing.status == ListingStatus.DRAFT
    assert listing.seller_id == member.id
    assert listing.price_points == 36
    assert listing.title == "Denim jacket"


def test_guest_trade_choice_does_not_create_a_listing(session, make_guest):
    guest = make_guest()
    scan = _record(session, guest, classified("clothing", points=10))
    ScanLifecycle(session).apply_disposal_choice(actor_of(guest), scan.id, "trade")
    assert session.query(Listing).count() == 0


def test_history_is_newest_first_and_private(session, member, make_member, admin):
    lifecycle = ScanLifecycle(session)
    first = _record(session, member, classified(name="First"))
    second = _record(session, member, classified(name="Second"))
    _record(session, make_member(), classified(name="Someone else"))

    history = lifecycle.list_scans(actor_of(member))
    assert [s.id for s in history] == [second.id, first.id]
    assert lifecycle.get_scan(actor_of(admin), first.id).id == first.id
    with pytest.raises(ResourceNotFoundException):
        lifecycle.get_scan(actor_of(make_member()), first.id)
