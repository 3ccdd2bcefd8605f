"""ReviewQueue: admin decisions on pending scans and listings."""
import pytest

from ecoscan.core.events import ListingPublished, ListingRejected, ScanApproved, ScanRejected
from ecoscan.core.exceptions import PermissionDeniedException
from ecoscan.modules.marketplace.models import Listing, ListingStatus
from ecoscan.modules.notifications.models import Notification, NotificationKind
from ecoscan.modules.review.service import ReviewQueue
from ecoscan.modules.scans.models import ScanStatus
from ecoscan.modules.scans.service import ScanLifecycle
from tests.conftest import actor_of, classified


def _chosen_scan(session, owner, choice="donate", category="clothing", points=10):
    lifecycle = ScanLifecycle(session)
    scan = lifecycle.record_scan(actor_of(owner), classified(category, points=points))
    return lifecycle.apply_disposal_choice(actor_of(owner), scan.id, choice)


def _listing_in_review(session, seller):
    listing = Listing(
        seller_id=seller.id,
        title="Camping stove",
        category="other",
        price_points=30,
        status=ListingStatus.PENDING_REVIEW,
    )
    session.add(listing)
    session.commit()
    session.refresh(listing)
    return listing


def test_pending_scans_need_a_choice(session, member, admin):
    chosen = _chosen_scan(session, member)
    ScanLifecycle(session).record_scan(actor_of(member), classified())  # no choice yet

    pending = ReviewQueue(session).pending_scans(actor_of(admin))
    assert [scan.id for scan in pending] == [chosen.id]


def test_review_requires_admin(session, member):
    with pytest.raises(PermissionDeniedException):
        ReviewQueue(session).pending_scans(actor_of(member))


def test_approve_scan_credits_owner(session, member, admin, bus):
    scan = _chosen_scan(session, member)

    outcome = ReviewQueue(session, bus=bus).approve_scan(actor_of(admin), scan.id)

    assert outcome.changed is True
    assert outcome.record.status == ScanStatus.APPROVED
    assert outcome.record.reviewed_by == admin.id
    session.refresh(member)
    assert member.total_points == 20
    assert member.pending_points == 0
    assert member.items_recycled == 1
    note = session.query(Notification).one()
    assert (note.title, note.kind) == ("Scan Approved!", NotificationKind.REWARD)
    assert [e.final_points for e in bus.of_type(ScanApproved)] == [20]


def test_decision_applies_only_once(session, member, admin, bus):
    scan = _chosen_scan(session, member)
    queue = ReviewQueue(session, bus=bus)
    queue.approve_scan(actor_of(admin), scan.id)

    again = queue.approve_scan(actor_of(admin), scan.id)
    rejected = queue.reject_scan(actor_of(admin), scan.id)

    assert again.changed is False
    assert rejected.changed is False
    assert rejected.record.status == ScanStatus.APPROVED
    session.refresh(member)
    assert member.total_points == 20
    assert len(bus.of_type(ScanApproved)) == 1
    assert bus.of_type(ScanRejected) == []


def test_reject_scan_releases_pending_points(session, member, admin, bus):
    scan = _chosen_scan(session, member, choice="recycle", category="electronics")

    outcome = ReviewQueue(session, bus=bus).reject_scan(actor_of(admin), scan.id)

    assert outcome.record.status == ScanStatus.REJECTED
    session.refresh(member)
    assert member.pending_points == 0
    assert member.total_points == 0
    note = session.query(Notification).one()
    assert (note.title, note.kind) == ("Scan Rejected", NotificationKind.ALERT)
    assert len(bus.of_type(ScanRejected)) == 1


def test_approving_traded_scan_keeps_single_draft(session, member, admin):
    scan = _chosen_scan(session, member, choice="trade")
    ReviewQueue(session).approve_scan(actor_of(admin), scan.id)
    listings = session.query(Listing).filter(Listing.scan_id == scan.id).all()
    assert len(listings) == 1
    assert listings[0].status == ListingStatus.DRAFT


def test_approving_guest_trade_creates_no_listing(session, make_guest, admin):
    guest = make_guest()
    scan = _chosen_scan(session, guest, choice="trade")
    ReviewQueue(session).approve_scan(actor_of(admin), scan.id)
    assert session.query(Listing).count() == 0


def test_listing_review(session, member, admin, bus):
    queue = ReviewQueue(session, bus=bus)
    approved = _listing_in_review(session, member)
    rejected = _listing_in_review(session, member)
    assert {item.id for item in queue.pending_listings(actor_of(admin))} == {
        approved.id,
        rejected.id,
    }

    ok = queue.approve_listing(actor_of(admin), approved.id, note="Looks fine")
    no = queue.reject_listing(actor_of(admin), rejected.id)

    assert ok.record.status == ListingStatus.ACTIVE
    assert ok.record.moderation_note == "Looks fine"
    assert no.record.status == ListingStatus.CANCELLED
    assert [e.listing_id for e in bus.of_type(ListingPublished)] == [approved.id]
    assert [e.listing_id for e in bus.of_type(ListingRejected)] == [rejected.id]
    titles = sorted(n.title for n in session.query(Notification).all())
    assert titles == ["Listing Approved!", "Listing Rejected"]

    assert queue.approve_listing(actor_of(admin), rejected.id).changed is False
