"""In-process event bus."""
import logging

from ecoscan.core.events import (
    DomainEvent,
    EventBus,
    LevelUp,
    ScanApproved,
    audit_log_handler,
    install_default_subscribers,
)


def test_handlers_match_by_type():
    bus = EventBus()
    everything, level_ups = [], []
    bus.subscribe(DomainEvent, everything.append)
    bus.subscribe(LevelUp, level_ups.append)

    bus.publish_all(
        [
            ScanApproved(scan_id=1, account_id=2, final_points=10),
            LevelUp(account_id=2, old_level=1, new_level=2),
        ]
    )

    assert [e.name for e in everything] == ["ScanApproved", "LevelUp"]
    assert [e.new_level for e in level_ups] == [2]


def test_failing_handler_does_not_stop_others(caplog):
    bus = EventBus()
    seen = []

    def broken(event):
        raise RuntimeError("handler bug")

    bus.subscribe(DomainEvent, broken)
    bus.subscribe(DomainEvent, seen.append)
    with caplog.at_level(logging.ERROR):
        bus.publish(LevelUp(account_id=1, old_level=1, new_level=2))

    assert len(seen) == 1
    assert "handler bug" in caplog.text


def test_subscribe_is_idempotent_and_unsubscribe_works():
    bus = EventBus()
    seen = []
    bus.subscribe(LevelUp, seen.append)
    bus.subscribe(LevelUp, seen.append)
    bus.publish(LevelUp(account_id=1, old_level=1, new_level=2))
    assert len(seen) == 1

    bus.unsubscribe(LevelUp, seen.append)
    bus.publish(LevelUp(account_id=1, old_level=2, new_level=3))
    assert len(seen) == 1


def test_payload_excludes_timestamp():
    event = ScanApproved(scan_id=5, account_id=7, final_points=20)
    assert event.payload() == {"scan_id": 5, "account_id": 7, "final_points": 20}
    assert event.occurred_at.tzinfo is not None


def test_audit_subscriber_logs_every_event(caplog):
    bus = install_default_subscribers(EventBus())
    with caplog.at_level(logging.INFO, logger="ecoscan.audit"):
        bus.publish(ScanApproved(scan_id=5, account_id=7, final_points=20))
    assert any(
        record.name == "ecoscan.audit" and "ScanApproved" in record.getMessage()
        for record in caplog.records
    )
    assert audit_log_handler in bus._handlers[DomainEvent]
