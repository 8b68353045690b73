from datetime import datetime, timedelta, timezone
from unittest.mock import patch

from sqlalchemy.exc import OperationalError

from opscadence.constants.statuses import InstanceStatus, SWEEP_TRANSITIONS
from opscadence.models.instance import Instance
from opscadence.services.status_updater import StatusUpdater

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


def status_of(db, instance_id):
    db.expire_all()
    return db.get(Instance, instance_id).status


def test_pending_becomes_ready_once_scheduled(db, clock, make_instance):
    due = make_instance(NOW - timedelta(hours=1), NOW + timedelta(hours=3))
    on_the_dot = make_instance(NOW, NOW + timedelta(hours=3))
    future = make_instance(NOW + timedelta(hours=1), NOW + timedelta(hours=5))

    report = StatusUpdater(db, clock).sweep()

    assert report.ready == 2
    assert report.missed == 0
    assert status_of(db, due.id) == "ready"
    assert status_of(db, on_the_dot.id) == "ready"
    assert status_of(db, future.id) == "pending"


def test_open_instances_past_deadline_are_missed(db, clock, make_instance):
    ready = make_instance(NOW - timedelta(hours=5), NOW - timedelta(hours=1), status="ready")
    in_progress = make_instance(NOW - timedelta(hours=5), NOW, status="in_progress")
    still_open = make_instance(NOW - timedelta(hours=5), NOW + timedelta(minutes=1), status="ready")

    report = StatusUpdater(db, clock).sweep()

    assert report.missed == 2
    assert status_of(db, ready.id) == "missed"
    assert status_of(db, in_progress.id) == "missed"
    assert status_of(db, still_open.id) == "ready"


def test_terminal_statuses_never_touched(db, clock, make_instance):
    past = (NOW - timedelta(days=2), NOW - timedelta(days=1))
    ids = [make_instance(*past, status=s).id for s in ("completed", "skipped", "missed")]

    report = StatusUpdater(db, clock).sweep()

    assert report.updated_count == 0
    assert [status_of(db, i) for i in ids] == ["completed", "skipped", "missed"]


def test_stale_pending_goes_straight_to_missed_and_counts_once(db, clock, make_instance):
    stale = make_instance(NOW - timedelta(days=2), NOW - timedelta(days=1))

    report = StatusUpdater(db, clock).sweep()

    assert report.ready == 1
    assert report.missed == 1
    assert report.updated_count == 1
    assert status_of(db, stale.id) == "missed"


def test_second_sweep_is_a_no_op(db, clock, make_instance):
    make_instance(NOW - timedelta(hours=1), NOW + timedelta(hours=3))
    make_instance(NOW - timedelta(hours=5), NOW - timedelta(hours=1), status="ready")
    updater = StatusUpdater(db, clock)

    assert updater.sweep().updated_count == 2
    assert updater.sweep().updated_count == 0


def test_sweep_follows_the_clock(db, clock, make_instance):
    instance = make_instance(NOW + timedelta(hours=1), NOW + timedelta(hours=2))
    updater = StatusUpdater(db, clock)

    updater.sweep()
    assert status_of(db, instance.id) == "pending"

    clock.advance(hours=1)
    updater.sweep()
    assert status_of(db, instance.id) == "ready"

    clock.advance(hours=1)
    updater.sweep()
    assert status_of(db, instance.id) == "missed"


def test_compare_and_set_skips_rows_changed_concurrently(db, clock, make_instance):
    instance = make_instance(NOW - timedelta(hours=1), NOW + timedelta(hours=3))
    updater = StatusUpdater(db, clock)

    # A user completes the instance between candidate selection and update
    db.query(Instance).filter(Instance.id == instance.id).update({Instance.status: "completed"})
    db.commit()

    sources = SWEEP_TRANSITIONS[InstanceStatus.READY]
    assert updater._transition(instance.id, sources, InstanceStatus.READY, NOW) is False
    assert status_of(db, instance.id) == "completed"


def test_row_failure_recorded_and_sweep_continues(db, clock, make_instance):
    first = make_instance(NOW - timedelta(hours=1), NOW + timedelta(hours=3))
    second = make_instance(NOW - timedelta(hours=2), NOW + timedelta(hours=3))
    first_id = first.id
    updater = StatusUpdater(db, clock)
    original = updater._transition

    def flaky(instance_id, *args):
        if instance_id == first_id:
            raise OperationalError("UPDATE", {}, Exception("database is locked"))
        return original(instance_id, *args)

    with patch.object(updater, "_transition", side_effect=flaky):
        report = updater.sweep()

    assert report.failed_ids == [first_id]
    assert len(report.errors) == 1
    assert report.ready == 1
    assert status_of(db, first.id) == "pending"
    assert status_of(db, second.id) == "ready"
