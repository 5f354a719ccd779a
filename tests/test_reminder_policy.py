# tests/test_reminder_policy.py
import asyncio
from decimal import Decimal

import pytest

from feeflow.schemas.fee_due import FeeDueRecord, FeeDueWithRelations
from feeflow.services.reminder_policy import (
    REMINDER_THRESHOLDS,
    ReminderPolicyEngine,
    days_until_due,
    select_threshold,
)
from feeflow.services.status_engine import StatusTransitionEngine
from tests.conftest import TODAY, days_from_today

FLAGS = [t.flag for t in REMINDER_THRESHOLDS]


@pytest.fixture
def engine(database, dispatcher):
    return ReminderPolicyEngine(database.transaction, dispatcher, concurrency=3, flag_requires_delivery=False)


def run(engine, today=TODAY):
    return asyncio.run(engine.process_reminders(today))


def flags_of(fee_due):
    return {flag: getattr(fee_due, flag) for flag in FLAGS}


def test_days_until_due_is_calendar_difference():
    assert days_until_due(days_from_today(7), TODAY) == 7
    assert days_until_due(TODAY, TODAY) == 0
    assert days_until_due(days_from_today(-5), TODAY) == -5


@pytest.mark.parametrize("days,expected", [
    (7, "7days"), (3, "3days"), (1, "1day"), (-1, "overdue"), (-30, "overdue"),
    (6, None), (2, None), (0, None), (8, None),
])
def test_select_threshold(days, expected):
    record = FeeDueRecord(
        id="00000000-0000-0000-0000-000000000001",
        student_id="00000000-0000-0000-0000-000000000002",
        fee_structure_id="00000000-0000-0000-0000-000000000003",
        due_date=days_from_today(days),
        amount=Decimal("100"),
        amount_remaining=Decimal("100"),
        status="pending",
    )
    threshold = select_threshold(record, days)
    assert (threshold.key if threshold else None) == expected


def test_sent_threshold_is_not_selected_again():
    record = FeeDueRecord(
        id="00000000-0000-0000-0000-000000000001",
        student_id="00000000-0000-0000-0000-000000000002",
        fee_structure_id="00000000-0000-0000-0000-000000000003",
        due_date=days_from_today(3),
        amount=Decimal("100"),
        amount_remaining=Decimal("100"),
        status="pending",
        reminder_sent_3days=True,
    )
    assert select_threshold(record, 3) is None


def test_seven_days_out_sets_only_the_seven_day_flag(engine, seed, load, gateway):
    fee_id = seed(days_from_today(7))
    report = run(engine)

    assert flags_of(load(fee_id)) == {
        "reminder_sent_7days": True,
        "reminder_sent_3days": False,
        "reminder_sent_1day": False,
        "reminder_sent_overdue": False,
    }
    assert report.by_threshold == {"7days": 1}
    assert len(gateway.calls) == 4


def test_six_days_out_sends_nothing(engine, seed, load, gateway):
    fee_id = seed(days_from_today(6))
    report = run(engine)
    assert not any(flags_of(load(fee_id)).values())
    assert gateway.calls == []
    assert report.eligible == 0


def test_second_run_same_day_does_not_resend(engine, seed, load, gateway):
    fee_id = seed(days_from_today(3))
    run(engine)
    first_calls = len(gateway.calls)

    report = run(engine)
    assert len(gateway.calls) == first_calls
    assert report.reminders_attempted == 0
    assert load(fee_id).reminder_sent_3days is True


def test_overdue_reminder_fires_once_across_days(engine, seed, load, gateway):
    fee_id = seed(days_from_today(-5), status="overdue")
    run(engine, TODAY)
    after_first = len(gateway.calls)
    assert after_first == 4

    report = run(engine, days_from_today(1))
    assert len(gateway.calls) == after_first
    assert report.reminders_attempted == 0
    assert load(fee_id).reminder_sent_overdue is True


def test_status_then_reminders_end_to_end(database, engine, seed, load, gateway):
    fee_id = seed(days_from_today(3))

    StatusTransitionEngine(database.transaction).advance_statuses(TODAY)
    report = run(engine)

    fee_due = load(fee_id)
    assert fee_due.status == "pending"
    assert flags_of(fee_due) == {
        "reminder_sent_7days": False,
        "reminder_sent_3days": True,
        "reminder_sent_1day": False,
        "reminder_sent_overdue": False,
    }
    assert sorted(c["to"] for c in gateway.emails) == ["asha@example.com", "ravi@example.com"]
    assert sorted(c["to"] for c in gateway.sms) == ["9123456780", "9876543210"]
    assert report.deliveries_attempted == 4
    assert report.flags_set == 1


def test_missing_student_phone_skips_student_sms(engine, seed, load, gateway):
    fee_id = seed(days_from_today(3), phone=None)
    report = run(engine)

    assert len(gateway.calls) == 3
    assert [c["to"] for c in gateway.sms] == ["9123456780"]
    assert report.deliveries_attempted == 3
    assert load(fee_id).reminder_sent_3days is True


def test_paid_rows_are_not_reminded(engine, seed, gateway):
    seed(days_from_today(3), status="paid", amount_paid=Decimal("5000.00"))
    seed(days_from_today(3), status="partially_paid", amount_paid=Decimal("100.00"))
    report = run(engine)
    assert report.examined == 0
    assert gateway.calls == []


def test_failed_channels_still_set_flag_by_default(engine, seed, load, gateway):
    fee_id = seed(days_from_today(1))
    gateway.fail_recipients.update({"asha@example.com", "ravi@example.com", "9876543210", "9123456780"})

    report = run(engine)
    assert load(fee_id).reminder_sent_1day is True
    assert report.channel_failures == {
        "student_email": 1, "student_sms": 1, "parent_email": 1, "parent_sms": 1,
    }


def test_flag_withheld_when_delivery_required_and_nothing_delivered(database, dispatcher, seed, load, gateway):
    engine = ReminderPolicyEngine(database.transaction, dispatcher, flag_requires_delivery=True)
    fee_id = seed(days_from_today(1))
    gateway.fail_recipients.update({"asha@example.com", "ravi@example.com", "9876543210", "9123456780"})

    report = run(engine)
    assert load(fee_id).reminder_sent_1day is False
    assert report.flags_withheld == 1

    gateway.fail_recipients.clear()
    run(engine)
    assert load(fee_id).reminder_sent_1day is True


def test_one_slow_channel_does_not_block_the_rest(engine, seed, load, gateway):
    fee_id = seed(days_from_today(7))
    gateway.slow_recipients.add("9876543210")

    report = run(engine)
    assert report.channel_failures == {"student_sms": 1}
    assert load(fee_id).reminder_sent_7days is True


def test_missing_relations_are_skipped(engine, seed, gateway, monkeypatch):
    fee_id = seed(days_from_today(3))
    items = engine.load_candidates()
    orphan = FeeDueWithRelations(fee_due=items[0].fee_due, student=None, fee_structure=items[0].fee_structure)
    monkeypatch.setattr(engine, "load_candidates", lambda: [orphan])

    report = run(engine)
    assert report.skipped_missing_data == 1
    assert report.reminders_attempted == 0
    assert gateway.calls == []


def test_error_on_one_fee_due_does_not_stop_the_batch(engine, seed, load, monkeypatch):
    broken = seed(days_from_today(3))
    healthy = seed(days_from_today(7))
    send = engine.dispatcher.send_reminder

    async def flaky_send(student, fee, days):
        if days == 3:
            raise RuntimeError("template exploded")
        return await send(student, fee, days)

    monkeypatch.setattr(engine.dispatcher, "send_reminder", flaky_send)
    report = run(engine)

    assert report.processing_errors == 1
    assert load(broken).reminder_sent_3days is False
    assert load(healthy).reminder_sent_7days is True


def test_many_fee_dues_processed_with_bounded_concurrency(engine, seed, load):
    ids = [seed(days_from_today(1)) for _ in range(8)]
    report = run(engine)
    assert report.flags_set == 8
    assert all(load(i).reminder_sent_1day for i in ids)


def test_blank_stored_phone_gets_no_sms(engine, seed, load, gateway):
    fee_id = seed(days_from_today(3), phone="  ")
    report = run(engine)

    assert report.deliveries_attempted == 3
    assert [c["to"] for c in gateway.sms] == ["9123456780"]
    assert load(fee_id).reminder_sent_3days is True
