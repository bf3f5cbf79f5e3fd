import unittest
import uuid
from datetime import date, timedelta

from budgetbook.errors import InactiveTemplate, InvalidFrequency, NotFound, StoreError
from budgetbook.recurring import (
    Frequency, RecurringEngine, compute_next_due_date, materialize, monthly_equivalent, new_template,
)
from budgetbook.store import MemoryStore


def _user(store, name="Alice"):
    user = {"id": str(uuid.uuid4()), "name": name}
    store.insert_user(user)
    return user["id"]


def _template(store, user_id, **overrides):
    fields = {
        "name": "Rent",
        "categoryId": str(uuid.uuid4()),
        "amount": 1200.0,
        "type": "expense",
        "frequency": "monthly",
        "startDate": "2024-01-01",
        "notes": "",
    }
    fields.update(overrides)
    rec = new_template(user_id, fields)
    store.insert("recurring", rec, user_id)
    return rec


class TestNextDueDate(unittest.TestCase):
    def test_fixed_day_steps(self):
        self.assertEqual(compute_next_due_date(date(2024, 1, 1), "weekly"), date(2024, 1, 8))
        self.assertEqual(compute_next_due_date(date(2024, 12, 25), "biweekly"), date(2025, 1, 8))

    def test_calendar_steps(self):
        self.assertEqual(compute_next_due_date(date(2024, 1, 15), Frequency.MONTHLY), date(2024, 2, 15))
        self.assertEqual(compute_next_due_date(date(2024, 11, 30), "quarterly"), date(2025, 2, 28))
        self.assertEqual(compute_next_due_date(date(2023, 6, 1), "yearly"), date(2024, 6, 1))

    def test_month_end_clamps_to_last_day(self):
        self.assertEqual(compute_next_due_date(date(2024, 1, 31), "monthly"), date(2024, 2, 29))
        self.assertEqual(compute_next_due_date(date(2023, 1, 31), "monthly"), date(2023, 2, 28))
        self.assertEqual(compute_next_due_date(date(2024, 2, 29), "yearly"), date(2025, 2, 28))

    def test_string_in_string_out(self):
        self.assertEqual(compute_next_due_date("2024-01-31", "monthly"), "2024-02-29")

    def test_always_strictly_later(self):
        start = date(2023, 12, 28)
        for offset in range(0, 400, 3):
            d = start + timedelta(days=offset)
            for f in Frequency:
                self.assertGreater(compute_next_due_date(d, f), d, f"{d} {f}")

    def test_unknown_frequency_is_rejected(self):
        with self.assertRaises(InvalidFrequency):
            compute_next_due_date(date(2024, 1, 1), "daily")
        with self.assertRaises(InvalidFrequency):
            Frequency.parse(None)

    def test_parse_is_case_insensitive(self):
        self.assertIs(Frequency.parse(" Weekly "), Frequency.WEEKLY)

    def test_monthly_equivalent(self):
        self.assertEqual(monthly_equivalent(100, "weekly"), 400)
        self.assertEqual(monthly_equivalent(100, "biweekly"), 200)
        self.assertAlmostEqual(monthly_equivalent(300, "quarterly"), 100)
        self.assertAlmostEqual(monthly_equivalent(1200, "yearly"), 100)


class TestMaterialize(unittest.TestCase):
    def test_notes_tagging(self):
        tpl = {"id": "r1", "userId": "u1", "notes": "Flat", "amount": 5, "type": "expense"}
        self.assertEqual(materialize(tpl, "2024-01-01", "Recurring")["notes"], "Flat (Recurring)")
        self.assertEqual(materialize(tpl, "2024-01-01", "Manual")["notes"], "Flat (Manual)")
        tpl["notes"] = ""
        self.assertEqual(materialize(tpl, "2024-01-01", "Recurring")["notes"], "Recurring transaction")
        self.assertEqual(materialize(tpl, "2024-01-01", "Manual")["notes"], "Manual recurring transaction")

    def test_back_reference(self):
        tx = materialize({"id": "r1", "userId": "u1"}, "2024-05-01", "Recurring")
        self.assertTrue(tx["isRecurring"])
        self.assertEqual(tx["recurringId"], "r1")
        self.assertEqual(tx["date"], "2024-05-01")

    def test_new_template_starts_due_on_start_date(self):
        rec = new_template("u1", {"name": "x", "categoryId": "c", "amount": 1, "type": "income",
                                  "frequency": "weekly", "startDate": "2024-03-03"})
        self.assertEqual(rec["nextDueDate"], "2024-03-03")
        self.assertTrue(rec["isActive"])


class TestSweep(unittest.TestCase):
    def setUp(self):
        self.store = MemoryStore()
        self.engine = RecurringEngine(self.store)
        self.uid = _user(self.store)

    def test_due_template_materializes_on_due_date(self):
        tpl = _template(self.store, self.uid)
        count = self.engine.process_recurring_transactions(today=date(2024, 1, 1))
        self.assertEqual(count, 1)

        txs = self.store.get_all("transactions", self.uid)
        self.assertEqual(len(txs), 1)
        self.assertEqual(txs[0]["date"], "2024-01-01")
        self.assertEqual(txs[0]["recurringId"], tpl["id"])
        self.assertEqual(txs[0]["amount"], 1200.0)
        self.assertEqual(self.store.get_by_id("recurring", tpl["id"], self.uid)["nextDueDate"], "2024-02-01")

    def test_second_sweep_same_day_creates_nothing(self):
        _template(self.store, self.uid)
        self.assertEqual(self.engine.process_recurring_transactions(today=date(2024, 1, 1)), 1)
        self.assertEqual(self.engine.process_recurring_transactions(today=date(2024, 1, 1)), 0)
        self.assertEqual(len(self.store.get_all("transactions", self.uid)), 1)

    def test_late_sweep_keeps_due_date(self):
        _template(self.store, self.uid, notes="Flat")
        self.engine.process_recurring_transactions(today=date(2024, 1, 20))
        tx = self.store.get_all("transactions", self.uid)[0]
        self.assertEqual(tx["date"], "2024-01-01")
        self.assertEqual(tx["notes"], "Flat (Recurring)")

    def test_future_and_inactive_templates_are_skipped(self):
        _template(self.store, self.uid, startDate="2024-02-01")
        off = _template(self.store, self.uid)
        self.store.update("recurring", off["id"], {"isActive": False}, self.uid)
        self.assertEqual(self.engine.process_recurring_transactions(today=date(2024, 1, 15)), 0)

    def test_single_advance_per_sweep(self):
        tpl = _template(self.store, self.uid)
        self.assertEqual(self.engine.process_recurring_transactions(today=date(2024, 3, 15)), 1)
        self.assertEqual(self.store.get_by_id("recurring", tpl["id"], self.uid)["nextDueDate"], "2024-02-01")
        self.assertEqual(self.engine.process_recurring_transactions(today=date(2024, 3, 15)), 1)
        self.assertEqual(self.engine.process_recurring_transactions(today=date(2024, 3, 15)), 1)
        self.assertEqual(self.engine.process_recurring_transactions(today=date(2024, 3, 15)), 0)

    def test_catch_up_materializes_every_missed_period(self):
        engine = RecurringEngine(self.store, catch_up=True)
        tpl = _template(self.store, self.uid)
        self.assertEqual(engine.process_recurring_transactions(today=date(2024, 3, 15)), 3)
        dates = sorted(t["date"] for t in self.store.get_all("transactions", self.uid))
        self.assertEqual(dates, ["2024-01-01", "2024-02-01", "2024-03-01"])
        self.assertEqual(self.store.get_by_id("recurring", tpl["id"], self.uid)["nextDueDate"], "2024-04-01")

    def test_sweep_covers_every_user(self):
        other = _user(self.store, "Bob")
        _template(self.store, self.uid)
        _template(self.store, other, frequency="weekly")
        self.assertEqual(self.engine.process_recurring_transactions(today=date(2024, 1, 1)), 2)
        self.assertEqual(len(self.store.get_all("transactions", other)), 1)

    def test_one_bad_template_does_not_stop_the_rest(self):
        bad = new_template(self.uid, {"name": "Bad", "categoryId": "c", "amount": 1, "type": "expense",
                                      "frequency": "monthly", "startDate": "2024-01-01"})
        bad["frequency"] = "fortnightly"
        self.store.insert("recurring", bad, self.uid)
        good = _template(self.store, self.uid)

        with self.assertLogs("budgetbook.recurring", level="ERROR"):
            count = self.engine.process_recurring_transactions(today=date(2024, 1, 1))

        self.assertEqual(count, 1)
        txs = self.store.get_all("transactions", self.uid)
        self.assertEqual([t["recurringId"] for t in txs], [good["id"]])
        self.assertEqual(self.store.get_by_id("recurring", bad["id"], self.uid)["nextDueDate"], "2024-01-01")

    def test_sweep_is_not_reentrant(self):
        _template(self.store, self.uid)
        self.engine._sweep_lock.acquire()
        try:
            self.assertEqual(self.engine.process_recurring_transactions(today=date(2024, 1, 1)), 0)
        finally:
            self.engine._sweep_lock.release()
        self.assertEqual(self.store.get_all("transactions", self.uid), [])


class TestManualTrigger(unittest.TestCase):
    def setUp(self):
        self.store = MemoryStore()
        self.engine = RecurringEngine(self.store)
        self.uid = _user(self.store)

    def test_dated_today_and_advanced_from_today(self):
        tpl = _template(self.store, self.uid, notes="Flat")
        tx = self.engine.process_specific_recurring(tpl["id"], self.uid, today=date(2024, 1, 15))
        self.assertEqual(tx["date"], "2024-01-15")
        self.assertEqual(tx["notes"], "Flat (Manual)")
        self.assertEqual(self.store.get_by_id("recurring", tpl["id"], self.uid)["nextDueDate"], "2024-02-15")
        self.assertEqual(len(self.store.get_all("transactions", self.uid)), 1)

    def test_inactive_template_fails_without_writes(self):
        tpl = _template(self.store, self.uid)
        self.store.update("recurring", tpl["id"], {"isActive": False}, self.uid)
        before = self.store.get_by_id("recurring", tpl["id"], self.uid)

        with self.assertRaises(InactiveTemplate):
            self.engine.process_specific_recurring(tpl["id"], self.uid, today=date(2024, 1, 15))

        self.assertEqual(self.store.get_all("transactions", self.uid), [])
        self.assertEqual(self.store.get_by_id("recurring", tpl["id"], self.uid), before)

    def test_missing_template(self):
        with self.assertRaises(NotFound):
            self.engine.process_specific_recurring("nope", self.uid)

    def test_other_users_template_looks_missing(self):
        tpl = _template(self.store, self.uid)
        other = _user(self.store, "Bob")
        with self.assertRaises(NotFound):
            self.engine.process_specific_recurring(tpl["id"], other)
        self.assertEqual(self.store.get_all("transactions", other), [])


class TestUserLocks(unittest.TestCase):
    def test_forget_user_drops_lock(self):
        engine = RecurringEngine(MemoryStore())
        lock = engine._user_lock("u1")
        self.assertIs(engine._user_lock("u1"), lock)
        engine.forget_user("u1")
        self.assertNotIn("u1", engine._user_locks)
        engine.forget_user("u1")


class _BrokenRecurringStore(MemoryStore):
    def update(self, collection, record_id, fields, user_id):
        if collection == "recurring":
            raise StoreError("disk full")
        return super().update(collection, record_id, fields, user_id)


class TestInsertAdvanceUnit(unittest.TestCase):
    def test_failed_advance_removes_the_transaction(self):
        store = _BrokenRecurringStore()
        engine = RecurringEngine(store)
        uid = _user(store)
        tpl = _template(store, uid)

        with self.assertRaises(StoreError):
            engine.process_specific_recurring(tpl["id"], uid, today=date(2024, 1, 15))
        self.assertEqual(store.get_all("transactions", uid), [])

        with self.assertLogs("budgetbook.recurring", level="ERROR"):
            self.assertEqual(engine.process_recurring_transactions(today=date(2024, 1, 1)), 0)
        self.assertEqual(store.get_all("transactions", uid), [])


if __name__ == "__main__":
    unittest.main()
