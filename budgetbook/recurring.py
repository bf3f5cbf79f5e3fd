# budgetbook/recurring.py
"""
Recurring templates and the due-date engine.

Two ways a template turns into a transaction:

* the scheduled sweep (``process_recurring_transactions``) dates the
  transaction on the template's ``nextDueDate`` and advances from that date,
  so a late sweep still records history on the day it was due;
* the manual trigger (``process_specific_recurring``) dates the transaction
  *today* and advances from today, which resets the schedule relative to the
  day the user pressed the button.

Sweep policy: by default each template is advanced at most once per sweep.
A template that missed several periods (server down for two months) catches
up one period per sweep. ``catch_up=True`` materializes every missed period
in one sweep instead.
"""
from __future__ import annotations

import logging
import threading
import uuid
from collections import defaultdict
from datetime import date
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Union

from dateutil.relativedelta import relativedelta

from budgetbook.dates import format_date, now_iso, parse_date, today as _today
from budgetbook.errors import InactiveTemplate, InvalidFrequency, NotFound, ValidationError
from budgetbook.store import Record, RecordStore

logger = logging.getLogger(__name__)


class Frequency(str, Enum):
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"

    @classmethod
    def parse(cls, value: Any) -> "Frequency":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidFrequency(
                "Frequency must be weekly, biweekly, monthly, quarterly, or yearly"
            ) from None


# relativedelta clamps month/year steps to the last day of the target month:
# 2024-01-31 + 1 month -> 2024-02-29, 2024-02-29 + 1 year -> 2025-02-28.
_STEPS = {
    Frequency.WEEKLY: relativedelta(days=7),
    Frequency.BIWEEKLY: relativedelta(days=14),
    Frequency.MONTHLY: relativedelta(months=1),
    Frequency.QUARTERLY: relativedelta(months=3),
    Frequency.YEARLY: relativedelta(years=1),
}

# Factor that turns one occurrence into a per-month figure.
_PER_MONTH = {
    Frequency.WEEKLY: 4.0,
    Frequency.BIWEEKLY: 2.0,
    Frequency.MONTHLY: 1.0,
    Frequency.QUARTERLY: 1.0 / 3.0,
    Frequency.YEARLY: 1.0 / 12.0,
}


def compute_next_due_date(current: Union[date, str], frequency: Union[Frequency, str]) -> Union[date, str]:
    """
    Next due date after ``current``. Pure; accepts a ``date`` or a
    'YYYY-MM-DD' string and returns the same kind.
    """
    step = _STEPS[Frequency.parse(frequency)]
    if isinstance(current, date):
        return current + step
    d = parse_date(current)
    if d is None:
        raise ValidationError(f"Invalid date: {current!r}")
    return format_date(d + step)


def monthly_equivalent(amount: float, frequency: Union[Frequency, str]) -> float:
    return float(amount) * _PER_MONTH[Frequency.parse(frequency)]


def new_template(user_id: str, fields: Dict[str, Any], today: Optional[date] = None) -> Record:
    """Build a template record from validated fields; nextDueDate starts at startDate."""
    now = now_iso()
    start = fields.get("startDate") or format_date(today or _today())
    return {
        "id": str(uuid.uuid4()),
        "userId": user_id,
        "name": fields["name"],
        "categoryId": fields["categoryId"],
        "amount": float(fields["amount"]),
        "type": fields["type"],
        "frequency": Frequency.parse(fields["frequency"]).value,
        "startDate": start,
        "nextDueDate": fields.get("nextDueDate") or start,
        "notes": fields.get("notes") or "",
        "isActive": bool(fields.get("isActive", True)),
        "createdAt": now,
        "updatedAt": now,
    }


def materialize(template: Record, on_date: str, tag: str) -> Record:
    """A concrete transaction spawned from ``template`` and dated ``on_date``."""
    notes = (template.get("notes") or "").strip()
    if notes:
        notes = f"{notes} ({tag})"
    elif tag == "Manual":
        notes = "Manual recurring transaction"
    else:
        notes = "Recurring transaction"
    now = now_iso()
    return {
        "id": str(uuid.uuid4()),
        "userId": template["userId"],
        "categoryId": template.get("categoryId"),
        "amount": template.get("amount"),
        "type": template.get("type"),
        "date": on_date,
        "notes": notes,
        "isRecurring": True,
        "recurringId": template["id"],
        "createdAt": now,
        "updatedAt": now,
    }


class RecurringEngine:
    def __init__(self, store: RecordStore, catch_up: bool = False):
        self._store = store
        self.catch_up = catch_up
        self._sweep_lock = threading.Lock()
        self._guard = threading.Lock()
        self._user_locks: Dict[str, threading.Lock] = defaultdict(threading.Lock)

    def _user_lock(self, user_id: str) -> threading.Lock:
        with self._guard:
            return self._user_locks[user_id]

    def forget_user(self, user_id: str) -> None:
        """Drop the lock held for a deleted user."""
        with self._guard:
            self._user_locks.pop(user_id, None)

    # ------------------------------------------------------------------
    def due_templates(self, user_id: str, today: Optional[date] = None) -> List[Record]:
        """Active templates of ``user_id`` whose nextDueDate is on or before today."""
        cutoff = format_date(today or _today())
        return [
            r for r in self._store.get_all("recurring", user_id)
            if r.get("isActive") and (r.get("nextDueDate") or "") <= cutoff
        ]

    def _apply(self, template: Record, tx_date: str, next_due: str, tag: str) -> Record:
        """
        Insert the transaction, then advance the template. If the advance
        fails the transaction is removed again so the pair never half-applies.
        """
        user_id = template["userId"]
        tx = self._store.insert("transactions", materialize(template, tx_date, tag), user_id)
        try:
            updated = self._store.update("recurring", template["id"], {"nextDueDate": next_due}, user_id)
            if updated is None:
                raise NotFound("Recurring transaction not found")
        except Exception:
            self._store.delete("transactions", tx["id"], user_id)
            raise
        template["nextDueDate"] = next_due
        return tx

    def _sweep_template(self, template: Record, today: date, user_name: str) -> Iterator[Record]:
        frequency = Frequency.parse(template.get("frequency"))
        cutoff = format_date(today)
        while (template.get("nextDueDate") or "") <= cutoff:
            due = template["nextDueDate"]
            tx = self._apply(template, due, compute_next_due_date(due, frequency), "Recurring")
            logger.info(
                "Created transaction for recurring %r (%s) for user %s dated %s",
                template.get("name"), template["id"], user_name, due,
            )
            yield tx
            if not self.catch_up:
                break

    def process_recurring_transactions(self, today: Optional[date] = None) -> int:
        """Sweep every user's active templates; returns how many transactions were created."""
        if not self._sweep_lock.acquire(blocking=False):
            logger.warning("Recurring sweep already running; skipped")
            return 0
        try:
            ref = today or _today()
            logger.info("Processing recurring transactions due on or before %s", format_date(ref))
            processed = failed = 0
            for user in self._store.get_all_users():
                user_id = user.get("id")
                with self._user_lock(user_id):
                    try:
                        due = self.due_templates(user_id, ref)
                    except Exception:
                        failed += 1
                        logger.exception("Could not load recurring templates for user %s", user_id)
                        continue
                    for template in due:
                        try:
                            for _ in self._sweep_template(template, ref, user.get("name", user_id)):
                                processed += 1
                        except Exception:
                            failed += 1
                            logger.exception(
                                "Failed to process recurring %s for user %s", template.get("id"), user_id
                            )
            logger.info("Processed %d recurring transactions (%d failed)", processed, failed)
            return processed
        finally:
            self._sweep_lock.release()

    def process_specific_recurring(self, recurring_id: str, user_id: str, today: Optional[date] = None) -> Record:
        """
        Manually materialize one template now. The transaction is dated today
        and the schedule restarts from today.
        """
        ref = format_date(today or _today())
        with self._user_lock(user_id):
            template = self._store.get_by_id("recurring", recurring_id, user_id)
            if template is None:
                raise NotFound("Recurring transaction not found")
            if not template.get("isActive"):
                raise InactiveTemplate("Recurring transaction is not active")
            next_due = compute_next_due_date(ref, template.get("frequency"))
            return self._apply(template, ref, next_due, "Manual")
