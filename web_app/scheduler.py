# web_app/scheduler.py
# In-process trigger for the recurring sweep. Cron + `python -m budgetbook.sweep`
# is the alternative when several app workers share one data directory.
from __future__ import annotations

import atexit

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

JOB_ID = "process_recurring_transactions"


def start_scheduler(app, engine) -> BackgroundScheduler:
    minutes = max(1, int(app.config.get("SWEEP_INTERVAL_MINUTES") or 60))

    def _run():
        try:
            engine.process_recurring_transactions()
        except Exception:
            app.logger.exception("Scheduled recurring sweep failed")

    scheduler = BackgroundScheduler()
    scheduler.add_job(
        func=_run,
        trigger=IntervalTrigger(minutes=minutes),
        id=JOB_ID,
        name="Process recurring transactions",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    scheduler.start()
    atexit.register(lambda: scheduler.shutdown(wait=False))
    app.logger.info("[Scheduler] recurring sweep every %d min", minutes)
    return scheduler
