import os

from apscheduler.schedulers.background import BackgroundScheduler

from linkdeck.errors import LinkDeckError
from linkdeck.services.categories import cleanup_orphans
from linkdeck.services.ordering import normalize_all
from linkdeck.services.transactions import atomic


scheduler = BackgroundScheduler()


def run_integrity_sweep(app):
    with app.app_context():
        try:
            removed = cleanup_orphans()
            with atomic():
                reindexed = normalize_all()
        except LinkDeckError as exc:
            app.logger.warning("Integrity sweep failed: %s", exc.message)
            return None

        app.logger.info(
            "Integrity sweep removed %d orphans, reindexed %s", len(removed), reindexed
        )
        return {"removed": removed, "reindexed": reindexed}


def start_scheduler(app):
    if not app.config.get("SCHEDULER_ENABLED", True):
        return
    if os.environ.get("WERKZEUG_RUN_MAIN") == "false":
        return

    interval_minutes = app.config["INTEGRITY_SWEEP_INTERVAL_MINUTES"]
    if not scheduler.get_jobs():
        scheduler.add_job(
            run_integrity_sweep,
            "interval",
            minutes=interval_minutes,
            kwargs={"app": app},
            id="integrity_sweep",
            replace_existing=True,
        )
        scheduler.start()
