"""
F1 Pick'em Reconciliation Scheduler Service

Runs the race lifecycle and results reconciliation periodically in the
background using APScheduler. Runs never overlap (max_instances=1).
"""

import atexit
import logging
from datetime import datetime, timezone

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app import db
from app.services.reconciliation import run_reconciliation

logger = logging.getLogger(__name__)

RECONCILIATION_JOB_ID = "race_reconciliation"


class SchedulerService:
    """Manages the background reconciliation job"""

    def __init__(self, app=None, results_source=None):
        self.scheduler = None
        self.app = app
        self.results_source = results_source
        self.is_running = False
        self.sync_stats = self._empty_stats()

        if app:
            self.init_app(app)

    @staticmethod
    def _empty_stats():
        return {
            "last_sync": None,
            "total_syncs": 0,
            "successful_syncs": 0,
            "failed_syncs": 0,
            "last_error": None,
            "races_synced": 0,
            "last_summary": None,
        }

    def init_app(self, app):
        """Initialize scheduler with Flask app"""
        self.app = app
        self.scheduler = BackgroundScheduler(daemon=True, timezone="UTC")

        # Register shutdown
        atexit.register(self.shutdown)

        # Start scheduler if enabled
        if app.config.get("SCHEDULER_ENABLED", True):
            self.start()

    def start(self):
        """Start the background scheduler"""
        if self.is_running:
            return

        try:
            self.scheduler.remove_all_jobs()
            self._add_core_jobs()
            self.scheduler.start()
            self.is_running = True

            logger.info("Scheduler started successfully")

        except Exception as e:
            logger.error(f"Failed to start scheduler: {e}")
            raise

    def stop(self):
        """Stop the background scheduler"""
        if not self.is_running:
            return

        try:
            self.scheduler.shutdown(wait=False)
            self.is_running = False
            logger.info("Scheduler stopped")

        except Exception as e:
            logger.error(f"Error stopping scheduler: {e}")

    def shutdown(self):
        """Graceful shutdown"""
        self.stop()

    def _add_core_jobs(self):
        interval = self.app.config.get("RECONCILIATION_INTERVAL_MINUTES", 15)

        self.scheduler.add_job(
            func=self._reconcile,
            trigger=IntervalTrigger(minutes=interval),
            id=RECONCILIATION_JOB_ID,
            name="Race Lifecycle & Results Reconciliation",
            max_instances=1,
            coalesce=True,
            misfire_grace_time=300,
        )

        logger.info(f"Reconciliation job scheduled every {interval} minutes")

    def _reconcile(self):
        """One reconciliation pass inside an app context"""
        with self.app.app_context():
            try:
                summary = run_reconciliation(results_source=self.results_source)
                self._update_stats(True, summary)
                return summary

            except Exception as e:
                db.session.rollback()
                self._update_stats(False)
                self.sync_stats["last_error"] = str(e)
                logger.error(f"Error in reconciliation: {e}", exc_info=True)
                return None

    def _update_stats(self, success, summary=None):
        """Update sync statistics"""
        self.sync_stats["last_sync"] = datetime.now(timezone.utc)
        self.sync_stats["total_syncs"] += 1

        if success:
            self.sync_stats["successful_syncs"] += 1
            self.sync_stats["last_error"] = None
            if summary is not None:
                self.sync_stats["races_synced"] += len(summary.synced)
                self.sync_stats["last_summary"] = summary.to_dict()
        else:
            self.sync_stats["failed_syncs"] += 1

    def get_status(self):
        """Get scheduler status information"""
        jobs = []
        if self.scheduler:
            for job in self.scheduler.get_jobs():
                next_run = getattr(job, "next_run_time", None)
                jobs.append(
                    {
                        "id": job.id,
                        "name": job.name,
                        "next_run": next_run.isoformat() if next_run else None,
                        "trigger": str(job.trigger),
                    }
                )

        return {"is_running": self.is_running, "jobs": jobs, "stats": self.sync_stats}

    def force_sync(self):
        """Manually trigger a reconciliation pass"""
        summary = self._reconcile()
        if summary is None:
            return False, f"Manual sync failed: {self.sync_stats['last_error']}"
        return True, (
            f"Manual sync completed: {summary.started} started, "
            f"{len(summary.synced)} synced, {len(summary.failed)} failed"
        )


# Global scheduler instance
scheduler_service = SchedulerService()
