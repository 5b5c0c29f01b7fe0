from app.models import RaceStatus
from app.services.reconciliation import ReconciliationSummary
from app.services.scheduler_service import RECONCILIATION_JOB_ID, SchedulerService
from conftest import FakeResultsSource


def test_scheduler_not_started_when_disabled(app):
    service = SchedulerService(app)

    status = service.get_status()

    assert status["is_running"] is False
    assert status["jobs"] == []
    assert status["stats"]["total_syncs"] == 0


def test_start_registers_single_reconciliation_job(app):
    service = SchedulerService(app)
    try:
        service.start()
        status = service.get_status()
        assert status["is_running"] is True
        assert [job["id"] for job in status["jobs"]] == [RECONCILIATION_JOB_ID]
        assert service.scheduler.get_job(RECONCILIATION_JOB_ID).max_instances == 1
    finally:
        service.shutdown()

    assert service.is_running is False


def test_force_sync_runs_reconciliation_and_records_stats(seed, app, monkeypatch):
    race = seed.races[1]
    summary = ReconciliationSummary(started=1, synced=[race.id])
    monkeypatch.setattr(
        "app.services.scheduler_service.run_reconciliation",
        lambda results_source=None: summary,
    )
    service = SchedulerService(app, results_source=FakeResultsSource())

    success, message = service.force_sync()

    assert success
    assert "1 synced" in message
    assert service.sync_stats["successful_syncs"] == 1
    assert service.sync_stats["races_synced"] == 1
    assert service.sync_stats["last_summary"]["races_synced"] == [race.id]


def test_force_sync_uses_configured_results_source(seed, app):
    # Real clock: every seeded race is in the past and the source has no data
    source = FakeResultsSource()
    service = SchedulerService(app, results_source=source)

    success, message = service.force_sync()

    assert success
    assert source.calls
    assert seed.races[1].lifecycle is not RaceStatus.COMPLETED


def test_force_sync_failure_is_reported(app, monkeypatch):
    def explode(results_source=None):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr("app.services.scheduler_service.run_reconciliation", explode)
    service = SchedulerService(app)

    success, message = service.force_sync()

    assert not success
    assert "database unavailable" in message
    assert service.sync_stats["failed_syncs"] == 1
    assert service.sync_stats["last_error"] == "database unavailable"
