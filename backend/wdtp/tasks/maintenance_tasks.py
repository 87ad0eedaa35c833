"""Maintenance tasks: counter reconciliation and cache version upkeep."""

import logging

from wdtp.tasks.celery_app import celery_app
from wdtp.dependencies.services import get_redis, get_version_bus
from wdtp.models.base import SyncSessionLocal
from wdtp.services.cache_versions import CacheVersionBus, WAGE_REPORT_KEYS
from wdtp.services.counter_ledger import CounterLedger

logger = logging.getLogger(__name__)


def reconcile_counters(db, bus: CacheVersionBus, ledger: CounterLedger | None = None) -> dict:
    """Recompute drifted counters, commit, and bump versions if anything changed."""
    ledger = ledger or CounterLedger()
    try:
        corrected = ledger.reconcile(db)
        db.commit()
    except Exception:
        db.rollback()
        raise

    if corrected:
        bus.bump_all(WAGE_REPORT_KEYS)
    logger.info(f"Counter reconciliation corrected {corrected} rows")
    return {"corrected": corrected}


@celery_app.task(name="wdtp.tasks.maintenance_tasks.reconcile_wage_report_counters")
def reconcile_wage_report_counters():
    """Nightly repair of location/organization wage_reports_count drift."""
    db = SyncSessionLocal()
    try:
        return reconcile_counters(db, get_version_bus(get_redis()))
    finally:
        db.close()


@celery_app.task(name="wdtp.tasks.maintenance_tasks.ensure_cache_versions")
def ensure_cache_versions():
    """Recreate version counters lost on a Redis flush."""
    get_version_bus(get_redis()).initialize()
    return {"ok": True}
