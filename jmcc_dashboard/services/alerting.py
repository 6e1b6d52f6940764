"""
Post-write alert cycle.

After every successful create or update the dashboard re-reads the
in-transit snapshot, evaluates the alert rules on it and mails whatever
fired. The cycle runs as a background task and must never fail the write.
"""
import os
from datetime import datetime
from typing import Optional

from dotenv import load_dotenv
from starlette.concurrency import run_in_threadpool

from jmcc_dashboard.services import db_operations
from jmcc_dashboard.services.alert_engine import alert_engine
from jmcc_dashboard.services.error_handler import error_handler
from jmcc_dashboard.services.notifier import EmailNotificationSender, dispatch_notifications

load_dotenv()

def alerts_enabled() -> bool:
    return os.environ.get("ALERTS_ENABLED", "1").lower() in ("1", "true", "yes")

async def run_alert_cycle(
    now: Optional[datetime] = None,
    sender: Optional[EmailNotificationSender] = None,
) -> int:
    """
    Evaluate alerts on a fresh snapshot and deliver the notifications.

    Args:
        now: Reference time, defaults to the current local time
        sender: Transport, defaults to the SMTP sender

    Returns:
        Number of notifications delivered
    """
    if not alerts_enabled():
        print("[alerts] ALERTS_ENABLED is false, skipping alert cycle")
        return 0

    try:
        records = await db_operations.fetch_in_transit_records()
        notifications = alert_engine.evaluate(records, now or datetime.now())
        print(f"[alerts] {len(records)} in-transit records, {len(notifications)} notification(s) fired")
        if not notifications:
            return 0

        sender = sender or EmailNotificationSender()
        return await run_in_threadpool(dispatch_notifications, notifications, sender)
    except Exception as e:
        error_handler.track_error("alert_cycle", e)
        return 0
