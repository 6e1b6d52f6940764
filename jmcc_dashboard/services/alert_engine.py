"""
Alert rule engine for the JMCC dashboard.

This module turns a snapshot of in-transit journey records into the
notifications that should go out:
1. Normalizing the snapshot
2. Computing staleness and aggregate metrics
3. Evaluating the fixed rule set

Nothing is sent from here; delivery lives in the notifier.
"""
import os
from collections import Counter
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

import yaml

from jmcc_dashboard.schemas.alerts import AlertMetrics, NotificationRequest
from jmcc_dashboard.schemas.journey import NormalizedRecord
from jmcc_dashboard.services.normalizer import RecordLike, normalize
from jmcc_dashboard.services.staleness import minutes_since_last_check

RULES_PATH = os.path.join(os.path.dirname(__file__), "alert_rules.yaml")

# Rule names
CRITICAL_CHECK = "critical_check"
HALF_DUE = "half_due"
ALL_STOPPED = "all_stopped"
SJM_OVERLOAD = "sjm_overload"
STOPPED_FOR_DAY = "stopped_for_day"

def load_rule_config(path: str = RULES_PATH) -> Dict[str, Any]:
    """Load the alert rule configuration, applying the ALERT_RECIPIENTS override."""
    with open(path, "r", encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}

    override = os.environ.get("ALERT_RECIPIENTS", "")
    recipients = [address.strip() for address in override.split(",") if address.strip()]
    if recipients:
        config["recipients"] = recipients
    return config

def _group_key(value: Any) -> Any:
    """Return value itself when hashable, otherwise its repr."""
    try:
        hash(value)
    except TypeError:
        return repr(value)
    return value


class AlertRuleEngine:
    """
    Evaluates the dashboard alert rules.

    The instance only holds configuration; every call to evaluate works on
    fresh data, so one engine can serve concurrent requests.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        config = config if config is not None else load_rule_config()
        thresholds = config.get("thresholds", {})
        statuses = config.get("statuses", {})

        self.recipients = frozenset(config.get("recipients", []))
        self.subject_prefix = config.get("subject_prefix", "JMCC Dashboard Alert")
        self.critical_minutes = thresholds.get("critical_minutes", 120)
        self.due_minutes = thresholds.get("due_minutes", 60)
        self.sjm_overload = thresholds.get("sjm_overload", 30)
        self.live_status = statuses.get("live", "in transit")
        self.closed_status = statuses.get("closed", "closed")
        self.stopped_remark = statuses.get("stopped_remark", "done")

    # Record predicates

    def _is_overdue(self, minutes: Optional[int]) -> bool:
        return minutes is not None and minutes > self.critical_minutes

    def _is_due(self, minutes: Optional[int]) -> bool:
        if minutes is None:
            return True
        return self.due_minutes < minutes < self.critical_minutes

    def _is_stopped(self, record: NormalizedRecord) -> bool:
        return record.remarks == self.stopped_remark

    def _is_closed(self, record: NormalizedRecord) -> bool:
        return record.jp_status == self.closed_status

    def _is_live(self, record: NormalizedRecord) -> bool:
        return record.jp_status == self.live_status

    def compute_metrics(self, records: List[NormalizedRecord], now: datetime) -> AlertMetrics:
        """
        Compute the aggregate counts over a normalized snapshot.

        Args:
            records: Normalized records
            now: Reference time for staleness

        Returns:
            AlertMetrics for the snapshot
        """
        metrics = AlertMetrics()
        for record in records:
            minutes = minutes_since_last_check(record.ivms_check_date, now)
            stopped = self._is_stopped(record)
            closed = self._is_closed(record)

            if self._is_overdue(minutes) and not stopped and not closed:
                metrics.critical_check += 1
            if self._is_due(minutes) and not closed and not stopped:
                metrics.due_for_checking += 1
            if self._is_live(record):
                metrics.live_journeys += 1
            if stopped and not closed:
                metrics.stopped_trucks += 1
                metrics.stopped_for_day += 1
        return metrics

    def _request(self, rule: str, title: str, body: str) -> NotificationRequest:
        return NotificationRequest(
            rule=rule,
            recipients=self.recipients,
            subject=f"{self.subject_prefix}: {title}",
            body=body,
            is_markup=False,
        )

    # Rules

    def _critical_check(self, records, metrics, now) -> List[NotificationRequest]:
        if metrics.critical_check <= 0:
            return []

        lines = []
        for record in records:
            minutes = minutes_since_last_check(record.ivms_check_date, now)
            if self._is_overdue(minutes) and not self._is_stopped(record) and self._is_live(record):
                lines.append(f"- {record.journey_plan_no} (SJM {record.sjm}): last IVMS check {minutes} minutes ago")

        body = (
            f"{metrics.critical_check} journey plan(s) have not had an IVMS check "
            f"for more than {self.critical_minutes} minutes.\n"
        )
        if lines:
            body += "In transit and overdue:\n" + "\n".join(lines)
        return [self._request(CRITICAL_CHECK, "Critical IVMS check", body)]

    def _half_due(self, records, metrics, now) -> List[NotificationRequest]:
        live = metrics.live_journeys
        if live <= 0 or metrics.due_for_checking < live / 2:
            return []

        body = (
            f"{metrics.due_for_checking} journey plan(s) are due for IVMS checking "
            f"out of {live} live journeys."
        )
        return [self._request(HALF_DUE, "Half of live journeys due for checking", body)]

    def _all_stopped(self, records, metrics, now) -> List[NotificationRequest]:
        live = metrics.live_journeys
        if live <= 0 or live != metrics.stopped_trucks:
            return []

        all_ids = {_group_key(record.journey_plan_no) for record in records}
        stopped_ids = {_group_key(record.journey_plan_no) for record in records if self._is_stopped(record)}
        if all_ids != stopped_ids:
            return []

        listing = ", ".join(str(record.journey_plan_no) for record in records)
        body = (
            f"All {live} live journeys are stopped.\n"
            f"Journey plans: {listing}"
        )
        return [self._request(ALL_STOPPED, "All live journeys stopped", body)]

    def _sjm_overload(self, records, metrics, now) -> List[NotificationRequest]:
        requests = []
        counts = Counter(_group_key(record.sjm) for record in records)
        for sjm, count in counts.items():
            if count > self.sjm_overload:
                body = (
                    f"SJM {sjm} has {count} journey plans in transit, "
                    f"more than the limit of {self.sjm_overload}."
                )
                requests.append(self._request(SJM_OVERLOAD, f"SJM {sjm} overloaded", body))
        return requests

    def _stopped_for_day(self, records, metrics, now) -> List[NotificationRequest]:
        if metrics.stopped_for_day <= 0:
            return []

        stopped = [
            f"- {record.journey_plan_no} (SJM {record.sjm})"
            for record in records
            if self._is_stopped(record) and self._is_live(record)
        ]
        body = f"{metrics.stopped_for_day} truck(s) stopped for the day.\n"
        if stopped:
            body += "\n".join(stopped)
        return [self._request(STOPPED_FOR_DAY, "Trucks stopped for the day", body)]

    def assess(
        self, records: Iterable[RecordLike], now: datetime
    ) -> Tuple[AlertMetrics, List[NotificationRequest]]:
        """
        Normalize a snapshot once, then compute its metrics and evaluate every rule.

        Args:
            records: Snapshot rows, raw or as JourneyRecord
            now: Reference time for staleness

        Returns:
            Tuple of the snapshot metrics and the notifications to send
        """
        normalized = normalize(records)
        metrics = self.compute_metrics(normalized, now)
        if not normalized:
            return metrics, []

        rules = [
            self._critical_check,
            self._half_due,
            self._all_stopped,
            self._sjm_overload,
            self._stopped_for_day,
        ]

        notifications = []
        for rule in rules:
            notifications.extend(rule(normalized, metrics, now))
        return metrics, notifications

    def evaluate(self, records: Iterable[RecordLike], now: datetime) -> List[NotificationRequest]:
        """Evaluate every rule against a snapshot; returns the notifications to send."""
        _, notifications = self.assess(records, now)
        return notifications

# Global engine instance
alert_engine = AlertRuleEngine()

def compute_metrics(records: Iterable[RecordLike], now: datetime) -> AlertMetrics:
    """Normalize a snapshot and compute its metrics with the default engine."""
    return alert_engine.compute_metrics(normalize(records), now)

def evaluate(records: Iterable[RecordLike], now: datetime) -> List[NotificationRequest]:
    """Evaluate a snapshot with the default engine."""
    return alert_engine.evaluate(records, now)
