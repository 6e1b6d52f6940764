"""
Alert schemas for the JMCC dashboard.

This module defines the Pydantic models produced by one alert evaluation pass.
"""
from typing import FrozenSet, List
from pydantic import BaseModel, Field


class AlertMetrics(BaseModel):
    """Aggregate counts over one in-transit snapshot."""
    critical_check: int = Field(0, description="Overdue by more than the critical limit, not done, not closed")
    due_for_checking: int = Field(0, description="Due window or unknown staleness, not done, not closed")
    live_journeys: int = Field(0, description="Records with status 'in transit'")
    stopped_trucks: int = Field(0, description="Remarks 'done', not closed")
    stopped_for_day: int = Field(0, description="Remarks 'done', not closed")


class NotificationRequest(BaseModel):
    """A notification the alert engine wants delivered."""
    rule: str = Field(..., description="Name of the rule that fired")
    recipients: FrozenSet[str] = Field(..., description="Distribution list")
    subject: str
    body: str
    is_markup: bool = False


class AlertPreviewResponse(BaseModel):
    """Response model for the /alerts endpoint."""
    metrics: AlertMetrics
    notifications: List[NotificationRequest] = Field(default_factory=list)
