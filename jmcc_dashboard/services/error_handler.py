"""
Error handling utilities for the JMCC dashboard.

This module provides functionality for:
1. Tracking failures per operation
2. Keeping a short history of recent failures
3. Mapping operations to the messages shown to dashboard users
"""
from typing import Dict, Any
from datetime import datetime
from collections import defaultdict

# Operation -> message returned to the client
USER_MESSAGES = {
    "login": "Error logging in.",
    "insert": "Error inserting record.",
    "fetch": "Error fetching dashboard data.",
    "update": "Error updating record.",
    "batch_update": "Error updating records.",
    "delete": "Error deleting record.",
    "send_email": "Error sending email.",
    "alert_cycle": "Error evaluating alerts.",
    "alert_delivery": "Error delivering alert notification.",
}

MAX_RECENT_ERRORS = 100

class ErrorHandler:
    def __init__(self):
        self.error_stats = defaultdict(int)
        self.recent_errors = []

    def track_error(self, operation: str, error: Exception, details: str = ""):
        """Record a failure of the given operation"""
        error_info = {
            'operation': operation,
            'error_type': type(error).__name__,
            'error': str(error),
            'details': details,
            'timestamp': datetime.now().isoformat()
        }
        self.error_stats[operation] += 1
        self.recent_errors.append(error_info)
        # Only keep the latest records
        if len(self.recent_errors) > MAX_RECENT_ERRORS:
            self.recent_errors.pop(0)
        print(f"[error] {operation} failed: {type(error).__name__}: {error}")

    def get_error_stats(self) -> Dict[str, Any]:
        """Get error statistics"""
        return {
            'total_errors': sum(self.error_stats.values()),
            'error_types': dict(self.error_stats),
            'recent_errors': self.recent_errors[-10:] if self.recent_errors else []
        }

    def get_user_friendly_error(self, operation: str) -> str:
        """Message to return to the dashboard for a failed operation"""
        return USER_MESSAGES.get(operation, "An unexpected error occurred.")

    def reset(self):
        self.error_stats.clear()
        self.recent_errors.clear()

# Global error handler instance
error_handler = ErrorHandler()
