"""
Per-user activity logs, bounded by count and by age.
"""

from .log import ActivityEntry, ActivityLog, ACTIVITY_PREFIX

__all__ = ["ActivityEntry", "ActivityLog", "ACTIVITY_PREFIX"]
