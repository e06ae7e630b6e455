"""
Notification queue on the store's list primitive.
"""

from .notifications import NotificationQueue, NOTIFICATION_QUEUE

__all__ = ["NotificationQueue", "NOTIFICATION_QUEUE"]
