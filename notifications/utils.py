import logging

from .models import Notification, ActivityLog

logger = logging.getLogger(__name__)


def create_notification(user, message, kind="general", data=None):
    notification = Notification.objects.create(user=user, kind=kind, message=message, data=data or {})
    logger.debug("Notified user %s (%s)", user.pk, kind)
    return notification


def log_activity(user, action, details=None):
    return ActivityLog.objects.create(user=user, action=action, details=details or {})
