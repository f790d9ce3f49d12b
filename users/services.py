import logging

from django.db import transaction

from core.cache import get_cache_client
from notifications.utils import create_notification, log_activity

from .models import LawyerProfile

logger = logging.getLogger(__name__)

LAWYER_DIRECTORY_CACHE_PREFIX = "lawyers:"


def set_lawyer_verification(lawyer, admin, status, notes=""):
    """Keep ``is_verified`` and ``verification_status`` in step."""
    with transaction.atomic():
        profile, _ = LawyerProfile.objects.select_for_update().get_or_create(user=lawyer)
        profile.verification_status = status
        if notes:
            profile.verification_notes = notes
        profile.save()

        lawyer.is_verified = status == LawyerProfile.STATUS_VERIFIED
        lawyer.save(update_fields=["is_verified"])

    get_cache_client().delete_prefix(LAWYER_DIRECTORY_CACHE_PREFIX)

    logger.info("Lawyer %s marked %s by admin %s", lawyer.pk, status, admin.pk)
    create_notification(
        lawyer,
        f"Your lawyer account has been {status}.",
        kind="verification",
        data={"verificationStatus": status},
    )
    log_activity(admin, "Updated lawyer verification", {"lawyer_id": lawyer.pk, "status": status})
    return lawyer


def set_account_active(user, actor, is_active):
    user.is_active = is_active
    user.save(update_fields=["is_active"])

    if user.is_lawyer:
        get_cache_client().delete_prefix(LAWYER_DIRECTORY_CACHE_PREFIX)

    logger.info("User %s %s by %s", user.pk, "activated" if is_active else "deactivated", actor.pk)
    log_activity(actor, "Account activated" if is_active else "Account deactivated", {"user_id": user.pk})
    return user
