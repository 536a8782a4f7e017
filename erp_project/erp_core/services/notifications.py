import logging
from django.conf import settings
from django.core.exceptions import PermissionDenied, ValidationError
from django.core.mail import send_mail
from django.db import transaction
from django.utils import timezone

from ..models import DispatchNotification, NotificationLog, VoucherNotification

logger = logging.getLogger(__name__)

# Answers a recipient may give ("pending" is the starting state only)
RESPONSE_STATUSES = ("accepted", "rejected", "reviewed", "hold", "ignored")


# ----------------------------
# Voucher notifications
# ----------------------------
def _voucher_mail(notification):
    voucher = notification.voucher
    subject = (
        f"{notification.from_company.name}: {voucher.get_voucher_type_display()} "
        f"{voucher.voucher_number}"
    )
    lines = [
        f"{notification.from_company.name} has recorded a voucher for you.",
        "",
        f"Voucher: {voucher.voucher_number} ({voucher.get_voucher_type_display()})",
        f"Date: {voucher.voucher_date}",
        f"Amount: {voucher.total_amount}",
    ]
    if voucher.narration:
        lines.append(f"Narration: {voucher.narration}")
    if notification.message:
        lines += ["", notification.message]
    return subject, "\n".join(lines)


def deliver_voucher_notification(notification_id):
    """
    Send one VoucherNotification by email and log the attempt.
    Safe to run more than once: a notification that already has a `sent`
    log is skipped. Returns the NotificationLog written, or None.
    """
    notification = (
        VoucherNotification.objects.select_related("voucher", "from_company")
        .filter(pk=notification_id)
        .first()
    )
    if notification is None:
        logger.warning("Voucher notification %s no longer exists", notification_id)
        return None
    if notification.is_delivered:
        logger.info("Voucher notification %s already sent, skipping", notification_id)
        return None

    subject, body = _voucher_mail(notification)
    try:
        send_mail(
            subject,
            body,
            settings.DEFAULT_FROM_EMAIL,
            [notification.to_user_email],
        )
    except Exception as exc:
        # the voucher is already committed; record the failure and move on
        logger.error(
            "Sending voucher notification %s to %s failed: %s",
            notification_id, notification.to_user_email, exc,
        )
        return NotificationLog.objects.create(
            notification=notification, status="failed", error_message=str(exc)
        )

    with transaction.atomic():
        log = NotificationLog.objects.create(notification=notification, status="sent")
        VoucherNotification.objects.filter(pk=notification.pk).update(
            delivered_at=timezone.now()
        )
    logger.info("Voucher notification %s sent to %s", notification_id, notification.to_user_email)
    return log


def respond_to_notification(notification, user_email, status):
    """The recipient accepts / rejects / reviews / holds / ignores a voucher."""
    if status not in RESPONSE_STATUSES:
        raise ValidationError(f"Unknown response: {status}")
    if (user_email or "").strip().lower() != notification.to_user_email.lower():
        raise PermissionDenied("Only the recipient can respond to this notification.")
    notification.status = status
    notification.responded_at = timezone.now()
    notification.save(update_fields=["status", "responded_at"])
    logger.info("Voucher notification %s marked %s", notification.pk, status)
    return notification


def notifications_for(email, status=None):
    """Inbox of one recipient, newest first."""
    qs = VoucherNotification.objects.select_related("voucher", "from_company").filter(
        to_user_email__iexact=email
    )
    if status:
        qs = qs.filter(status=status)
    return qs.order_by("-created_at")


# ----------------------------
# Dispatch notifications
# ----------------------------
def deliver_dispatch_notifications(dispatch_entry_id):
    """
    Hand pending dispatch notifications to the provider.
    No SMS / mail gateway is wired up: the message is logged and the row
    marked sent. Rows already sent are left alone. Returns how many were sent.
    """
    sent = 0
    pending = DispatchNotification.objects.select_related(
        "dispatch_entry", "dispatch_entry__order"
    ).filter(dispatch_entry_id=dispatch_entry_id, status="pending")
    for notification in pending:
        entry = notification.dispatch_entry
        target = notification.recipient_email or notification.recipient_phone
        logger.info(
            "[DUMMY] %s to %s: order %s, %s dispatched on %s (vehicle %s)",
            notification.notification_type.upper(), target, entry.order.order_no,
            entry.dispatched_quantity, entry.dispatch_date, entry.vehicle_no or "-",
        )
        DispatchNotification.objects.filter(pk=notification.pk, status="pending").update(
            status="sent", sent_at=timezone.now()
        )
        sent += 1
    return sent
