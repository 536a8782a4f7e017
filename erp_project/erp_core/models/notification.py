from django.db import models
from ..managers import TenantManager
from .entitymembership import Company

# Recipient's answer to a voucher sent for confirmation
VOUCHER_NOTIFICATION_STATUS = [
    ("pending", "Pending"),
    ("accepted", "Accepted"),
    ("rejected", "Rejected"),
    ("reviewed", "Reviewed"),
    ("hold", "On Hold"),
    ("ignored", "Ignored"),
]

DELIVERY_STATUS = [
    ("sent", "Sent"),
    ("failed", "Failed"),
]


# ---------- Voucher notifications (outbox) ----------
class VoucherNotification(models.Model):
    """
    Intent to tell a counter-party about a voucher.
    Written in the same transaction as the voucher; the
    send_voucher_notification task delivers it after commit.
    """

    voucher = models.ForeignKey(
        "Voucher", on_delete=models.CASCADE, related_name="notifications"
    )
    from_company = models.ForeignKey(
        Company, on_delete=models.CASCADE, related_name="sent_notifications"
    )
    to_user_email = models.EmailField()
    message = models.TextField(blank=True)
    status = models.CharField(
        max_length=10, choices=VOUCHER_NOTIFICATION_STATUS, default="pending"
    )
    delivered_at = models.DateTimeField(null=True, blank=True)
    responded_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=["to_user_email", "status"], name="vnotif_email_status_idx"),
        ]

    def __str__(self):
        return f"Voucher {self.voucher_id} -> {self.to_user_email} [{self.status}]"

    @property
    def is_delivered(self):
        return self.logs.filter(status="sent").exists()


class NotificationLog(models.Model):
    """One delivery attempt of a VoucherNotification"""

    notification = models.ForeignKey(
        VoucherNotification, on_delete=models.CASCADE, related_name="logs"
    )
    channel = models.CharField(max_length=20, default="email")
    status = models.CharField(max_length=10, choices=DELIVERY_STATUS)
    error_message = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.channel}:{self.status} for {self.notification_id}"


# ---------- Dispatch notifications ----------
class DispatchNotification(models.Model):
    """Email / SMS to the customer when goods leave the yard"""

    TYPE_CHOICES = [("email", "Email"), ("sms", "SMS")]
    STATUS_CHOICES = [
        ("pending", "Pending"),
        ("sent", "Sent"),
        ("failed", "Failed"),
    ]

    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    dispatch_entry = models.ForeignKey(
        "DispatchEntry", on_delete=models.CASCADE, related_name="notifications"
    )
    notification_type = models.CharField(max_length=10, choices=TYPE_CHOICES)
    recipient_email = models.EmailField(blank=True)
    recipient_phone = models.CharField(max_length=32, blank=True)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default="pending")
    error_message = models.TextField(blank=True)
    sent_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    def __str__(self):
        target = self.recipient_email or self.recipient_phone
        return f"{self.notification_type} -> {target} [{self.status}]"
