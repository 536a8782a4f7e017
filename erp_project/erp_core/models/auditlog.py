from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from ..managers import TenantManager
from .entitymembership import Company


class AuditLog(models.Model):
    """One row per posting, deletion, status change or user provisioning.

    Written through ``services.audit_helper.log_action``; the company and user
    stay nullable so rows outlive a deleted tenant and so background tasks
    can record what they did.
    """

    ACTIONS = ("create", "update", "delete", "post", "status")

    company = models.ForeignKey(Company, null=True, blank=True, on_delete=models.SET_NULL)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL
    )
    action = models.CharField(max_length=50)
    object_type = models.CharField(max_length=100)  # model class name
    object_id = models.CharField(max_length=100)
    changes = models.JSONField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = TenantManager()

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["company", "user"], name="auditlog_company_user_idx"),
            models.Index(fields=["company", "created_at"], name="auditlog_company_created_idx"),
        ]

    def __str__(self):
        who = self.user or "system"
        return f"{who} {self.action} {self.object_type}#{self.object_id}"

    def clean(self):
        if self.action not in self.ACTIONS:
            raise ValidationError({"action": f"Unknown audit action {self.action!r}"})
        if not self.object_type:
            raise ValidationError({"object_type": "Required"})

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)
