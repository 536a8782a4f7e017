from django.contrib import admin

from erp_core.models import AuditLog, NotificationLog, VoucherNotification

from .actions import resend_voucher_notifications
from .inlines import NotificationLogInline
from .mixins import TenantAdminMixin
from .ReadOnly import ReadOnlyAdmin


# Register `AuditLog` model
@admin.register(AuditLog)
class AuditLogAdmin(TenantAdminMixin, ReadOnlyAdmin):
    list_display = (
        "id",
        "company",
        "user",
        "action",
        "object_type",
        "object_id",
        "created_at",
    )

    # Fetch everything in one SQL join
    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related("company", "user")


@admin.register(VoucherNotification)
class VoucherNotificationAdmin(TenantAdminMixin, admin.ModelAdmin):
    company_lookup = "from_company"
    list_display = ("voucher", "from_company", "to_user_email", "status", "delivered_at", "responded_at")
    list_filter = ("status",)
    search_fields = ("to_user_email", "voucher__voucher_number")
    readonly_fields = ("delivered_at", "responded_at")
    inlines = [NotificationLogInline]
    actions = [resend_voucher_notifications]


@admin.register(NotificationLog)
class NotificationLogAdmin(TenantAdminMixin, ReadOnlyAdmin):
    company_lookup = "notification__from_company"
    list_display = ("notification", "channel", "status", "error_message", "created_at")
