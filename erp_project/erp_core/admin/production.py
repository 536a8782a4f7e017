from django.contrib import admin
from erp_core.models import (DispatchEntry, DispatchNotification, Machine,
                             ProductionEntry, SalesOrder)
from .actions import refresh_order_status
from .inlines import (DispatchEntryInline, OrderAssignmentInline,
                      ProductionEntryInline)
from .mixins import TenantAdminMixin


@admin.register(Machine)
class MachineAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = ("machine_code", "name", "department", "is_active")
    list_filter = ("is_active",)
    search_fields = ("machine_code", "name")


@admin.register(SalesOrder)
class SalesOrderAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = (
        "order_no", "customer_name", "product", "ordered_quantity",
        "produced", "dispatched", "balance_quantity", "status", "priority", "due_date",
    )
    list_filter = ("status", "priority")
    search_fields = ("order_no", "customer_name", "product")
    # status follows the entries, see signals
    readonly_fields = ("status", "created_by")
    inlines = [OrderAssignmentInline, ProductionEntryInline, DispatchEntryInline]
    actions = [refresh_order_status]

    def produced(self, obj):
        return obj.produced_quantity

    def dispatched(self, obj):
        return obj.dispatched_quantity


@admin.register(ProductionEntry)
class ProductionEntryAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = ("order", "entry_date", "produced_quantity", "machine", "shift", "created_by")
    list_filter = ("shift", "entry_date")
    search_fields = ("order__order_no",)
    readonly_fields = ("previous_quantity", "created_by")

    def get_queryset(self, request):
        return super().get_queryset(request).select_related("order", "machine", "created_by")


@admin.register(DispatchEntry)
class DispatchEntryAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = ("order", "dispatch_date", "dispatched_quantity", "vehicle_no", "transporter")
    list_filter = ("dispatch_date",)
    search_fields = ("order__order_no", "vehicle_no", "driver_name")
    readonly_fields = ("created_by",)


@admin.register(DispatchNotification)
class DispatchNotificationAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = (
        "dispatch_entry", "notification_type", "recipient_email",
        "recipient_phone", "status", "sent_at",
    )
    list_filter = ("notification_type", "status")
    readonly_fields = ("sent_at", "error_message")
