from django.contrib import admin

from erp_core.models import (DispatchEntry, NotificationLog, OrderAssignment,
                             ProductionEntry, SawmillOutputEntry, VoucherEntry)

# ---------- Helpful inline admin classes ----------


class VoucherEntryInline(admin.TabularInline):
    """Show the debit / credit legs on the Voucher page (read only)"""

    model = VoucherEntry
    extra = 0  # don’t show “empty” rows
    fields = ("ledger", "debit_amount", "credit_amount", "narration")
    # entries only change through posting, never by hand
    readonly_fields = fields
    can_delete = False
    ordering = ("id",)  # lines appear in creation order

    def has_add_permission(self, request, obj=None):
        return False

    def get_queryset(self, request):
        return super().get_queryset(request).select_related("ledger")


class OrderAssignmentInline(admin.TabularInline):
    model = OrderAssignment
    extra = 1
    fields = ("assigned_to", "assigned_at")
    readonly_fields = ("assigned_at",)


class ProductionEntryInline(admin.TabularInline):
    model = ProductionEntry
    extra = 0
    fields = (
        "entry_date", "produced_quantity", "machine", "shift",
        "wastage", "previous_quantity", "edited_reason", "created_by",
    )
    readonly_fields = ("previous_quantity", "created_by")
    show_change_link = True  # each row has a link to full detail page


class DispatchEntryInline(admin.TabularInline):
    model = DispatchEntry
    extra = 0
    fields = ("dispatch_date", "dispatched_quantity", "vehicle_no", "transporter", "created_by")
    readonly_fields = ("created_by",)
    show_change_link = True


class SawmillOutputEntryInline(admin.TabularInline):
    model = SawmillOutputEntry
    extra = 0
    fields = ("output_type", "size", "length", "quantity", "cft", "weight", "rate_per_unit", "amount")
    # booked through the output screen, which prices and moves the log
    readonly_fields = fields
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


class NotificationLogInline(admin.TabularInline):
    model = NotificationLog
    extra = 0
    fields = ("channel", "status", "error_message", "created_at")
    readonly_fields = fields
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False
