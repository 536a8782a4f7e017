from decimal import Decimal
from django.contrib import admin
from django.utils.html import format_html
from erp_core.models import Ledger, Voucher, VoucherSequence
from erp_core.services.posting import delete_voucher
from .inlines import VoucherEntryInline
from .mixins import TenantAdminMixin


@admin.register(Ledger)
class LedgerAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = (
        "id", "name", "ledger_type", "opening_balance", "current_balance",
        "gstin", "is_active",
    )
    list_filter = ("ledger_type", "is_active")
    search_fields = ("name", "gstin", "contact_person")
    # current_balance only moves through vouchers
    readonly_fields = ("current_balance", "created_at")
    ordering = ("name",)


# Register `Voucher` model
@admin.register(Voucher)
class VoucherAdmin(TenantAdminMixin, admin.ModelAdmin):
    """
    Vouchers are posted through the posting service so ledger balances stay
    right; the admin can browse and delete them, not add or edit them.
    """

    list_display = (
        "voucher_number",
        "voucher_type",
        "voucher_date",
        "party_ledger",
        "total_amount",
        "created_by",
        "balanced",
    )
    list_filter = ("voucher_type", "voucher_date")
    search_fields = ("voucher_number", "narration", "party_ledger__name")
    date_hierarchy = "voucher_date"
    inlines = [VoucherEntryInline]

    def has_add_permission(self, request):
        return False

    def get_readonly_fields(self, request, obj=None):
        return [f.name for f in self.model._meta.fields]

    # Fetch everything in one SQL join
    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related("company", "party_ledger", "created_by").prefetch_related(
            "entries"
        )

    """ Computed column for balance check """
    def balanced(self, obj):
        d, c = obj.compute_totals()
        # format: bold debits / small credits
        return format_html(
            "<b>{}</b> / <small>{}</small>",
            d or Decimal("0.00"),
            c or Decimal("0.00"),
        )

    # set column header in admin
    balanced.short_description = "Debits / Credits"

    """ Deleting must reverse ledger balances """
    def delete_model(self, request, obj):
        delete_voucher(obj, user=request.user)

    def delete_queryset(self, request, queryset):
        for voucher in queryset:
            delete_voucher(voucher, user=request.user)


@admin.register(VoucherSequence)
class VoucherSequenceAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = ("company", "voucher_type", "last_number")
    list_filter = ("voucher_type",)
    readonly_fields = ("last_number",)
