from django.contrib import admin
from erp_core.models import (ProductRate, SawMill, SawmillContractor,
                             SawmillContractorPayment, SawmillLog,
                             SawmillOutputEntry, SawmillProductionEntry)
from .actions import advance_selected_logs, recompute_contractor_balances
from .inlines import SawmillOutputEntryInline
from .mixins import TenantAdminMixin


@admin.register(SawMill)
class SawMillAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = ("name", "location", "is_active")
    search_fields = ("name", "location")


@admin.register(SawmillLog)
class SawmillLogAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = (
        "tag_number", "grade", "girth_cm", "length_meter", "cft",
        "status", "saw_mill", "supplier_name",
    )
    list_filter = ("status", "grade", "saw_mill")
    search_fields = ("tag_number", "supplier_name", "lot_no")
    # derived on save; status moves only forward through the action
    readonly_fields = ("girth_inch", "cft", "total_amount", "qr_data", "status")
    actions = [advance_selected_logs]


@admin.register(SawmillContractor)
class SawmillContractorAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = ("name", "phone", "ledger", "opening_balance", "current_balance", "is_active")
    search_fields = ("name", "phone")
    readonly_fields = ("current_balance",)
    actions = [recompute_contractor_balances]


@admin.register(SawmillProductionEntry)
class SawmillProductionEntryAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = (
        "entry_date", "contractor", "log", "girth", "length",
        "quantity", "cft", "rate_per_cft", "total_amount",
    )
    list_filter = ("entry_date", "contractor")
    search_fields = ("team_name", "machine_no", "log__tag_number")
    readonly_fields = ("cft", "total_amount", "created_by")
    inlines = [SawmillOutputEntryInline]


@admin.register(SawmillOutputEntry)
class SawmillOutputEntryAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = ("entry_date", "output_type", "size", "quantity", "cft", "weight", "amount")
    list_filter = ("output_type", "entry_date")
    readonly_fields = ("amount", "created_by")


@admin.register(SawmillContractorPayment)
class SawmillContractorPaymentAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = ("payment_date", "contractor", "amount", "payment_mode", "voucher")
    list_filter = ("payment_mode", "payment_date")
    readonly_fields = ("voucher", "created_by")


@admin.register(ProductRate)
class ProductRateAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = ("product_type", "rate_per_unit", "unit", "is_active", "updated_at")
    list_filter = ("is_active",)
