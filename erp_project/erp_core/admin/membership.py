from django.contrib import admin
from erp_core.models import Company, UserRole
from .actions import recompute_company_balances
from .mixins import TenantAdminMixin


# Register `Company` model in admin with this custom config
@admin.register(Company)
class CompanyAdmin(admin.ModelAdmin):
    """a clean admin table for browsing companies"""

    # columns shown in company list view
    list_display = ("id", "name", "slug", "gstin", "state", "owner", "created_at")
    search_fields = ("name", "slug", "gstin")  # enable search by name, slug, GSTIN
    ordering = ("name",)  # sort companies alphabetically by default
    actions = [recompute_company_balances]

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        if not request.user.is_superuser:
            # staff only see companies they belong to
            qs = qs.filter(user_roles__user=request.user, user_roles__is_active=True)
        return qs.select_related("owner")


@admin.register(UserRole)
class UserRoleAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = ("id", "full_name", "user", "company", "role", "department", "is_active")
    list_filter = ("company", "role", "is_active")
    search_fields = ("full_name", "user__username", "user__email")

    # Fetch everything in one SQL join
    def get_queryset(self, request):
        return super().get_queryset(request).select_related("user", "company")
