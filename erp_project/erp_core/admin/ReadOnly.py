from django.contrib import admin
from django.core.exceptions import PermissionDenied


class ReadOnlyAdmin(admin.ModelAdmin):
    """Browse-only admin for append-only rows such as the audit trail and
    notification delivery log. Subclasses list the columns they would like
    to filter or search on; names missing from the model are skipped."""

    filter_candidates = ("company", "action", "status", "channel")
    search_candidates = ("object_type", "object_id", "error_message")
    date_hierarchy = "created_at"
    ordering = ("-created_at",)
    list_per_page = 50

    def _present(self, names):
        fields = {f.name for f in self.model._meta.fields}
        return tuple(name for name in names if name in fields)

    def get_list_filter(self, request):
        return self._present(self.filter_candidates)

    def get_search_fields(self, request):
        return self._present(self.search_candidates)

    def get_readonly_fields(self, request, obj=None):
        return [f.name for f in self.model._meta.fields]

    # rows are written by services only
    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    def get_actions(self, request):
        return {}

    def save_model(self, request, obj, form, change):
        raise PermissionDenied(f"{obj._meta.verbose_name} rows are append-only.")
