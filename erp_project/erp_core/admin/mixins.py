class TenantAdminMixin:
    """
    Enforce tenant isolation in Django admin.
    Uses request.company (set by CurrentCompanyMiddleware)
    or falls back to the first company the user holds an active role in.
    """

    def _get_request_company(self, request):
        # prefer request.company (middleware)
        company = getattr(request, "company", None)
        if company is None:
            user = getattr(request, "user", None)
            if user is not None and user.is_authenticated:
                role = user.roles.filter(is_active=True).select_related("company").first()
                company = role.company if role else None
        return company

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        # If superuser, show everything;
        # otherwise restrict to company if available
        if request.user.is_superuser:
            return qs
        company = self._get_request_company(request)
        if company is None:
            # If no company available in request, return none
            return qs.none()
        return qs.filter(**{self.company_lookup: company})

    # Models without their own company column override this
    # (e.g. "voucher__company" for entries)
    company_lookup = "company"

    def formfield_for_foreignkey(self, db_field, request, **kwargs):
        """
        Restrict foreignkey dropdowns to the current company where appropriate:
        the company field itself and any company-scoped model
        (ledger, order, log, contractor, ...).
        """
        if request.user.is_superuser:
            return super().formfield_for_foreignkey(db_field, request, **kwargs)

        company = self._get_request_company(request)
        rel_model = db_field.related_model

        # If FK is to Company, restrict to user's company
        if db_field.name in ("company", "from_company"):
            kwargs["queryset"] = (
                rel_model.objects.filter(pk=company.pk)
                if company is not None
                else rel_model.objects.none()
            )
        # if related model has a `company` field, restrict it to request's company
        elif any(f.name == "company" for f in rel_model._meta.fields):
            kwargs["queryset"] = (
                rel_model.objects.filter(company=company)
                if company is not None
                else rel_model.objects.none()
            )
        return super().formfield_for_foreignkey(db_field, request, **kwargs)

    def save_model(self, request, obj, form, change):
        # Ensure object is always owned by company on save (unless superuser)
        if not request.user.is_superuser and self.company_lookup == "company":
            company = self._get_request_company(request)
            if company is not None:
                obj.company = company
        super().save_model(request, obj, form, change)
