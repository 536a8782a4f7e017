from django.db import models

# -----------------------------------------
# Enforce tenant scoping across all models
# that belong to a company
# -----------------------------------------
# Define subclass of Django’s QuerySet
class TenantQuerySet(models.QuerySet):
    def for_company(self, company):         # Add queryset helper
        return self.filter(company=company) # Apply filter

    def active(self, company):
        return self.filter(
                            company=company, # enforce tenant scoping
                            is_active=True   # only fetch active records
                        )
    # Enables query:
    # Ledger.objects.active(request.company)


# Attach TenantQuerySet to .objects
class TenantManager(models.Manager.from_queryset(TenantQuerySet)):
    # every model using TenantManager can call:
    # Ledger.objects.for_company(request.company)
    use_in_migrations = True


# Ledger-specific helpers on top of tenant scoping
class LedgerQuerySet(TenantQuerySet):
    def of_types(self, company, ledger_types):
        # e.g. all "sales_accounts" + "direct_incomes" ledgers of one company
        return self.filter(company=company, ledger_type__in=list(ledger_types))


class LedgerManager(models.Manager.from_queryset(LedgerQuerySet)):
    use_in_migrations = True


# Entries are scoped through their voucher, not a company column
class VoucherEntryQuerySet(models.QuerySet):
    def for_company(self, company):
        return self.filter(voucher__company=company)

    def in_range(self, from_date=None, to_date=None):
        # both bounds are inclusive, None means open-ended
        qs = self
        if from_date:
            qs = qs.filter(voucher__voucher_date__gte=from_date)
        if to_date:
            qs = qs.filter(voucher__voucher_date__lte=to_date)
        return qs
