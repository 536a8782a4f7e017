from django.contrib import admin, messages
from django.utils.translation import gettext_lazy as _

from erp_core.exceptions import InvalidStatusTransition
from erp_core.models.sawmill import LOG_STATUS_NEXT
from erp_core.services.posting import recompute_ledger_balances
from erp_core.services.sawmill import advance_log_status
from erp_core.tasks import send_voucher_notification

# ---------- Admin actions ----------


@admin.action(description="Move selected logs to their next status")
# Bulk-advance logs from the admin list view
def advance_selected_logs(
    modeladmin,  # `ModelAdmin` class for SawmillLog
    request,  # HTTP request object
    queryset,  # record what admin selected from list view
):
    """
    available -> in_process, in_process -> processed.
    Each log is moved in its own transaction (see advance_log_status);
    processed logs are reported and left alone.
    """
    moved = 0
    for log in queryset:
        new_status = LOG_STATUS_NEXT.get(log.status)
        try:
            if new_status is None:
                raise InvalidStatusTransition(f"{log.tag_number} is already processed")
            advance_log_status(log, new_status, user=request.user)
            moved += 1
        except InvalidStatusTransition as exc:
            modeladmin.message_user(
                request,
                _("Could not move log %(tag)s: %(err)s") % {"tag": log.tag_number, "err": exc},
                level=messages.ERROR,
            )
    # Final summary message
    modeladmin.message_user(request, _("Moved %(n)d log(s).") % {"n": moved})


@admin.action(description="Recompute ledger balances for the selected companies")
def recompute_company_balances(modeladmin, request, queryset):
    for company in queryset:
        fixed = recompute_ledger_balances(company.pk)
        modeladmin.message_user(
            request,
            _("%(company)s: %(fixed)d ledger balance(s) corrected.")
            % {"company": company.name, "fixed": fixed},
            level=messages.SUCCESS if not fixed else messages.WARNING,
        )


@admin.action(description="Recompute balances of selected contractors")
def recompute_contractor_balances(modeladmin, request, queryset):
    for contractor in queryset:
        contractor.recompute_balance()
    modeladmin.message_user(request, _("Recomputed %(n)d contractor(s).") % {"n": queryset.count()})


@admin.action(description="Refresh status of selected orders")
def refresh_order_status(modeladmin, request, queryset):
    changed = 0
    for order in queryset:
        old = order.status
        if order.refresh_status() != old:
            changed += 1
    modeladmin.message_user(request, _("%(n)d order status(es) updated.") % {"n": changed})


@admin.action(description="Send selected notifications again (if not delivered)")
def resend_voucher_notifications(modeladmin, request, queryset):
    # The task skips anything already delivered
    for notification in queryset:
        send_voucher_notification.delay(notification.pk)
    modeladmin.message_user(request, _("Queued %(n)d notification(s).") % {"n": queryset.count()})
