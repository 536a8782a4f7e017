import logging
from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task  # register this function as a Celery task
def send_voucher_notification(notification_id):
    # import lazily to avoid circular imports at module import time
    from .services.notifications import deliver_voucher_notification

    # Idempotent: an already delivered notification is skipped
    log = deliver_voucher_notification(notification_id)
    return log.status if log is not None else None


@shared_task
def send_dispatch_notification(dispatch_entry_id):
    from .services.notifications import deliver_dispatch_notifications

    # Only rows still "pending" are sent, so a retry never sends twice
    return deliver_dispatch_notifications(dispatch_entry_id)


@shared_task
def recompute_ledger_balances(company_id):
    from .services.posting import recompute_ledger_balances as recompute

    # Rebuild current_balance from opening balance + posted entries
    fixed = recompute(company_id)
    if fixed:
        logger.warning("Fixed %d ledger balance(s) for company %s", fixed, company_id)
    return fixed


@shared_task
def recompute_contractor_balances(company_id):
    from .models import SawmillContractor

    # Same idea for sawmill contractors
    contractors = SawmillContractor.objects.filter(company_id=company_id)
    for contractor in contractors:
        contractor.recompute_balance()
    return contractors.count()
