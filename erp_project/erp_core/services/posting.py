import logging
from collections import defaultdict
from decimal import Decimal
from functools import partial
from django.core.exceptions import ValidationError
from django.db import IntegrityError, models, transaction
from django.db.models import F

# Import models
from ..exceptions import DuplicateVoucherNumberError
from ..models import (Ledger, Voucher, VoucherEntry, VoucherNotification,
                      VoucherSequence)
from ..models.voucher import VOUCHER_PREFIXES
from .audit_helper import log_action
from .validation import validate_voucher_entries

logger = logging.getLogger(__name__)


# ----------------------------
# Voucher numbering
# ----------------------------
def format_voucher_number(voucher_type, number):
    # JV-00001, CNT-00012, ...
    return f"{VOUCHER_PREFIXES[voucher_type]}-{number:05d}"


def next_voucher_number(company, voucher_type):
    """
    Hand out the next number for (company, voucher_type).
    The sequence row is locked until the surrounding transaction ends, so
    concurrent postings queue up instead of reading the same "last" number.
    Numbers already taken by hand-numbered vouchers are skipped.
    """
    if voucher_type not in VOUCHER_PREFIXES:
        raise ValidationError(f"Unknown voucher type: {voucher_type}")

    with transaction.atomic():
        seq, _ = VoucherSequence.objects.select_for_update().get_or_create(
            company=company, voucher_type=voucher_type
        )
        number = seq.last_number
        while True:
            number += 1
            candidate = format_voucher_number(voucher_type, number)
            taken = Voucher.objects.filter(
                company=company, voucher_type=voucher_type, voucher_number=candidate
            ).exists()
            if not taken:
                break
        seq.last_number = number
        seq.save(update_fields=["last_number"])
    return candidate


# ----------------------------
# Ledger balance maintenance
# ----------------------------
def _apply_balance_effects(net_by_ledger, sign=1):
    """
    Move each ledger's current_balance by sign × (Σ debit − Σ credit).
    Rows are locked in primary-key order so two postings touching the same
    ledgers cannot deadlock.
    """
    ids = sorted(lid for lid, net in net_by_ledger.items() if net)
    list(Ledger.objects.select_for_update().filter(pk__in=ids).order_by("pk"))
    for lid in ids:
        Ledger.objects.filter(pk=lid).update(
            current_balance=F("current_balance") + sign * net_by_ledger[lid]
        )


def _net_by_ledger(pairs):
    totals = defaultdict(lambda: Decimal("0.00"))
    for ledger_id, net in pairs:
        totals[ledger_id] += net
    return totals


# ----------------------------
# Voucher-related workflows
# ----------------------------
def post_voucher(
    company,
    voucher_type,
    voucher_date,
    entries,
    *,
    voucher_number=None,
    party_ledger=None,
    narration="",
    user=None,
    notify_email=None,
    notify_message="",
):
    """
    Record a voucher with its entries and move ledger balances, all or nothing.

    Validation happens before anything is written (see
    validate_voucher_entries). Then, in one transaction:
      1. take the next number (unless one was supplied)
      2. insert the header and the entries
      3. shift each ledger's current_balance by its Σ(debit − credit)
      4. write the audit row and, if notify_email is given, a
         VoucherNotification intent
    The notification is handed to Celery only after commit, so a mail
    failure can never undo the voucher.
    """
    lines, total_debit, _ = validate_voucher_entries(company, voucher_type, entries)

    if party_ledger is not None:
        party_pk = getattr(party_ledger, "pk", party_ledger)
        party_ledger = Ledger.objects.filter(pk=party_pk).first()
        if party_ledger is None or party_ledger.company_id != company.pk:
            raise ValidationError("Party ledger must belong to the voucher's company.")

    if voucher_number is not None:
        voucher_number = str(voucher_number).strip()
        if not voucher_number:
            voucher_number = None
    if voucher_number and Voucher.objects.filter(
        company=company, voucher_type=voucher_type, voucher_number=voucher_number
    ).exists():
        raise DuplicateVoucherNumberError(
            f"Voucher number {voucher_number} already exists for {voucher_type} vouchers."
        )

    with transaction.atomic():
        number = voucher_number or next_voucher_number(company, voucher_type)
        try:
            # savepoint, so a lost race leaves the outer transaction usable
            with transaction.atomic():
                voucher = Voucher.objects.create(
                    company=company,
                    voucher_number=number,
                    voucher_date=voucher_date,
                    voucher_type=voucher_type,
                    party_ledger=party_ledger,
                    total_amount=total_debit,
                    narration=narration or "",
                    created_by=user if getattr(user, "is_authenticated", False) else None,
                )
        except IntegrityError:
            raise DuplicateVoucherNumberError(
                f"Voucher number {number} already exists for {voucher_type} vouchers."
            )

        VoucherEntry.objects.bulk_create(
            [
                VoucherEntry(
                    voucher=voucher,
                    ledger=line.ledger,
                    debit_amount=line.debit,
                    credit_amount=line.credit,
                    narration=line.narration,
                )
                for line in lines
            ]
        )

        _apply_balance_effects(
            _net_by_ledger((line.ledger.pk, line.net) for line in lines)
        )

        log_action(
            action="post",
            instance=voucher,
            user=user,
            changes={
                "voucher_number": number,
                "voucher_type": voucher_type,
                "total_amount": total_debit,
                "entries": len(lines),
            },
        )

        if notify_email:
            queue_voucher_notification(voucher, notify_email, notify_message)

    logger.info(
        "Posted %s %s for company %s (total %s, %d entries)",
        voucher_type, number, company.pk, total_debit, len(lines),
    )
    return voucher


def queue_voucher_notification(voucher, to_email, message=""):
    """
    Write the notification intent now, deliver it after commit.
    Must run inside the transaction that created the voucher.
    """
    from ..tasks import send_voucher_notification

    notification = VoucherNotification.objects.create(
        voucher=voucher,
        from_company=voucher.company,
        to_user_email=to_email,
        message=message or "",
    )
    transaction.on_commit(partial(send_voucher_notification.delay, notification.pk))
    return notification


def delete_voucher(voucher, user=None):
    """
    Remove a voucher and undo its effect on every ledger balance.
    Entries go with the header (cascade).
    """
    with transaction.atomic():
        # Lock the row to avoid two deletes reversing twice
        voucher = Voucher.objects.select_for_update().get(pk=voucher.pk)
        pairs = [
            (e.ledger_id, e.net_amount) for e in voucher.entries.all()
        ]
        _apply_balance_effects(_net_by_ledger(pairs), sign=-1)

        log_action(
            action="delete",
            instance=voucher,
            user=user,
            changes={
                "voucher_number": voucher.voucher_number,
                "voucher_type": voucher.voucher_type,
                "total_amount": voucher.total_amount,
            },
        )
        number = voucher.voucher_number
        voucher.delete()

    logger.info("Deleted voucher %s of company %s", number, voucher.company_id)


def recompute_ledger_balances(company_id):
    """
    Rebuild current_balance = opening_balance + Σ(debit − credit) for every
    ledger of a company. Returns the number of ledgers that were off.
    """
    sums = {
        row["ledger_id"]: (row["debit"] or 0) - (row["credit"] or 0)
        for row in VoucherEntry.objects.filter(ledger__company_id=company_id)
        .values("ledger_id")
        .annotate(debit=models.Sum("debit_amount"), credit=models.Sum("credit_amount"))
    }
    fixed = 0
    with transaction.atomic():
        for ledger in Ledger.objects.select_for_update().filter(company_id=company_id):
            expected = ledger.opening_balance + sums.get(ledger.pk, Decimal("0.00"))
            if ledger.current_balance != expected:
                logger.warning(
                    "Ledger %s (%s) balance drifted: stored %s, expected %s",
                    ledger.pk, ledger.name, ledger.current_balance, expected,
                )
                Ledger.objects.filter(pk=ledger.pk).update(current_balance=expected)
                fixed += 1
    return fixed
