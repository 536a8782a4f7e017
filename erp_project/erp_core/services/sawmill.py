import io
import json
import logging
from decimal import Decimal
from django.core.exceptions import ValidationError
from django.db import IntegrityError, models, transaction
from django.utils import timezone

import qrcode

from ..exceptions import DuplicateTagError
from ..models import (ProductRate, SawmillContractorPayment, SawmillLog,
                      SawmillOutputEntry, SawmillProductionEntry)
from ..models.sawmill import LOG_GRADES, LOG_STATUS, OUTPUT_TYPES
from .audit_helper import log_action
from .measurements import quantize_cft, yield_percent
from .posting import post_voucher
from .validation import to_amount

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
# girth and length columns are max_digits=10, decimal_places=2
DIMENSION_LIMIT = Decimal("1e8")


def _positive(value, field, limit=DIMENSION_LIMIT):
    if value in (None, ""):
        raise ValidationError(f"{field} is required.")
    try:
        number = Decimal(str(value))
    except ArithmeticError:
        raise ValidationError(f"Invalid {field}: {value!r}")
    if not number.is_finite() or number <= 0:
        raise ValidationError(f"{field} must be greater than zero.")
    if number >= limit:
        raise ValidationError(f"{field} is too large: {value!r}")
    return number


def _same_company(company, obj, label):
    if obj is not None and obj.company_id != company.pk:
        raise ValidationError(f"{label} belongs to another company.")


# ----------------------------
# Log registry
# ----------------------------
def register_log(
    company,
    user,
    tag_number,
    girth_cm,
    length_meter,
    grade="A",
    *,
    saw_mill=None,
    supplier_name="",
    lot_no="",
    purchase_rate=0,
    notes="",
):
    """
    Tag a new log. girth_inch, cft, total_amount and the qr_data snapshot
    are filled in by the model. A tag already used in the company raises
    DuplicateTagError.
    """
    tag_number = (tag_number or "").strip()
    if not tag_number:
        raise ValidationError("Tag number is required.")
    girth_cm = _positive(girth_cm, "Girth")
    length_meter = _positive(length_meter, "Length")
    if grade not in dict(LOG_GRADES):
        raise ValidationError(f"Unknown grade: {grade}")
    _same_company(company, saw_mill, "Saw mill")

    if SawmillLog.objects.filter(company=company, tag_number=tag_number).exists():
        raise DuplicateTagError(f"Tag number {tag_number} already exists.")

    with transaction.atomic():
        try:
            # savepoint, so a concurrent insert of the same tag is reported cleanly
            with transaction.atomic():
                log = SawmillLog(
                    company=company,
                    saw_mill=saw_mill,
                    tag_number=tag_number,
                    girth_cm=girth_cm,
                    length_meter=length_meter,
                    grade=grade,
                    supplier_name=supplier_name or "",
                    lot_no=lot_no or "",
                    purchase_rate=to_amount(purchase_rate, "purchase rate"),
                    notes=notes or "",
                    created_by=user if getattr(user, "is_authenticated", False) else None,
                )
                log.save()
        except IntegrityError:
            raise DuplicateTagError(f"Tag number {tag_number} already exists.")
        log_action(action="create", instance=log, user=user, changes=log.qr_data)

    logger.info("Registered log %s (%s cft) for company %s", tag_number, log.cft, company.pk)
    return log


def parse_qr_payload(text):
    """
    Tag number from a scanned code: either the JSON snapshot printed on the
    tag ({"tag": ...}) or the bare tag number.
    """
    text = (text or "").strip()
    if not text:
        raise ValidationError("Nothing to look up.")
    if text.startswith("{"):
        try:
            payload = json.loads(text)
        except ValueError:
            raise ValidationError("QR payload is not valid JSON.")
        tag = str(payload.get("tag") or "").strip()
        if not tag:
            raise ValidationError("QR payload has no tag.")
        return tag
    return text


def lookup_log(company, tag_or_qr):
    """Resolve a tag number or a scanned QR payload to the company's log."""
    tag = parse_qr_payload(tag_or_qr)
    return SawmillLog.objects.for_company(company).get(tag_number=tag)


def qr_code_png(log):
    """PNG bytes of the QR code carrying the log's qr_data snapshot."""
    qr = qrcode.QRCode(version=None, box_size=10, border=2)
    qr.add_data(json.dumps(log.qr_data or log.build_qr_payload(), sort_keys=True))
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()


def advance_log_status(log, new_status, user=None):
    """Move a log one step forward (locks the row first)."""
    with transaction.atomic():
        locked = SawmillLog.objects.select_for_update().get(pk=log.pk)
        old = locked.status
        locked.advance_status(new_status)
        log_action(
            action="status",
            instance=locked,
            user=user,
            changes={"from": old, "to": new_status},
        )
    logger.info("Log %s: %s -> %s", locked.tag_number, old, new_status)
    log.status = locked.status
    return locked


# ----------------------------
# Production (log input) & output
# ----------------------------
def record_log_input(
    company,
    *,
    girth,
    length,
    quantity=1,
    rate_per_cft=0,
    contractor=None,
    log=None,
    saw_mill=None,
    entry_date=None,
    team_name="",
    machine_no="",
    notes="",
    user=None,
):
    """
    Book logs put through the saw. Linking a log that is still
    available moves it to in_process; a processed log cannot be used again.
    The contractor's balance follows through signals.
    """
    girth = _positive(girth, "Girth")
    length = _positive(length, "Length")
    try:
        quantity = int(quantity)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid quantity: {quantity!r}")
    if quantity < 1:
        raise ValidationError("Quantity must be at least 1.")
    for obj, label in ((contractor, "Contractor"), (log, "Log"), (saw_mill, "Saw mill")):
        _same_company(company, obj, label)

    with transaction.atomic():
        if log is not None:
            log = SawmillLog.objects.select_for_update().get(pk=log.pk)
            if log.status == "processed":
                raise ValidationError(f"Log {log.tag_number} has already been processed.")
        entry = SawmillProductionEntry(
            company=company,
            saw_mill=saw_mill or (log.saw_mill if log else None),
            contractor=contractor,
            log=log,
            entry_date=entry_date or timezone.localdate(),
            girth=girth,
            length=length,
            quantity=quantity,
            rate_per_cft=to_amount(rate_per_cft, "rate"),
            team_name=team_name or "",
            machine_no=machine_no or "",
            notes=notes or "",
            created_by=user if getattr(user, "is_authenticated", False) else None,
        )
        entry.save()
        if log is not None and log.status == "available":
            log.advance_status("in_process")
        log_action(
            action="create",
            instance=entry,
            user=user,
            changes={"cft": entry.cft, "total_amount": entry.total_amount},
        )
    return entry


def default_rate(company, output_type):
    rate = (
        ProductRate.objects.active(company)
        .filter(product_type=output_type)
        .values_list("rate_per_unit", flat=True)
        .first()
    )
    return rate if rate is not None else Decimal("0.00")


def record_output(
    company,
    *,
    output_type,
    production_entry=None,
    saw_mill=None,
    size="",
    length=0,
    quantity=0,
    cft=None,
    weight=0,
    rate_per_unit=None,
    entry_date=None,
    notes="",
    user=None,
):
    """
    Book material coming off the saw. Planks take their CFT from
    size × length × quantity (or an explicit cft); firewood / sawdust are
    weighed. Without a rate the company's ProductRate for the type is used.
    Output against a production entry whose log is in_process moves that
    log to processed.
    """
    if output_type not in dict(OUTPUT_TYPES):
        raise ValidationError(f"Unknown output type: {output_type}")
    _same_company(company, production_entry, "Production entry")
    _same_company(company, saw_mill, "Saw mill")
    if rate_per_unit in (None, ""):
        rate_per_unit = default_rate(company, output_type)
    if cft not in (None, ""):
        try:
            cft = quantize_cft(cft)
        except ArithmeticError:
            raise ValidationError(f"Invalid cft: {cft!r}")

    with transaction.atomic():
        entry = SawmillOutputEntry(
            company=company,
            saw_mill=saw_mill or (production_entry.saw_mill if production_entry else None),
            production_entry=production_entry,
            entry_date=entry_date or timezone.localdate(),
            output_type=output_type,
            size=size or "",
            length=to_amount(length, "length"),
            quantity=to_amount(quantity, "quantity"),
            cft=ZERO if cft in (None, "") else cft,
            weight=to_amount(weight, "weight"),
            rate_per_unit=to_amount(rate_per_unit, "rate"),
            notes=notes or "",
            created_by=user if getattr(user, "is_authenticated", False) else None,
        )
        entry.save()

        log = production_entry.log if production_entry is not None else None
        if log is not None:
            log = SawmillLog.objects.select_for_update().get(pk=log.pk)
            if log.status == "in_process":
                log.advance_status("processed")
        log_action(
            action="create",
            instance=entry,
            user=user,
            changes={"output_type": output_type, "cft": entry.cft, "amount": entry.amount},
        )
    return entry


# ----------------------------
# Contractor payments
# ----------------------------
def record_contractor_payment(
    contractor,
    user,
    amount,
    *,
    payment_date=None,
    payment_mode="cash",
    paid_from=None,
    notes="",
):
    """
    Pay a contractor. With `paid_from` (a cash / bank ledger) a payment
    voucher Dr contractor ledger / Cr paid_from is posted in the same
    transaction, so books and contractor balance never disagree.
    """
    amount = to_amount(amount, "amount")
    if amount <= 0:
        raise ValidationError("Payment amount must be greater than zero.")
    company = contractor.company
    payment_date = payment_date or timezone.localdate()

    with transaction.atomic():
        voucher = None
        if paid_from is not None:
            if contractor.ledger is None:
                raise ValidationError(
                    f"Contractor {contractor.name} has no ledger to post the payment to."
                )
            voucher = post_voucher(
                company,
                "payment",
                payment_date,
                [
                    {"ledger": contractor.ledger, "debit": amount},
                    {"ledger": paid_from, "credit": amount},
                ],
                party_ledger=contractor.ledger,
                narration=notes or f"Payment to contractor {contractor.name}",
                user=user,
            )
        payment = SawmillContractorPayment(
            company=company,
            contractor=contractor,
            voucher=voucher,
            payment_date=payment_date,
            amount=amount,
            payment_mode=payment_mode,
            notes=notes or "",
            created_by=user if getattr(user, "is_authenticated", False) else None,
        )
        payment.save()
        log_action(
            action="create",
            instance=payment,
            user=user,
            changes={"amount": amount, "voucher": voucher.voucher_number if voucher else None},
        )
    contractor.refresh_from_db(fields=["current_balance"])
    logger.info(
        "Paid %s to contractor %s, balance now %s",
        amount, contractor.pk, contractor.current_balance,
    )
    return payment


# ----------------------------
# Statistics
# ----------------------------
def log_stats(company, saw_mill=None):
    """Count and CFT of logs per status, plus totals."""
    qs = SawmillLog.objects.for_company(company)
    if saw_mill is not None:
        qs = qs.filter(saw_mill=saw_mill)
    rows = {
        r["status"]: r
        for r in qs.values("status").annotate(count=models.Count("id"), cft=models.Sum("cft"))
    }
    stats = {}
    for status, _ in LOG_STATUS:
        row = rows.get(status, {})
        stats[status] = {"count": row.get("count", 0), "cft": row.get("cft") or ZERO}
    stats["total"] = {
        "count": sum(s["count"] for s in stats.values()),
        "cft": sum((s["cft"] for s in stats.values()), ZERO),
    }
    return stats


def yield_report(company, from_date=None, to_date=None, saw_mill=None):
    """Input CFT vs output CFT (planks only) for a period, with yield %."""
    inputs = SawmillProductionEntry.objects.for_company(company)
    outputs = SawmillOutputEntry.objects.for_company(company)
    if from_date:
        inputs = inputs.filter(entry_date__gte=from_date)
        outputs = outputs.filter(entry_date__gte=from_date)
    if to_date:
        inputs = inputs.filter(entry_date__lte=to_date)
        outputs = outputs.filter(entry_date__lte=to_date)
    if saw_mill is not None:
        inputs = inputs.filter(saw_mill=saw_mill)
        outputs = outputs.filter(saw_mill=saw_mill)

    input_cft = inputs.aggregate(total=models.Sum("cft"))["total"] or ZERO
    by_type = {
        r["output_type"]: r
        for r in outputs.values("output_type").annotate(
            cft=models.Sum("cft"), weight=models.Sum("weight"), amount=models.Sum("amount")
        )
    }
    output = {}
    for output_type, _ in OUTPUT_TYPES:
        row = by_type.get(output_type, {})
        output[output_type] = {
            "cft": row.get("cft") or ZERO,
            "weight": row.get("weight") or ZERO,
            "amount": row.get("amount") or ZERO,
        }
    output_cft = sum((v["cft"] for v in output.values()), ZERO)
    return {
        "input_cft": input_cft,
        "output_cft": output_cft,
        "output": output,
        "yield_percent": yield_percent(input_cft, output_cft),
    }
