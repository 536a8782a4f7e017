import json
import logging
from functools import wraps
from django.core.exceptions import PermissionDenied, ValidationError
from django.http import HttpResponse, JsonResponse
from django.shortcuts import get_object_or_404
from django.utils import timezone
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from .exceptions import (DuplicateMachineCodeError, DuplicateTagError,
                         DuplicateVoucherNumberError, GstinLookupError,
                         InvalidGstinError, InvalidStatusTransition,
                         UnbalancedVoucherError)
from .middleware import switch_company
from .models import (Ledger, Machine, ProductionEntry, SalesOrder, SawMill,
                     SawmillContractor, SawmillLog, SawmillProductionEntry,
                     Voucher, VoucherNotification)
from .services import notifications, production, reports, sawmill
from .services.gstin import lookup_gstin
from .services.posting import delete_voucher, post_voucher
from .services.users import provision_user
from .services.validation import to_amount

logger = logging.getLogger(__name__)

# Exception -> HTTP status
BAD_REQUEST = (ValidationError, UnbalancedVoucherError, InvalidStatusTransition, InvalidGstinError)
CONFLICT = (DuplicateVoucherNumberError, DuplicateTagError, DuplicateMachineCodeError)


def _message(exc):
    if isinstance(exc, ValidationError):
        return "; ".join(exc.messages)
    return str(exc)


def api_view(view):
    """
    Turn domain errors into JSON responses:
    validation 400, permission 403, duplicates 409, upstream failures 502.
    Requests without a logged-in user or an active company get 401 / 403.
    """
    @wraps(view)
    def wrapper(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return JsonResponse({"ok": False, "error": "Authentication required."}, status=401)
        if getattr(request, "company", None) is None:
            return JsonResponse({"ok": False, "error": "No active company."}, status=403)
        try:
            return view(request, *args, **kwargs)
        except BAD_REQUEST as e:
            return JsonResponse({"ok": False, "error": _message(e)}, status=400)
        except PermissionDenied as e:
            return JsonResponse({"ok": False, "error": str(e) or "Permission denied."}, status=403)
        except CONFLICT as e:
            logger.info("Rejected duplicate in %s: %s", view.__name__, e)
            return JsonResponse({"ok": False, "error": str(e)}, status=409)
        except GstinLookupError as e:
            return JsonResponse({"ok": False, "error": str(e)}, status=502)
    return wrapper


def _body(request):
    # JSON body, or form data for plain POSTs
    if request.content_type == "application/json":
        try:
            data = json.loads(request.body or b"{}")
        except ValueError:
            raise ValidationError("Request body is not valid JSON.")
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object.")
        return data
    return request.POST.dict()


def _optional(model, company, pk):
    # Tenant-scoped lookup of an optional related object
    if pk in (None, ""):
        return None
    return get_object_or_404(model, pk=pk, company=company)


# ----------------------------
# Vouchers & reports
# ----------------------------
@require_POST
@api_view
def post_voucher_view(request):
    data = _body(request)
    voucher = post_voucher(
        request.company,
        data.get("voucher_type"),
        reports.parse_date(data.get("voucher_date"), "voucher_date") or timezone.localdate(),
        data.get("entries") or [],
        voucher_number=data.get("voucher_number"),
        party_ledger=data.get("party_ledger_id"),
        narration=data.get("narration", ""),
        user=request.user,
        notify_email=data.get("notify_email"),
        notify_message=data.get("notify_message", ""),
    )
    return JsonResponse(
        {
            "ok": True,
            "id": voucher.pk,
            "voucher_number": voucher.voucher_number,
            "total_amount": voucher.total_amount,
        },
        status=201,
    )


@require_http_methods(["POST", "DELETE"])
@api_view
def delete_voucher_view(request, voucher_id):
    voucher = get_object_or_404(Voucher, pk=voucher_id, company=request.company)
    delete_voucher(voucher, user=request.user)
    return JsonResponse({"ok": True})


@require_GET
@api_view
def ledger_statement_view(request, ledger_id):
    ledger = get_object_or_404(Ledger, pk=ledger_id, company=request.company)
    statement = reports.ledger_statement(
        ledger,
        from_date=request.GET.get("from_date"),
        to_date=request.GET.get("to_date"),
        as_of=request.GET.get("as_of"),
    )
    return JsonResponse(statement.as_dict())


@require_GET
@api_view
def report_view(request, kind):
    params = {}
    if kind == "balance_sheet":
        params["as_of"] = request.GET.get("as_of")
    else:
        params["from_date"] = request.GET.get("from_date")
        params["to_date"] = request.GET.get("to_date")
    if kind == "trial_balance":
        params["include_zero"] = request.GET.get("include_zero") in ("1", "true")
    if kind == "profit_and_loss":
        for key in ("opening_stock", "closing_stock"):
            if request.GET.get(key):
                params[key] = to_amount(request.GET[key], key.replace("_", " "))
    if kind == "day_book" and request.GET.get("voucher_type"):
        params["voucher_type"] = request.GET["voucher_type"]
    report = reports.build_report(kind, request.company, **params)
    return JsonResponse(report.as_dict())


# ----------------------------
# Sawmill
# ----------------------------
def _log_json(log):
    return {
        "id": log.pk,
        "tag_number": log.tag_number,
        "girth_cm": log.girth_cm,
        "girth_inch": log.girth_inch,
        "length_meter": log.length_meter,
        "grade": log.grade,
        "cft": log.cft,
        "status": log.status,
        "qr_data": log.qr_data,
    }


@require_POST
@api_view
def register_log_view(request):
    data = _body(request)
    log = sawmill.register_log(
        request.company,
        request.user,
        data.get("tag_number"),
        data.get("girth_cm"),
        data.get("length_meter"),
        data.get("grade") or "A",
        saw_mill=_optional(SawMill, request.company, data.get("saw_mill_id")),
        supplier_name=data.get("supplier_name", ""),
        lot_no=data.get("lot_no", ""),
        purchase_rate=data.get("purchase_rate") or 0,
        notes=data.get("notes", ""),
    )
    return JsonResponse({"ok": True, "log": _log_json(log)}, status=201)


@require_GET
@api_view
def lookup_log_view(request):
    try:
        log = sawmill.lookup_log(request.company, request.GET.get("q"))
    except SawmillLog.DoesNotExist:
        return JsonResponse({"ok": False, "error": "Log not found."}, status=404)
    return JsonResponse({"ok": True, "log": _log_json(log)})


@require_GET
@api_view
def log_qr_view(request, log_id):
    log = get_object_or_404(SawmillLog, pk=log_id, company=request.company)
    return HttpResponse(sawmill.qr_code_png(log), content_type="image/png")


@require_POST
@api_view
def log_status_view(request, log_id):
    log = get_object_or_404(SawmillLog, pk=log_id, company=request.company)
    log = sawmill.advance_log_status(log, _body(request).get("status"), user=request.user)
    return JsonResponse({"ok": True, "status": log.status})


@require_GET
@api_view
def log_stats_view(request):
    saw_mill = _optional(SawMill, request.company, request.GET.get("saw_mill_id"))
    return JsonResponse(sawmill.log_stats(request.company, saw_mill=saw_mill))


@require_POST
@api_view
def log_input_view(request):
    data = _body(request)
    company = request.company
    entry = sawmill.record_log_input(
        company,
        girth=data.get("girth"),
        length=data.get("length"),
        quantity=data.get("quantity") or 1,
        rate_per_cft=data.get("rate_per_cft") or 0,
        contractor=_optional(SawmillContractor, company, data.get("contractor_id")),
        log=_optional(SawmillLog, company, data.get("log_id")),
        saw_mill=_optional(SawMill, company, data.get("saw_mill_id")),
        entry_date=reports.parse_date(data.get("entry_date"), "entry_date"),
        team_name=data.get("team_name", ""),
        machine_no=data.get("machine_no", ""),
        notes=data.get("notes", ""),
        user=request.user,
    )
    return JsonResponse(
        {"ok": True, "id": entry.pk, "cft": entry.cft, "total_amount": entry.total_amount},
        status=201,
    )


@require_POST
@api_view
def output_view(request):
    data = _body(request)
    company = request.company
    entry = sawmill.record_output(
        company,
        output_type=data.get("output_type"),
        production_entry=_optional(SawmillProductionEntry, company, data.get("production_entry_id")),
        saw_mill=_optional(SawMill, company, data.get("saw_mill_id")),
        size=data.get("size", ""),
        length=data.get("length") or 0,
        quantity=data.get("quantity") or 0,
        cft=data.get("cft"),
        weight=data.get("weight") or 0,
        rate_per_unit=data.get("rate_per_unit"),
        entry_date=reports.parse_date(data.get("entry_date"), "entry_date"),
        notes=data.get("notes", ""),
        user=request.user,
    )
    return JsonResponse(
        {"ok": True, "id": entry.pk, "cft": entry.cft, "amount": entry.amount}, status=201
    )


@require_POST
@api_view
def contractor_payment_view(request, contractor_id):
    contractor = get_object_or_404(SawmillContractor, pk=contractor_id, company=request.company)
    data = _body(request)
    payment = sawmill.record_contractor_payment(
        contractor,
        request.user,
        data.get("amount"),
        payment_date=reports.parse_date(data.get("payment_date"), "payment_date"),
        payment_mode=data.get("payment_mode") or "cash",
        paid_from=_optional(Ledger, request.company, data.get("paid_from_id")),
        notes=data.get("notes", ""),
    )
    return JsonResponse(
        {
            "ok": True,
            "id": payment.pk,
            "voucher_id": payment.voucher_id,
            "contractor_balance": contractor.current_balance,
        },
        status=201,
    )


@require_GET
@api_view
def yield_view(request):
    report = sawmill.yield_report(
        request.company,
        from_date=reports.parse_date(request.GET.get("from_date"), "from_date"),
        to_date=reports.parse_date(request.GET.get("to_date"), "to_date"),
    )
    return JsonResponse(report)


# ----------------------------
# Production
# ----------------------------
@require_POST
@api_view
def create_order_view(request):
    data = _body(request)
    order = production.create_order(
        request.company,
        request.user,
        data.get("assignee_ids") or [],
        order_no=data.get("order_no"),
        customer_name=data.get("customer_name", ""),
        customer_email=data.get("customer_email", ""),
        customer_phone=data.get("customer_phone", ""),
        product=data.get("product", ""),
        ordered_quantity=data.get("ordered_quantity"),
        due_date=reports.parse_date(data.get("due_date"), "due_date"),
        priority=data.get("priority") or "medium",
        notes=data.get("notes", ""),
    )
    return JsonResponse({"ok": True, "id": order.pk, "status": order.status}, status=201)


@require_GET
@api_view
def order_summary_view(request, order_id):
    order = get_object_or_404(SalesOrder, pk=order_id, company=request.company)
    return JsonResponse(production.order_summary(order))


@require_POST
@api_view
def production_entry_view(request, order_id):
    order = get_object_or_404(SalesOrder, pk=order_id, company=request.company)
    data = _body(request)
    entry = production.record_production(
        order,
        request.user,
        data.get("produced_quantity"),
        machine=_optional(Machine, request.company, data.get("machine_id")),
        shift=data.get("shift") or "general",
        wastage=data.get("wastage") or 0,
        remarks=data.get("remarks", ""),
        entry_date=reports.parse_date(data.get("entry_date"), "entry_date"),
    )
    order.refresh_from_db(fields=["status"])
    return JsonResponse({"ok": True, "id": entry.pk, "order_status": order.status}, status=201)


@require_POST
@api_view
def edit_production_view(request, entry_id):
    entry = get_object_or_404(ProductionEntry, pk=entry_id, company=request.company)
    data = _body(request)
    entry = production.edit_production(
        entry, request.user, data.get("produced_quantity"), data.get("reason")
    )
    return JsonResponse(
        {"ok": True, "produced_quantity": entry.produced_quantity,
         "previous_quantity": entry.previous_quantity}
    )


@require_POST
@api_view
def dispatch_entry_view(request, order_id):
    order = get_object_or_404(SalesOrder, pk=order_id, company=request.company)
    data = _body(request)
    entry = production.record_dispatch(
        order,
        request.user,
        data.get("dispatched_quantity"),
        vehicle_no=data.get("vehicle_no", ""),
        transporter=data.get("transporter", ""),
        driver_name=data.get("driver_name", ""),
        dispatch_date=reports.parse_date(data.get("dispatch_date"), "dispatch_date"),
        loading_remarks=data.get("loading_remarks", ""),
    )
    order.refresh_from_db(fields=["status"])
    return JsonResponse({"ok": True, "id": entry.pk, "order_status": order.status}, status=201)


# ----------------------------
# GSTIN, users, notifications
# ----------------------------
@require_GET
@api_view
def gstin_lookup_view(request, gstin):
    return JsonResponse(lookup_gstin(gstin).as_dict())


@require_POST
@api_view
def provision_user_view(request):
    data = _body(request)
    role = provision_user(
        request.user,
        request.company,
        data.get("email"),
        data.get("password"),
        data.get("full_name"),
        data.get("role"),
        department=data.get("department"),
        phone=data.get("phone"),
    )
    return JsonResponse(
        {
            "ok": True,
            "user": {
                "id": role.user_id,
                "email": role.user.email,
                "full_name": role.full_name,
                "role": role.role,
            },
        },
        status=201,
    )


@require_GET
def notification_inbox_view(request):
    # Recipients may not belong to any company, so no api_view here
    if not request.user.is_authenticated:
        return JsonResponse({"ok": False, "error": "Authentication required."}, status=401)
    rows = notifications.notifications_for(request.user.email, request.GET.get("status"))
    return JsonResponse(
        {
            "notifications": [
                {
                    "id": n.pk,
                    "from_company": n.from_company.name,
                    "voucher_number": n.voucher.voucher_number,
                    "voucher_type": n.voucher.voucher_type,
                    "amount": n.voucher.total_amount,
                    "message": n.message,
                    "status": n.status,
                    "created_at": n.created_at,
                }
                for n in rows
            ]
        }
    )


@require_POST
def respond_notification_view(request, notification_id):
    if not request.user.is_authenticated:
        return JsonResponse({"ok": False, "error": "Authentication required."}, status=401)
    notification = get_object_or_404(VoucherNotification, pk=notification_id)
    try:
        notification = notifications.respond_to_notification(
            notification, request.user.email, _body(request).get("status")
        )
    except ValidationError as e:
        return JsonResponse({"ok": False, "error": _message(e)}, status=400)
    except PermissionDenied as e:
        return JsonResponse({"ok": False, "error": str(e)}, status=403)
    return JsonResponse({"ok": True, "status": notification.status})


@require_POST
def switch_company_view(request):
    if not request.user.is_authenticated:
        return JsonResponse({"ok": False, "error": "Authentication required."}, status=401)
    try:
        company_id = int(_body(request).get("company_id"))
    except (TypeError, ValueError, ValidationError):
        return JsonResponse({"ok": False, "error": "company_id is required."}, status=400)
    company = switch_company(request, company_id)
    if company is None:
        return JsonResponse({"ok": False, "error": "Not a member of that company."}, status=403)
    return JsonResponse({"ok": True, "company": company.name, "role": request.role})
