import logging
from functools import partial
from django.contrib.auth import get_user_model
from django.core.exceptions import PermissionDenied, ValidationError
from django.db import IntegrityError, transaction
from django.utils import timezone

from ..exceptions import DuplicateMachineCodeError
from ..models import (DispatchEntry, DispatchNotification, Machine,
                      OrderAssignment, ProductionEntry, SalesOrder, UserRole)
from .audit_helper import log_action
from .validation import to_amount

logger = logging.getLogger(__name__)

# Who may do what on the floor
ORDER_MANAGERS = ("owner", "supervisor")
PRODUCTION_ROLES = ("owner", "supervisor", "production")
DISPATCH_ROLES = ("owner", "supervisor", "dispatch")


def require_role(user, company, allowed):
    """Return the user's role in `company`, or raise PermissionDenied."""
    role = UserRole.role_of(user, company)
    if role not in allowed:
        raise PermissionDenied(
            f"This action needs one of the roles: {', '.join(allowed)}."
        )
    return role


def _quantity(value, field):
    quantity = to_amount(value, field)
    if quantity <= 0:
        raise ValidationError(f"{field.capitalize()} must be greater than zero.")
    return quantity


# ----------------------------
# Machines
# ----------------------------
def create_machine(company, name, machine_code, department="", user=None):
    machine_code = (machine_code or "").strip()
    if not machine_code or not (name or "").strip():
        raise ValidationError("Machine name and code are required.")
    if Machine.objects.filter(company=company, machine_code=machine_code).exists():
        raise DuplicateMachineCodeError(f"Machine code {machine_code} already exists.")
    try:
        with transaction.atomic():
            machine = Machine.objects.create(
                company=company, name=name.strip(),
                machine_code=machine_code, department=department or "",
            )
    except IntegrityError:
        raise DuplicateMachineCodeError(f"Machine code {machine_code} already exists.")
    log_action(action="create", instance=machine, user=user)
    return machine


# ----------------------------
# Orders
# ----------------------------
def create_order(company, user, assignee_ids, **fields):
    """
    Create a sales order and its assignments in one go.
    Only owners / supervisors may do this, and at least one person must be
    assigned; every assignee needs an active role in the same company.
    """
    require_role(user, company, ORDER_MANAGERS)

    assignee_ids = [int(pk) for pk in (assignee_ids or [])]
    if not assignee_ids:
        raise ValidationError("Assign the order to at least one person.")

    members = set(
        UserRole.objects.filter(
            company=company, user_id__in=assignee_ids, is_active=True
        ).values_list("user_id", flat=True)
    )
    outsiders = sorted(set(assignee_ids) - members)
    if outsiders:
        raise ValidationError(f"Users {outsiders} are not active members of this company.")

    order_no = (fields.pop("order_no", "") or "").strip()
    if not order_no:
        raise ValidationError("Order number is required.")
    if SalesOrder.objects.filter(company=company, order_no=order_no).exists():
        raise ValidationError(f"Order number {order_no} already exists.")
    fields["ordered_quantity"] = _quantity(fields.get("ordered_quantity"), "ordered quantity")

    User = get_user_model()
    with transaction.atomic():
        order = SalesOrder(
            company=company,
            order_no=order_no,
            created_by=user,
            **fields,
        )
        order.save()
        OrderAssignment.objects.bulk_create(
            [
                OrderAssignment(order=order, assigned_to=assignee)
                for assignee in User.objects.filter(pk__in=assignee_ids)
            ]
        )
        log_action(
            action="create",
            instance=order,
            user=user,
            changes={"order_no": order_no, "assignees": sorted(members)},
        )
    logger.info("Order %s created for company %s", order_no, company.pk)
    return order


def order_summary(order):
    produced, dispatched = order.quantities()
    return {
        "order_no": order.order_no,
        "status": order.status,
        "ordered_quantity": order.ordered_quantity,
        "produced_quantity": produced,
        "dispatched_quantity": dispatched,
        "balance_quantity": order.ordered_quantity - dispatched,
        "available_for_dispatch": produced - dispatched,
    }


# ----------------------------
# Production entries
# ----------------------------
def record_production(
    order,
    user,
    produced_quantity,
    *,
    machine=None,
    shift="general",
    wastage=0,
    remarks="",
    entry_date=None,
):
    """
    Book produced quantity against an order. Production staff may only book
    against orders assigned to them. The order status follows via signals.
    """
    role = require_role(user, order.company, PRODUCTION_ROLES)
    if role == "production" and not order.assignments.filter(assigned_to=user).exists():
        raise PermissionDenied("This order is not assigned to you.")

    entry = ProductionEntry(
        order=order,
        produced_quantity=_quantity(produced_quantity, "produced quantity"),
        machine=machine,
        shift=shift,
        wastage=to_amount(wastage, "wastage"),
        remarks=remarks or "",
        entry_date=entry_date or timezone.localdate(),
        created_by=user,
    )
    with transaction.atomic():
        entry.save()
        log_action(
            action="create",
            instance=entry,
            user=user,
            company=order.company,
            changes={"order_no": order.order_no, "produced_quantity": entry.produced_quantity},
        )
    return entry


def edit_production(entry, user, new_quantity, reason):
    """Correct a production entry (supervisors / owners), keeping the old figure."""
    require_role(user, entry.company, ORDER_MANAGERS)
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError("A reason is required when editing production.")
    new_quantity = _quantity(new_quantity, "produced quantity")

    with transaction.atomic():
        # same lock as record_dispatch, taken first
        order = SalesOrder.objects.select_for_update().get(pk=entry.order_id)
        entry = ProductionEntry.objects.select_for_update().get(pk=entry.pk)
        old = entry.produced_quantity
        produced, dispatched = order.quantities()
        produced_after = produced - old + new_quantity
        if produced_after < dispatched:
            raise ValidationError(
                f"Cannot reduce production below the {dispatched} already dispatched."
            )
        entry.previous_quantity = old
        entry.produced_quantity = new_quantity
        entry.edited_reason = reason
        entry.save()
        log_action(
            action="update",
            instance=entry,
            user=user,
            company=entry.company,
            changes={"produced_quantity": [old, new_quantity], "reason": reason},
        )
    return entry


# ----------------------------
# Dispatch
# ----------------------------
def record_dispatch(
    order,
    user,
    dispatched_quantity,
    *,
    vehicle_no="",
    transporter="",
    driver_name="",
    dispatch_date=None,
    loading_remarks="",
):
    """
    Ship goods against an order: 0 < quantity <= produced - dispatched.
    The order row is locked so two dispatches cannot both use the same
    available quantity. Customer notifications are written alongside and
    sent once the transaction commits.
    """
    from ..tasks import send_dispatch_notification

    require_role(user, order.company, DISPATCH_ROLES)
    quantity = _quantity(dispatched_quantity, "dispatch quantity")

    with transaction.atomic():
        order = SalesOrder.objects.select_for_update().get(pk=order.pk)
        entry = DispatchEntry(
            order=order,
            dispatched_quantity=quantity,
            vehicle_no=vehicle_no or "",
            transporter=transporter or "",
            driver_name=driver_name or "",
            dispatch_date=dispatch_date or timezone.localdate(),
            loading_remarks=loading_remarks or "",
            created_by=user,
        )
        # clean() checks the quantity against what is still available
        entry.save()

        notifications = []
        if order.customer_email:
            notifications.append(
                DispatchNotification(
                    company=order.company, dispatch_entry=entry,
                    notification_type="email", recipient_email=order.customer_email,
                )
            )
        if order.customer_phone:
            notifications.append(
                DispatchNotification(
                    company=order.company, dispatch_entry=entry,
                    notification_type="sms", recipient_phone=order.customer_phone,
                )
            )
        DispatchNotification.objects.bulk_create(notifications)
        if notifications:
            transaction.on_commit(partial(send_dispatch_notification.delay, entry.pk))

        log_action(
            action="create",
            instance=entry,
            user=user,
            company=order.company,
            changes={"order_no": order.order_no, "dispatched_quantity": quantity},
        )
    logger.info(
        "Dispatched %s of order %s (company %s)", quantity, order.order_no, order.company_id
    )
    return entry


def delete_entry(entry, user):
    """Remove a production or dispatch entry (owners / supervisors)."""
    require_role(user, entry.company, ORDER_MANAGERS)
    with transaction.atomic():
        order = SalesOrder.objects.select_for_update().get(pk=entry.order_id)
        if isinstance(entry, ProductionEntry):
            entry = ProductionEntry.objects.get(pk=entry.pk)
            produced, dispatched = order.quantities()
            if produced - entry.produced_quantity < dispatched:
                raise ValidationError(
                    "Cannot delete production that has already been dispatched."
                )
        log_action(action="delete", instance=entry, user=user, company=entry.company)
        entry.delete()
