from decimal import Decimal
from typing import Optional
from ..models import AuditLog, Company


def _jsonable(value):
    # Decimals and dates are stored as text so JSONField accepts them
    if isinstance(value, Decimal) or hasattr(value, "isoformat"):
        return str(value)
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def log_action(
    *,
    action: str,
    instance,
    user=None,
    company: Optional[Company] = None,
    changes: dict | None = None,
):
    """
    Central audit logger.
    Call it inside the same transaction as the change it records.
    """

    if not company:
        company = getattr(instance, "company", None)

    # anonymous users are not stored
    if user is not None and not getattr(user, "is_authenticated", False):
        user = None

    return AuditLog.objects.create(
        company=company,
        user=user,
        action=action,
        object_type=instance.__class__.__name__,
        object_id=str(instance.pk),
        changes=_jsonable(changes) if changes is not None else None,
    )
