import logging
from django.contrib.auth import get_user_model
from django.core.exceptions import PermissionDenied, ValidationError
from django.core.validators import validate_email
from django.db import transaction

from ..models import UserRole
from .audit_helper import log_action

logger = logging.getLogger(__name__)


def provision_user(
    requesting_user,
    company,
    email,
    password,
    full_name,
    role,
    department=None,
    phone=None,
):
    """
    Create a login for a staff member and give them a role in `company`.
    Only the company's owners may do this. The user and the role are
    written in one transaction, so a failed role insert leaves no
    half-created account behind.
    """
    if UserRole.role_of(requesting_user, company) != "owner":
        raise PermissionDenied("Only owners can create users.")

    email = (email or "").strip().lower()
    full_name = (full_name or "").strip()
    if not email or not password or not full_name or not role:
        raise ValidationError("Missing required fields: email, password, full_name and role.")
    validate_email(email)
    if role not in dict(UserRole.ROLE_CHOICES):
        raise ValidationError(f"Unknown role: {role}")

    User = get_user_model()
    if User.objects.filter(username__iexact=email).exists():
        raise ValidationError(f"A user with email {email} already exists.")

    with transaction.atomic():
        user = User.objects.create_user(username=email, email=email, password=password)
        parts = full_name.split(" ", 1)
        user.first_name = parts[0][:150]
        user.last_name = parts[1][:150] if len(parts) > 1 else ""
        user.save(update_fields=["first_name", "last_name"])

        user_role = UserRole.objects.create(
            user=user,
            company=company,
            role=role,
            full_name=full_name,
            department=department or "",
            phone=phone or "",
        )
        log_action(
            action="create",
            instance=user_role,
            user=requesting_user,
            changes={"email": email, "role": role},
        )

    logger.info("User %s added to company %s as %s", email, company.pk, role)
    return user_role
