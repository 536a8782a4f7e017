from decimal import Decimal
from django.contrib.auth import get_user_model
from erp_core.models import Company, Ledger, UserRole

User = get_user_model()


def make_company(name="Test Co", slug=None, **extra):
    return Company.objects.create(name=name, slug=slug or name.lower().replace(" ", "-"), **extra)


def make_member(company, username, role="owner", **extra):
    """A user holding `role` in `company`."""
    user = User.objects.create_user(
        username=username, email=f"{username}@example.com", password="pw"
    )
    UserRole.objects.create(
        user=user, company=company, role=role, full_name=username.title(), **extra
    )
    return user


def make_ledger(company, name, ledger_type, opening="0.00"):
    return Ledger.objects.create(
        company=company, name=name, ledger_type=ledger_type,
        opening_balance=Decimal(opening),
    )
