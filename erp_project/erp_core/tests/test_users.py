from unittest import mock

from django.contrib.auth import get_user_model
from django.core.exceptions import PermissionDenied, ValidationError
from django.test import TestCase

from erp_core.models import AuditLog, UserRole
from erp_core.services.users import provision_user

from .utils import make_company, make_member

User = get_user_model()


class ProvisionUserTests(TestCase):
    def setUp(self):
        self.company = make_company("Staff Co")
        self.owner = make_member(self.company, "owner", "owner")
        self.supervisor = make_member(self.company, "sup", "supervisor")

    def provision(self, by=None, **overrides):
        fields = dict(
            email="New.Hand@Example.com",
            password="s3cret-pass",
            full_name="New Hand",
            role="production",
        )
        fields.update(overrides)
        return provision_user(by or self.owner, self.company, **fields)

    def test_owner_adds_a_member(self):
        role = self.provision(department="Cutting", phone="98450 00000")

        user = role.user
        self.assertEqual(user.username, "new.hand@example.com")
        self.assertEqual(user.first_name, "New")
        self.assertEqual(user.last_name, "Hand")
        self.assertTrue(user.check_password("s3cret-pass"))
        self.assertEqual(role.role, "production")
        self.assertEqual(role.department, "Cutting")
        self.assertEqual(UserRole.role_of(user, self.company), "production")
        self.assertTrue(AuditLog.objects.filter(object_type="UserRole", action="create").exists())

    def test_only_owners_may_add(self):
        with self.assertRaises(PermissionDenied):
            self.provision(by=self.supervisor)
        outsider = make_member(make_company("Other"), "outsider", "owner")
        with self.assertRaises(PermissionDenied):
            self.provision(by=outsider)
        self.assertFalse(User.objects.filter(email="new.hand@example.com").exists())

    def test_required_fields(self):
        for missing in ("email", "password", "full_name", "role"):
            with self.subTest(missing=missing), self.assertRaises(ValidationError):
                self.provision(**{missing: ""})

    def test_bad_email_or_role(self):
        with self.assertRaises(ValidationError):
            self.provision(email="not-an-email")
        with self.assertRaises(ValidationError):
            self.provision(role="accountant")

    def test_existing_email_is_refused(self):
        self.provision()
        with self.assertRaises(ValidationError):
            self.provision(email="new.hand@example.com", full_name="Someone Else")
        self.assertEqual(User.objects.filter(username="new.hand@example.com").count(), 1)

    def test_failed_role_leaves_no_account(self):
        with mock.patch.object(
            UserRole.objects, "create", side_effect=RuntimeError("db gone")
        ):
            with self.assertRaises(RuntimeError):
                self.provision()
        self.assertFalse(User.objects.filter(username="new.hand@example.com").exists())
