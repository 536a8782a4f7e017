from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from ..managers import TenantManager


# ---------- Tenant / Company ----------
class Company(models.Model):

    """Tenant / Organization"""
    # Store company’s full display name
    name = models.CharField(max_length=200)

    slug = models.SlugField(  # A URL-friendly identifier
        max_length=80, unique=True  # no two companies can have the same slug
    )

    # GST registration (15 characters), blank for unregistered businesses
    gstin = models.CharField(max_length=15, blank=True, db_index=True)
    legal_name = models.CharField(max_length=200, blank=True)
    trade_name = models.CharField(max_length=200, blank=True)
    address = models.TextField(blank=True)
    state = models.CharField(max_length=100, blank=True)
    pincode = models.CharField(max_length=10, blank=True)
    phone = models.CharField(max_length=32, blank=True)
    email = models.EmailField(blank=True)

    # First day of the books (e.g. 1st April for Indian companies)
    financial_year_start = models.DateField(null=True, blank=True)

    # Link to a user account (creator of the company)
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,  # use user model project is configured with
        null=True,
        blank=True,  # optional field
        on_delete=models.SET_NULL,
        # if user is deleted, company record stays,
        # but owner is set to NULL.
        related_name="owned_companies",
    )

    # Store timestamp when the record is first created
    created_at = models.DateTimeField(auto_now_add=True)

    # Meta options
    class Meta:
        verbose_name_plural = "companies"

    # String Representation
    def __str__(self):
        return self.name

    def clean(self):
        if self.gstin and len(self.gstin) != 15:
            raise ValidationError("GSTIN must be exactly 15 characters.")

    def save(self, *args, **kwargs):
        if self.gstin:
            self.gstin = self.gstin.strip().upper()
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)


# ---------- UserRole ----------
class UserRole(
    models.Model
):  # Bridge table (or a "join model") between User and Company

    # Limit roles to predefined values
    # Django admin / forms will show a dropdown with these choices
    ROLE_CHOICES = [
        # full control, the only role that may add users
        ("owner", "Owner"),
        # can create orders and see everything on the floor
        ("supervisor", "Supervisor"),
        ("production", "Production"),  # records production for assigned orders
        ("dispatch", "Dispatch"),      # records dispatches
    ]

    # Link to the auth user
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        # If user is deleted, their roles go too
        on_delete=models.CASCADE,
        related_name="roles",  # See all companies users belong to
    )

    # Links to a Company record
    company = models.ForeignKey(
        "Company", on_delete=models.CASCADE, related_name="user_roles"
    )

    # Store user’s role in the company
    role = models.CharField(
        max_length=20,
        choices=ROLE_CHOICES,
        default="production",
    )

    full_name = models.CharField(max_length=200)
    department = models.CharField(max_length=100, blank=True)
    phone = models.CharField(max_length=32, blank=True)

    # Suspend someone’s access without deleting the record
    is_active = models.BooleanField(default=True)

    # Automatically record when the role was granted
    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        # one user can only have one role per company
        constraints = [
            models.UniqueConstraint(
                fields=["user", "company"], name="uq_user_company_role"
            ),
        ]

        # make lookups fast
        # (important since almost every query will filter by company)
        indexes = [
            models.Index(fields=["company", "user"], name="userrole_company_user_idx"),
        ]

    def __str__(self):
        # Make debugging/admin easier
        return f"{self.full_name} @ {self.company} ({self.role})"

    def clean(self):
        if not (self.full_name or "").strip():
            raise ValidationError("Full name is required.")

    def save(self, *args, **kwargs):
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)

    @classmethod
    def role_of(cls, user, company):
        """Active role name of `user` in `company`, or None."""
        if user is None or company is None or not getattr(user, "is_authenticated", False):
            return None
        return (
            cls.objects.filter(user=user, company=company, is_active=True)
            .values_list("role", flat=True)
            .first()
        )
