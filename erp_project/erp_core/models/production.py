from decimal import Decimal
from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone
from ..managers import TenantManager
from .entitymembership import Company

ORDER_STATUS = [
    ("pending", "Pending"),
    ("in_production", "In Production"),
    ("partially_dispatched", "Partially Dispatched"),
    ("completed", "Completed"),
]

ORDER_PRIORITY = [
    ("low", "Low"),
    ("medium", "Medium"),
    ("high", "High"),
    ("urgent", "Urgent"),
]

SHIFTS = [
    ("general", "General"),
    ("day", "Day"),
    ("night", "Night"),
]

QTY = dict(max_digits=14, decimal_places=2)


def derive_order_status(ordered, produced, dispatched):
    """
    Order status from quantities:
    all dispatched -> completed, some dispatched -> partially_dispatched,
    something produced -> in_production, otherwise pending.
    """
    if dispatched > 0 and dispatched >= ordered:
        return "completed"
    if dispatched > 0:
        return "partially_dispatched"
    if produced > 0:
        return "in_production"
    return "pending"


# ---------- Machines ----------
class Machine(models.Model):
    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name="machines")
    name = models.CharField(max_length=200)
    machine_code = models.CharField(max_length=50)
    department = models.CharField(max_length=100, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["company", "machine_code"], name="uq_company_machine_code"
            )
        ]

    def __str__(self):
        return f"{self.machine_code} – {self.name}"


# ---------- Sales orders ----------
class SalesOrder(models.Model):
    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name="orders")
    order_no = models.CharField(max_length=50)
    customer_name = models.CharField(max_length=200)
    customer_email = models.EmailField(blank=True)
    customer_phone = models.CharField(max_length=32, blank=True)
    product = models.CharField(max_length=200)
    ordered_quantity = models.DecimalField(**QTY)
    due_date = models.DateField(null=True, blank=True)
    priority = models.CharField(max_length=10, choices=ORDER_PRIORITY, default="medium")
    # Kept in step with production / dispatch entries by signals
    status = models.CharField(max_length=25, choices=ORDER_STATUS, default="pending")
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        indexes = [models.Index(fields=["company", "status"], name="order_company_status_idx")]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "order_no"], name="uq_company_order_no"
            ),
            models.CheckConstraint(
                condition=models.Q(ordered_quantity__gt=0),
                name="order_quantity_positive",
            ),
        ]

    def __str__(self):
        return f"{self.order_no} – {self.customer_name} ({self.status})"

    def clean(self):
        if self.ordered_quantity is not None and self.ordered_quantity <= 0:
            raise ValidationError("Ordered quantity must be greater than zero.")

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)

    # Quantities are always computed from entries, never stored
    def quantities(self):
        produced = self.production_entries.aggregate(
            total=models.Sum("produced_quantity"))["total"] or Decimal("0")
        dispatched = self.dispatch_entries.aggregate(
            total=models.Sum("dispatched_quantity"))["total"] or Decimal("0")
        return produced, dispatched

    @property
    def produced_quantity(self):
        return self.quantities()[0]

    @property
    def dispatched_quantity(self):
        return self.quantities()[1]

    @property
    def balance_quantity(self):
        """Still to be dispatched to the customer."""
        return self.ordered_quantity - self.dispatched_quantity

    def refresh_status(self):
        """Re-derive status from entries and store it if it changed."""
        produced, dispatched = self.quantities()
        new_status = derive_order_status(self.ordered_quantity, produced, dispatched)
        if new_status != self.status:
            self.status = new_status
            SalesOrder.objects.filter(pk=self.pk).update(
                status=new_status, updated_at=timezone.now()
            )
        return self.status


class OrderAssignment(models.Model):
    """Which production staff may book quantities against an order"""

    order = models.ForeignKey(SalesOrder, on_delete=models.CASCADE, related_name="assignments")
    assigned_to = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="order_assignments"
    )
    assigned_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["order", "assigned_to"], name="uq_order_assignee"
            )
        ]

    def __str__(self):
        return f"{self.order.order_no} -> {self.assigned_to}"


# ---------- Floor entries ----------
class ProductionEntry(models.Model):
    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    order = models.ForeignKey(
        SalesOrder, on_delete=models.CASCADE, related_name="production_entries"
    )
    produced_quantity = models.DecimalField(**QTY)
    machine = models.ForeignKey(
        Machine, null=True, blank=True, on_delete=models.SET_NULL,
        related_name="production_entries",
    )
    shift = models.CharField(max_length=10, choices=SHIFTS, default="general")
    wastage = models.DecimalField(**QTY, default=Decimal("0"))
    remarks = models.TextField(blank=True)
    entry_date = models.DateField(default=timezone.localdate)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL
    )
    # Filled when a supervisor corrects the quantity
    edited_reason = models.TextField(blank=True)
    previous_quantity = models.DecimalField(**QTY, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        verbose_name_plural = "production entries"
        indexes = [models.Index(fields=["company", "entry_date"], name="prodentry_company_date_idx")]

    def __str__(self):
        return f"{self.order.order_no}: +{self.produced_quantity} on {self.entry_date}"

    def clean(self):
        if self.produced_quantity is not None and self.produced_quantity <= 0:
            raise ValidationError("Produced quantity must be greater than zero.")
        if self.wastage is not None and self.wastage < 0:
            raise ValidationError("Wastage cannot be negative.")
        if self.machine_id and self.machine.company_id != self.order.company_id:
            raise ValidationError("Machine must belong to the order's company.")

    def save(self, *args, **kwargs):
        # company always follows the order
        self.company_id = self.order.company_id
        self.full_clean()
        return super().save(*args, **kwargs)


class DispatchEntry(models.Model):
    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    order = models.ForeignKey(
        SalesOrder, on_delete=models.CASCADE, related_name="dispatch_entries"
    )
    dispatched_quantity = models.DecimalField(**QTY)
    vehicle_no = models.CharField(max_length=30, blank=True)
    transporter = models.CharField(max_length=200, blank=True)
    driver_name = models.CharField(max_length=200, blank=True)
    dispatch_date = models.DateField(default=timezone.localdate)
    loading_remarks = models.TextField(blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL
    )
    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        verbose_name_plural = "dispatch entries"
        indexes = [models.Index(fields=["company", "dispatch_date"], name="dispatch_company_date_idx")]

    def __str__(self):
        return f"{self.order.order_no}: -{self.dispatched_quantity} on {self.dispatch_date}"

    def clean(self):
        if self.dispatched_quantity is None or self.dispatched_quantity <= 0:
            raise ValidationError("Dispatch quantity must be greater than zero.")
        produced, dispatched = self.order.quantities()
        if self.pk:
            # editing: this entry's old quantity is already in `dispatched`
            old = DispatchEntry.objects.filter(pk=self.pk).values_list(
                "dispatched_quantity", flat=True).first() or Decimal("0")
            dispatched -= old
        available = produced - dispatched
        if self.dispatched_quantity > available:
            raise ValidationError(
                f"Dispatch quantity {self.dispatched_quantity} exceeds "
                f"available quantity {available}."
            )

    def save(self, *args, **kwargs):
        self.company_id = self.order.company_id
        self.full_clean()
        return super().save(*args, **kwargs)
