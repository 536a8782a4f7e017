from decimal import Decimal
from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone
from ..exceptions import InvalidStatusTransition
from ..managers import TenantManager
from ..services.measurements import (calculate_cft, girth_cm_to_inch,
                                     hoppus_cft, parse_size, quantize_cft,
                                     quantize_inch, quantize_money, sawn_cft)
from .entitymembership import Company
from .ledger import Ledger

LOG_GRADES = [
    ("A", "A"),
    ("B", "B"),
    ("C", "C"),
    ("D", "D"),
    ("Rejected", "Rejected"),
]

LOG_STATUS = [
    ("available", "Available"),
    ("in_process", "In Process"),
    ("processed", "Processed"),
]

# The only allowed move out of each status (forward, one step)
LOG_STATUS_NEXT = {
    "available": "in_process",
    "in_process": "processed",
    "processed": None,
}

OUTPUT_TYPES = [
    ("main_material", "Main Material"),
    ("off_side", "Off Side"),
    ("firewood", "Firewood"),
    ("sawdust", "Sawdust"),
]
# Priced by volume; the rest are priced by weight
VOLUME_OUTPUT_TYPES = ("main_material", "off_side")

PAYMENT_MODES = [
    ("cash", "Cash"),
    ("bank", "Bank Transfer"),
    ("upi", "UPI"),
    ("cheque", "Cheque"),
]

DIM = dict(max_digits=10, decimal_places=2)
CFT = dict(max_digits=14, decimal_places=3)
MONEY = dict(max_digits=16, decimal_places=2)
# girth_cm / 2.54 kept to 10 places
INCH = dict(max_digits=20, decimal_places=10)


class SawMill(models.Model):
    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name="saw_mills")
    name = models.CharField(max_length=200)
    location = models.CharField(max_length=200, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    def __str__(self):
        return self.name


# ---------- Logs ----------
class SawmillLog(models.Model):
    """
    One tagged log in the yard.
    girth_inch and cft are derived from girth_cm / length_meter on save.
    qr_data is a snapshot taken when the log is first saved and is never
    rebuilt afterwards (the printed tag must keep matching it).
    """

    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name="logs")
    saw_mill = models.ForeignKey(
        SawMill, null=True, blank=True, on_delete=models.SET_NULL, related_name="logs"
    )
    tag_number = models.CharField(max_length=50)
    girth_cm = models.DecimalField(**DIM)
    girth_inch = models.DecimalField(**INCH, editable=False)
    length_meter = models.DecimalField(**DIM)
    grade = models.CharField(max_length=10, choices=LOG_GRADES, default="A")
    cft = models.DecimalField(**CFT, editable=False)
    status = models.CharField(max_length=12, choices=LOG_STATUS, default="available")
    qr_data = models.JSONField(null=True, blank=True, editable=False)

    supplier_name = models.CharField(max_length=200, blank=True)
    lot_no = models.CharField(max_length=50, blank=True)
    purchase_rate = models.DecimalField(**MONEY, default=Decimal("0.00"))
    total_amount = models.DecimalField(**MONEY, default=Decimal("0.00"), editable=False)
    notes = models.TextField(blank=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        indexes = [models.Index(fields=["company", "status"], name="log_company_status_idx")]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "tag_number"], name="uq_company_log_tag"
            ),
            models.CheckConstraint(
                condition=models.Q(girth_cm__gt=0) & models.Q(length_meter__gt=0),
                name="log_dimensions_positive",
            ),
        ]

    def __str__(self):
        return f"{self.tag_number} ({self.grade}, {self.cft} cft) [{self.status}]"

    def build_qr_payload(self):
        return {
            "tag": self.tag_number,
            "girth": float(self.girth_cm),
            "length": float(self.length_meter),
            "grade": self.grade,
            "cft": round(float(self.cft), 3),
        }

    def clean(self):
        if self.girth_cm is not None and self.girth_cm <= 0:
            raise ValidationError("Girth must be greater than zero.")
        if self.length_meter is not None and self.length_meter <= 0:
            raise ValidationError("Length must be greater than zero.")
        if self.saw_mill_id and self.saw_mill.company_id != self.company_id:
            raise ValidationError("Saw mill must belong to the same company as the log.")

    def save(self, *args, **kwargs):
        self.tag_number = (self.tag_number or "").strip()
        try:
            self.girth_inch = quantize_inch(girth_cm_to_inch(self.girth_cm))
            self.cft = quantize_cft(calculate_cft(self.girth_cm, self.length_meter))
            self.total_amount = quantize_money(self.cft * Decimal(self.purchase_rate or 0))
        except ArithmeticError:
            raise ValidationError("Girth, length or rate is out of range.")
        if not self.pk or not self.qr_data:
            self.qr_data = self.build_qr_payload()
        # uniqueness of (company, tag_number) is left to the database so the
        # caller can turn the IntegrityError into a duplicate-tag error
        self.full_clean(validate_constraints=False, validate_unique=False)
        return super().save(*args, **kwargs)

    def advance_status(self, new_status):
        """
        Move one step forward: available -> in_process -> processed.
        Anything else (skip, repeat, go back) raises InvalidStatusTransition.
        """
        allowed = LOG_STATUS_NEXT.get(self.status)
        if new_status != allowed:
            raise InvalidStatusTransition(
                f"Cannot go from {self.status} to {new_status}"
            )
        old = self.status
        self.status = new_status
        SawmillLog.objects.filter(pk=self.pk, status=old).update(
            status=new_status, updated_at=timezone.now()
        )
        return self


# ---------- Contractors ----------
class SawmillContractor(models.Model):
    """
    Cutting contractor paid per CFT.
    current_balance = opening_balance + Σ production totals − Σ payments
    (what the mill owes the contractor), rebuilt by recompute_balance().
    """

    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name="contractors")
    saw_mill = models.ForeignKey(
        SawMill, null=True, blank=True, on_delete=models.SET_NULL, related_name="contractors"
    )
    name = models.CharField(max_length=200)
    phone = models.CharField(max_length=32, blank=True)
    email = models.EmailField(blank=True)
    address = models.TextField(blank=True)
    # Accounting ledger used when a payment is posted as a voucher
    ledger = models.ForeignKey(
        Ledger, null=True, blank=True, on_delete=models.SET_NULL, related_name="contractors"
    )
    opening_balance = models.DecimalField(**MONEY, default=Decimal("0.00"))
    current_balance = models.DecimalField(**MONEY, default=Decimal("0.00"), editable=False)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    def __str__(self):
        return self.name

    def clean(self):
        if self.ledger_id and self.ledger.company_id != self.company_id:
            raise ValidationError("Contractor ledger must belong to the same company.")

    def save(self, *args, **kwargs):
        self.full_clean()
        creating = self.pk is None
        if creating:
            self.current_balance = self.opening_balance
        super().save(*args, **kwargs)
        if not creating:
            self.recompute_balance()

    def recompute_balance(self):
        earned = self.production_entries.aggregate(
            total=models.Sum("total_amount"))["total"] or Decimal("0")
        paid = self.payments.aggregate(
            total=models.Sum("amount"))["total"] or Decimal("0")
        balance = Decimal(self.opening_balance) + earned - paid
        SawmillContractor.objects.filter(pk=self.pk).update(current_balance=balance)
        self.current_balance = balance
        return balance


# ---------- Production (log input) ----------
class SawmillProductionEntry(models.Model):
    """Logs fed to a saw by a contractor's team, paid per Hoppus CFT"""

    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    saw_mill = models.ForeignKey(
        SawMill, null=True, blank=True, on_delete=models.SET_NULL,
        related_name="production_entries",
    )
    contractor = models.ForeignKey(
        SawmillContractor, null=True, blank=True, on_delete=models.PROTECT,
        related_name="production_entries",
    )
    log = models.ForeignKey(
        SawmillLog, null=True, blank=True, on_delete=models.SET_NULL,
        related_name="production_entries",
    )
    entry_date = models.DateField(default=timezone.localdate)
    girth = models.DecimalField(**DIM)           # cm
    length = models.DecimalField(**DIM)          # feet
    quantity = models.PositiveIntegerField(default=1)
    cft = models.DecimalField(**CFT, editable=False)
    rate_per_cft = models.DecimalField(**MONEY, default=Decimal("0.00"))
    total_amount = models.DecimalField(**MONEY, default=Decimal("0.00"), editable=False)
    team_name = models.CharField(max_length=100, blank=True)
    machine_no = models.CharField(max_length=50, blank=True)
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL
    )
    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        verbose_name_plural = "sawmill production entries"
        indexes = [models.Index(fields=["company", "entry_date"], name="sawprod_company_date_idx")]

    def __str__(self):
        return f"{self.entry_date} {self.team_name or '-'}: {self.cft} cft"

    def clean(self):
        if self.girth is not None and self.girth <= 0:
            raise ValidationError("Girth must be greater than zero.")
        if self.length is not None and self.length <= 0:
            raise ValidationError("Length must be greater than zero.")
        if not self.quantity:
            raise ValidationError("Quantity must be at least 1.")
        for related in (self.contractor, self.log, self.saw_mill):
            if related is not None and related.company_id != self.company_id:
                raise ValidationError(
                    f"{related.__class__.__name__} must belong to the same company."
                )

    def save(self, *args, **kwargs):
        try:
            self.cft = quantize_cft(hoppus_cft(self.girth, self.length, self.quantity))
            self.total_amount = quantize_money(self.cft * Decimal(self.rate_per_cft or 0))
        except ArithmeticError:
            raise ValidationError("Girth, length, quantity or rate is out of range.")
        self.full_clean()
        return super().save(*args, **kwargs)


# ---------- Output ----------
class SawmillOutputEntry(models.Model):
    """What came off the saw: planks (by CFT) or firewood / sawdust (by weight)"""

    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    saw_mill = models.ForeignKey(
        SawMill, null=True, blank=True, on_delete=models.SET_NULL,
        related_name="output_entries",
    )
    production_entry = models.ForeignKey(
        SawmillProductionEntry, null=True, blank=True, on_delete=models.SET_NULL,
        related_name="outputs",
    )
    entry_date = models.DateField(default=timezone.localdate)
    output_type = models.CharField(max_length=20, choices=OUTPUT_TYPES)
    size = models.CharField(max_length=30, blank=True)   # "4x2" (inches)
    length = models.DecimalField(**DIM, default=Decimal("0"))  # feet
    quantity = models.DecimalField(**DIM, default=Decimal("0"))
    cft = models.DecimalField(**CFT, default=Decimal("0"))
    weight = models.DecimalField(**DIM, default=Decimal("0"))
    rate_per_unit = models.DecimalField(**MONEY, default=Decimal("0.00"))
    amount = models.DecimalField(**MONEY, default=Decimal("0.00"), editable=False)
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL
    )
    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        verbose_name_plural = "sawmill output entries"
        indexes = [models.Index(fields=["company", "entry_date"], name="sawout_company_date_idx")]

    def __str__(self):
        return f"{self.entry_date} {self.output_type}: {self.cft} cft / {self.weight}"

    @property
    def priced_quantity(self):
        """CFT for sawn material, weight for firewood / sawdust."""
        if self.output_type in VOLUME_OUTPUT_TYPES:
            return Decimal(self.cft or 0)
        return Decimal(self.weight or 0)

    def clean(self):
        if self.production_entry_id and self.production_entry.company_id != self.company_id:
            raise ValidationError("Production entry must belong to the same company.")
        if self.output_type in VOLUME_OUTPUT_TYPES and not self.cft:
            raise ValidationError("Sawn output needs a size, length and quantity (or a CFT).")
        if self.output_type not in VOLUME_OUTPUT_TYPES and not self.weight:
            raise ValidationError("Firewood / sawdust output needs a weight.")

    def save(self, *args, **kwargs):
        try:
            if self.output_type in VOLUME_OUTPUT_TYPES:
                dims = parse_size(self.size)
                if dims and self.length and self.quantity:
                    self.cft = quantize_cft(
                        sawn_cft(dims[0], dims[1], self.length, self.quantity)
                    )
            else:
                self.cft = Decimal("0")
            self.amount = quantize_money(self.priced_quantity * Decimal(self.rate_per_unit or 0))
        except ArithmeticError:
            raise ValidationError("Size, length, quantity or rate is out of range.")
        self.full_clean()
        return super().save(*args, **kwargs)


class SawmillContractorPayment(models.Model):
    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    contractor = models.ForeignKey(
        SawmillContractor, on_delete=models.PROTECT, related_name="payments"
    )
    # Payment voucher posted for it, when the contractor has a ledger
    voucher = models.ForeignKey(
        "Voucher", null=True, blank=True, on_delete=models.SET_NULL,
        related_name="contractor_payments",
    )
    payment_date = models.DateField(default=timezone.localdate)
    amount = models.DecimalField(**MONEY)
    payment_mode = models.CharField(max_length=10, choices=PAYMENT_MODES, default="cash")
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL
    )
    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    def __str__(self):
        return f"{self.contractor} {self.amount} on {self.payment_date}"

    def clean(self):
        if self.amount is None or self.amount <= 0:
            raise ValidationError("Payment amount must be greater than zero.")
        if self.contractor.company_id != self.company_id:
            raise ValidationError("Contractor must belong to the same company.")

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)


class ProductRate(models.Model):
    """Default selling rate per output type, used when an entry has no rate"""

    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name="product_rates")
    product_type = models.CharField(max_length=20, choices=OUTPUT_TYPES)
    rate_per_unit = models.DecimalField(**MONEY)
    unit = models.CharField(max_length=10, default="CFT")
    is_active = models.BooleanField(default=True)
    updated_at = models.DateTimeField(auto_now=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["company", "product_type"], name="uq_company_product_rate"
            )
        ]

    def __str__(self):
        return f"{self.get_product_type_display()}: {self.rate_per_unit}/{self.unit}"
