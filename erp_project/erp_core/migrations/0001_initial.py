import decimal

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


def money(**kwargs):
    return models.DecimalField(decimal_places=2, max_digits=16, **kwargs)


def dim(**kwargs):
    return models.DecimalField(decimal_places=2, max_digits=10, **kwargs)


def cft(**kwargs):
    return models.DecimalField(decimal_places=3, max_digits=14, **kwargs)


def qty(**kwargs):
    return models.DecimalField(decimal_places=2, max_digits=14, **kwargs)


def user_fk(**kwargs):
    return models.ForeignKey(
        blank=True,
        null=True,
        on_delete=django.db.models.deletion.SET_NULL,
        to=settings.AUTH_USER_MODEL,
        **kwargs,
    )


def company_fk(**kwargs):
    return models.ForeignKey(
        on_delete=django.db.models.deletion.CASCADE, to="erp_core.company", **kwargs
    )


ZERO = decimal.Decimal("0.00")


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        # ---------- Tenancy ----------
        migrations.CreateModel(
            name="Company",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("slug", models.SlugField(max_length=80, unique=True)),
                ("gstin", models.CharField(blank=True, db_index=True, max_length=15)),
                ("legal_name", models.CharField(blank=True, max_length=200)),
                ("trade_name", models.CharField(blank=True, max_length=200)),
                ("address", models.TextField(blank=True)),
                ("state", models.CharField(blank=True, max_length=100)),
                ("pincode", models.CharField(blank=True, max_length=10)),
                ("phone", models.CharField(blank=True, max_length=32)),
                ("email", models.EmailField(blank=True, max_length=254)),
                ("financial_year_start", models.DateField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("owner", user_fk(related_name="owned_companies")),
            ],
            options={"verbose_name_plural": "companies"},
        ),
        migrations.CreateModel(
            name="UserRole",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("role", models.CharField(
                    choices=[("owner", "Owner"), ("supervisor", "Supervisor"),
                             ("production", "Production"), ("dispatch", "Dispatch")],
                    default="production", max_length=20)),
                ("full_name", models.CharField(max_length=200)),
                ("department", models.CharField(blank=True, max_length=100)),
                ("phone", models.CharField(blank=True, max_length=32)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", company_fk(related_name="user_roles")),
                ("user", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="roles", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "indexes": [models.Index(fields=["company", "user"], name="userrole_company_user_idx")],
                "constraints": [models.UniqueConstraint(fields=("user", "company"), name="uq_user_company_role")],
            },
        ),
        # ---------- Ledgers & vouchers ----------
        migrations.CreateModel(
            name="Ledger",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("ledger_type", models.CharField(
                    choices=[
                        ("capital_account", "Capital Account"),
                        ("reserves_and_surplus", "Reserves & Surplus"),
                        ("secured_loans", "Secured Loans"),
                        ("unsecured_loans", "Unsecured Loans"),
                        ("loans_liability", "Loans (Liability)"),
                        ("duties_and_taxes", "Duties & Taxes"),
                        ("sundry_creditors", "Sundry Creditors"),
                        ("suspense_account", "Suspense Account"),
                        ("current_liabilities", "Current Liabilities"),
                        ("bank_od_account", "Bank OD Account"),
                        ("provisions", "Provisions"),
                        ("profit_and_loss_account", "Profit & Loss A/c"),
                        ("fixed_assets", "Fixed Assets"),
                        ("investments", "Investments"),
                        ("current_assets", "Current Assets"),
                        ("sundry_debtors", "Sundry Debtors"),
                        ("cash_in_hand", "Cash-in-Hand"),
                        ("bank_accounts", "Bank Accounts"),
                        ("stock_in_hand", "Stock-in-Hand"),
                        ("deposits_assets", "Deposits (Asset)"),
                        ("loans_and_advances_assets", "Loans & Advances (Asset)"),
                        ("misc_expenses_asset", "Misc. Expenses (Asset)"),
                        ("branch_divisions", "Branch / Divisions"),
                        ("sales_accounts", "Sales Accounts"),
                        ("direct_incomes", "Direct Incomes"),
                        ("indirect_incomes", "Indirect Incomes"),
                        ("purchase_accounts", "Purchase Accounts"),
                        ("direct_expenses", "Direct Expenses"),
                        ("indirect_expenses", "Indirect Expenses"),
                    ],
                    max_length=40)),
                ("opening_balance", models.DecimalField(decimal_places=2, default=ZERO, max_digits=18)),
                ("current_balance", models.DecimalField(decimal_places=2, default=ZERO, max_digits=18)),
                ("gstin", models.CharField(blank=True, max_length=15)),
                ("contact_person", models.CharField(blank=True, max_length=200)),
                ("phone", models.CharField(blank=True, max_length=32)),
                ("email", models.EmailField(blank=True, max_length=254)),
                ("address", models.TextField(blank=True)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", company_fk(related_name="ledgers")),
            ],
            options={
                "indexes": [models.Index(fields=["company", "ledger_type"], name="ledger_company_type_idx")],
                "constraints": [models.UniqueConstraint(fields=("company", "name"), name="uq_company_ledger_name")],
            },
        ),
        migrations.CreateModel(
            name="Voucher",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("voucher_number", models.CharField(max_length=50)),
                ("voucher_date", models.DateField()),
                ("voucher_type", models.CharField(
                    choices=[
                        ("sales", "Sales"), ("purchase", "Purchase"),
                        ("payment", "Payment"), ("receipt", "Receipt"),
                        ("journal", "Journal"), ("contra", "Contra"),
                        ("debit_note", "Debit Note"), ("credit_note", "Credit Note"),
                        ("stock_journal", "Stock Journal"),
                    ],
                    max_length=20)),
                ("total_amount", models.DecimalField(decimal_places=2, default=ZERO, max_digits=18)),
                ("narration", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", company_fk(related_name="vouchers")),
                ("created_by", user_fk()),
                ("party_ledger", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.PROTECT,
                    related_name="party_vouchers", to="erp_core.ledger")),
            ],
            options={
                "indexes": [
                    models.Index(fields=["company", "voucher_date"], name="voucher_company_date_idx"),
                    models.Index(fields=["company", "voucher_type"], name="voucher_company_type_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("company", "voucher_type", "voucher_number"),
                        name="uq_voucher_company_type_number"),
                ],
            },
        ),
        migrations.CreateModel(
            name="VoucherEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("debit_amount", models.DecimalField(decimal_places=2, default=ZERO, max_digits=18)),
                ("credit_amount", models.DecimalField(decimal_places=2, default=ZERO, max_digits=18)),
                ("narration", models.CharField(blank=True, max_length=400)),
                ("ledger", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="entries", to="erp_core.ledger")),
                ("voucher", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="entries", to="erp_core.voucher")),
            ],
            options={
                "indexes": [models.Index(fields=["ledger", "voucher"], name="ventry_ledger_voucher_idx")],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("debit_amount__gte", 0), ("credit_amount__gte", 0)),
                        name="ve_non_negative_amounts"),
                    models.CheckConstraint(
                        condition=models.Q(models.Q(("debit_amount", 0), ("credit_amount", 0)), _negated=True),
                        name="ve_debit_or_credit_nonzero"),
                    models.CheckConstraint(
                        condition=models.Q(models.Q(("debit_amount__gt", 0), ("credit_amount__gt", 0)), _negated=True),
                        name="ve_not_both_debit_and_credit"),
                ],
            },
        ),
        migrations.CreateModel(
            name="VoucherSequence",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("voucher_type", models.CharField(
                    choices=[
                        ("sales", "Sales"), ("purchase", "Purchase"),
                        ("payment", "Payment"), ("receipt", "Receipt"),
                        ("journal", "Journal"), ("contra", "Contra"),
                        ("debit_note", "Debit Note"), ("credit_note", "Credit Note"),
                        ("stock_journal", "Stock Journal"),
                    ],
                    max_length=20)),
                ("last_number", models.PositiveIntegerField(default=0)),
                ("company", company_fk(related_name="voucher_sequences")),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(fields=("company", "voucher_type"),
                                            name="uq_voucher_sequence_company_type"),
                ],
            },
        ),
        migrations.CreateModel(
            name="AuditLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("action", models.CharField(max_length=50)),
                ("object_type", models.CharField(max_length=100)),
                ("object_id", models.CharField(max_length=100)),
                ("changes", models.JSONField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    to="erp_core.company")),
                ("user", user_fk()),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["company", "user"], name="auditlog_company_user_idx"),
                    models.Index(fields=["company", "created_at"], name="auditlog_company_created_idx"),
                ],
            },
        ),
        # ---------- Production floor ----------
        migrations.CreateModel(
            name="Machine",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("machine_code", models.CharField(max_length=50)),
                ("department", models.CharField(blank=True, max_length=100)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", company_fk(related_name="machines")),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(fields=("company", "machine_code"), name="uq_company_machine_code"),
                ],
            },
        ),
        migrations.CreateModel(
            name="SalesOrder",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("order_no", models.CharField(max_length=50)),
                ("customer_name", models.CharField(max_length=200)),
                ("customer_email", models.EmailField(blank=True, max_length=254)),
                ("customer_phone", models.CharField(blank=True, max_length=32)),
                ("product", models.CharField(max_length=200)),
                ("ordered_quantity", qty()),
                ("due_date", models.DateField(blank=True, null=True)),
                ("priority", models.CharField(
                    choices=[("low", "Low"), ("medium", "Medium"), ("high", "High"), ("urgent", "Urgent")],
                    default="medium", max_length=10)),
                ("status", models.CharField(
                    choices=[
                        ("pending", "Pending"),
                        ("in_production", "In Production"),
                        ("partially_dispatched", "Partially Dispatched"),
                        ("completed", "Completed"),
                    ],
                    default="pending", max_length=25)),
                ("notes", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("company", company_fk(related_name="orders")),
                ("created_by", user_fk()),
            ],
            options={
                "indexes": [models.Index(fields=["company", "status"], name="order_company_status_idx")],
                "constraints": [
                    models.UniqueConstraint(fields=("company", "order_no"), name="uq_company_order_no"),
                    models.CheckConstraint(condition=models.Q(("ordered_quantity__gt", 0)),
                                           name="order_quantity_positive"),
                ],
            },
        ),
        migrations.CreateModel(
            name="OrderAssignment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("assigned_at", models.DateTimeField(auto_now_add=True)),
                ("assigned_to", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="order_assignments", to=settings.AUTH_USER_MODEL)),
                ("order", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="assignments", to="erp_core.salesorder")),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(fields=("order", "assigned_to"), name="uq_order_assignee"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ProductionEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("produced_quantity", qty()),
                ("shift", models.CharField(
                    choices=[("general", "General"), ("day", "Day"), ("night", "Night")],
                    default="general", max_length=10)),
                ("wastage", qty(default=decimal.Decimal("0"))),
                ("remarks", models.TextField(blank=True)),
                ("entry_date", models.DateField(default=django.utils.timezone.localdate)),
                ("edited_reason", models.TextField(blank=True)),
                ("previous_quantity", qty(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", company_fk()),
                ("created_by", user_fk()),
                ("machine", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    related_name="production_entries", to="erp_core.machine")),
                ("order", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="production_entries", to="erp_core.salesorder")),
            ],
            options={
                "verbose_name_plural": "production entries",
                "indexes": [models.Index(fields=["company", "entry_date"], name="prodentry_company_date_idx")],
            },
        ),
        migrations.CreateModel(
            name="DispatchEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("dispatched_quantity", qty()),
                ("vehicle_no", models.CharField(blank=True, max_length=30)),
                ("transporter", models.CharField(blank=True, max_length=200)),
                ("driver_name", models.CharField(blank=True, max_length=200)),
                ("dispatch_date", models.DateField(default=django.utils.timezone.localdate)),
                ("loading_remarks", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", company_fk()),
                ("created_by", user_fk()),
                ("order", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="dispatch_entries", to="erp_core.salesorder")),
            ],
            options={
                "verbose_name_plural": "dispatch entries",
                "indexes": [models.Index(fields=["company", "dispatch_date"], name="dispatch_company_date_idx")],
            },
        ),
        # ---------- Notifications ----------
        migrations.CreateModel(
            name="VoucherNotification",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("to_user_email", models.EmailField(max_length=254)),
                ("message", models.TextField(blank=True)),
                ("status", models.CharField(
                    choices=[
                        ("pending", "Pending"), ("accepted", "Accepted"),
                        ("rejected", "Rejected"), ("reviewed", "Reviewed"),
                        ("hold", "On Hold"), ("ignored", "Ignored"),
                    ],
                    default="pending", max_length=10)),
                ("delivered_at", models.DateTimeField(blank=True, null=True)),
                ("responded_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("from_company", company_fk(related_name="sent_notifications")),
                ("voucher", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="notifications", to="erp_core.voucher")),
            ],
            options={
                "indexes": [models.Index(fields=["to_user_email", "status"], name="vnotif_email_status_idx")],
            },
        ),
        migrations.CreateModel(
            name="NotificationLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("channel", models.CharField(default="email", max_length=20)),
                ("status", models.CharField(choices=[("sent", "Sent"), ("failed", "Failed")], max_length=10)),
                ("error_message", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("notification", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="logs", to="erp_core.vouchernotification")),
            ],
        ),
        migrations.CreateModel(
            name="DispatchNotification",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("notification_type", models.CharField(choices=[("email", "Email"), ("sms", "SMS")], max_length=10)),
                ("recipient_email", models.EmailField(blank=True, max_length=254)),
                ("recipient_phone", models.CharField(blank=True, max_length=32)),
                ("status", models.CharField(
                    choices=[("pending", "Pending"), ("sent", "Sent"), ("failed", "Failed")],
                    default="pending", max_length=10)),
                ("error_message", models.TextField(blank=True)),
                ("sent_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", company_fk()),
                ("dispatch_entry", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="notifications", to="erp_core.dispatchentry")),
            ],
        ),
        # ---------- Sawmill ----------
        migrations.CreateModel(
            name="SawMill",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("location", models.CharField(blank=True, max_length=200)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", company_fk(related_name="saw_mills")),
            ],
        ),
        migrations.CreateModel(
            name="SawmillLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("tag_number", models.CharField(max_length=50)),
                ("girth_cm", dim()),
                ("girth_inch", models.DecimalField(decimal_places=10, editable=False, max_digits=20)),
                ("length_meter", dim()),
                ("grade", models.CharField(
                    choices=[("A", "A"), ("B", "B"), ("C", "C"), ("D", "D"), ("Rejected", "Rejected")],
                    default="A", max_length=10)),
                ("cft", cft(editable=False)),
                ("status", models.CharField(
                    choices=[("available", "Available"), ("in_process", "In Process"), ("processed", "Processed")],
                    default="available", max_length=12)),
                ("qr_data", models.JSONField(blank=True, editable=False, null=True)),
                ("supplier_name", models.CharField(blank=True, max_length=200)),
                ("lot_no", models.CharField(blank=True, max_length=50)),
                ("purchase_rate", money(default=ZERO)),
                ("total_amount", money(default=ZERO, editable=False)),
                ("notes", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("company", company_fk(related_name="logs")),
                ("created_by", user_fk()),
                ("saw_mill", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    related_name="logs", to="erp_core.sawmill")),
            ],
            options={
                "indexes": [models.Index(fields=["company", "status"], name="log_company_status_idx")],
                "constraints": [
                    models.UniqueConstraint(fields=("company", "tag_number"), name="uq_company_log_tag"),
                    models.CheckConstraint(
                        condition=models.Q(("girth_cm__gt", 0), ("length_meter__gt", 0)),
                        name="log_dimensions_positive"),
                ],
            },
        ),
        migrations.CreateModel(
            name="SawmillContractor",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("phone", models.CharField(blank=True, max_length=32)),
                ("email", models.EmailField(blank=True, max_length=254)),
                ("address", models.TextField(blank=True)),
                ("opening_balance", money(default=ZERO)),
                ("current_balance", money(default=ZERO, editable=False)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", company_fk(related_name="contractors")),
                ("ledger", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    related_name="contractors", to="erp_core.ledger")),
                ("saw_mill", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    related_name="contractors", to="erp_core.sawmill")),
            ],
        ),
        migrations.CreateModel(
            name="SawmillProductionEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("entry_date", models.DateField(default=django.utils.timezone.localdate)),
                ("girth", dim()),
                ("length", dim()),
                ("quantity", models.PositiveIntegerField(default=1)),
                ("cft", cft(editable=False)),
                ("rate_per_cft", money(default=ZERO)),
                ("total_amount", money(default=ZERO, editable=False)),
                ("team_name", models.CharField(blank=True, max_length=100)),
                ("machine_no", models.CharField(blank=True, max_length=50)),
                ("notes", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", company_fk()),
                ("contractor", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.PROTECT,
                    related_name="production_entries", to="erp_core.sawmillcontractor")),
                ("created_by", user_fk()),
                ("log", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    related_name="production_entries", to="erp_core.sawmilllog")),
                ("saw_mill", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    related_name="production_entries", to="erp_core.sawmill")),
            ],
            options={
                "verbose_name_plural": "sawmill production entries",
                "indexes": [models.Index(fields=["company", "entry_date"], name="sawprod_company_date_idx")],
            },
        ),
        migrations.CreateModel(
            name="SawmillOutputEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("entry_date", models.DateField(default=django.utils.timezone.localdate)),
                ("output_type", models.CharField(
                    choices=[
                        ("main_material", "Main Material"), ("off_side", "Off Side"),
                        ("firewood", "Firewood"), ("sawdust", "Sawdust"),
                    ],
                    max_length=20)),
                ("size", models.CharField(blank=True, max_length=30)),
                ("length", dim(default=decimal.Decimal("0"))),
                ("quantity", dim(default=decimal.Decimal("0"))),
                ("cft", cft(default=decimal.Decimal("0"))),
                ("weight", dim(default=decimal.Decimal("0"))),
                ("rate_per_unit", money(default=ZERO)),
                ("amount", money(default=ZERO, editable=False)),
                ("notes", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", company_fk()),
                ("created_by", user_fk()),
                ("production_entry", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    related_name="outputs", to="erp_core.sawmillproductionentry")),
                ("saw_mill", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    related_name="output_entries", to="erp_core.sawmill")),
            ],
            options={
                "verbose_name_plural": "sawmill output entries",
                "indexes": [models.Index(fields=["company", "entry_date"], name="sawout_company_date_idx")],
            },
        ),
        migrations.CreateModel(
            name="SawmillContractorPayment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("payment_date", models.DateField(default=django.utils.timezone.localdate)),
                ("amount", money()),
                ("payment_mode", models.CharField(
                    choices=[("cash", "Cash"), ("bank", "Bank Transfer"), ("upi", "UPI"), ("cheque", "Cheque")],
                    default="cash", max_length=10)),
                ("notes", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", company_fk()),
                ("contractor", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="payments", to="erp_core.sawmillcontractor")),
                ("created_by", user_fk()),
                ("voucher", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    related_name="contractor_payments", to="erp_core.voucher")),
            ],
        ),
        migrations.CreateModel(
            name="ProductRate",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("product_type", models.CharField(
                    choices=[
                        ("main_material", "Main Material"), ("off_side", "Off Side"),
                        ("firewood", "Firewood"), ("sawdust", "Sawdust"),
                    ],
                    max_length=20)),
                ("rate_per_unit", money()),
                ("unit", models.CharField(default="CFT", max_length=10)),
                ("is_active", models.BooleanField(default=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("company", company_fk(related_name="product_rates")),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(fields=("company", "product_type"), name="uq_company_product_rate"),
                ],
            },
        ),
    ]
