from django.urls import path
from . import views

app_name = "erp_core"

urlpatterns = [
    # Accounting
    path("vouchers/", views.post_voucher_view, name="post-voucher"),
    path("vouchers/<int:voucher_id>/delete/", views.delete_voucher_view, name="delete-voucher"),
    path("ledgers/<int:ledger_id>/statement/", views.ledger_statement_view, name="ledger-statement"),
    path("reports/<slug:kind>/", views.report_view, name="report"),
    # Sawmill
    path("logs/", views.register_log_view, name="register-log"),
    path("logs/lookup/", views.lookup_log_view, name="lookup-log"),
    path("logs/stats/", views.log_stats_view, name="log-stats"),
    path("logs/<int:log_id>/qr.png", views.log_qr_view, name="log-qr"),
    path("logs/<int:log_id>/status/", views.log_status_view, name="log-status"),
    path("sawmill/production/", views.log_input_view, name="sawmill-production"),
    path("sawmill/output/", views.output_view, name="sawmill-output"),
    path("sawmill/yield/", views.yield_view, name="sawmill-yield"),
    path(
        "sawmill/contractors/<int:contractor_id>/payments/",
        views.contractor_payment_view,
        name="contractor-payment",
    ),
    # Production
    path("orders/", views.create_order_view, name="create-order"),
    path("orders/<int:order_id>/", views.order_summary_view, name="order-summary"),
    path("orders/<int:order_id>/production/", views.production_entry_view, name="order-production"),
    path("orders/<int:order_id>/dispatch/", views.dispatch_entry_view, name="order-dispatch"),
    path("production/<int:entry_id>/edit/", views.edit_production_view, name="edit-production"),
    # Misc
    path("gstin/<str:gstin>/", views.gstin_lookup_view, name="gstin-lookup"),
    path("users/", views.provision_user_view, name="provision-user"),
    path("notifications/", views.notification_inbox_view, name="notifications"),
    path(
        "notifications/<int:notification_id>/respond/",
        views.respond_notification_view,
        name="respond-notification",
    ),
    path("company/switch/", views.switch_company_view, name="switch-company"),
]
