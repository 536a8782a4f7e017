"""
Business workflows. Each module wraps model writes in transactions and
leaves side effects (email, SMS) to Celery tasks run after commit.

Import from the submodules directly, e.g.
    from erp_core.services.posting import post_voucher
"""
