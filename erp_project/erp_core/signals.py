from django.core.exceptions import ValidationError
from django.db.models.signals import post_delete, post_save, pre_delete, pre_save
from django.dispatch import receiver

from .models import (DispatchEntry, Ledger, ProductionEntry, SalesOrder,
                     SawmillContractor, SawmillContractorPayment, SawmillLog,
                     SawmillProductionEntry, VoucherEntry)

"""Keep order status in step with its production / dispatch entries."""


@receiver((post_save, post_delete), sender=ProductionEntry)
@receiver((post_save, post_delete), sender=DispatchEntry)
def order_entry_changed(sender, instance, **kwargs):
    try:
        order = SalesOrder.objects.get(pk=instance.order_id)
    except SalesOrder.DoesNotExist:
        # order itself is being deleted (cascade)
        return
    order.refresh_status()


"""
    Rebuild a contractor's balance when production or payments change.
    If an entry moves to another contractor, the old one is rebuilt too.
"""


@receiver(pre_save, sender=SawmillProductionEntry)
@receiver(pre_save, sender=SawmillContractorPayment)
def remember_old_contractor(sender, instance, **kwargs):
    instance._old_contractor_id = None
    if instance.pk:
        instance._old_contractor_id = (
            sender.objects.filter(pk=instance.pk)
            .values_list("contractor_id", flat=True)
            .first()
        )


@receiver((post_save, post_delete), sender=SawmillProductionEntry)
@receiver((post_save, post_delete), sender=SawmillContractorPayment)
def contractor_entry_changed(sender, instance, **kwargs):
    ids = {instance.contractor_id, getattr(instance, "_old_contractor_id", None)}
    for contractor in SawmillContractor.objects.filter(pk__in=[i for i in ids if i]):
        contractor.recompute_balance()


"""Block log deletion once it has been put through the saw."""


@receiver(pre_delete, sender=SawmillLog)
def prevent_delete_log_with_production(sender, instance, **kwargs):
    if instance.production_entries.exists():
        raise ValidationError("Cannot delete a log that has production entries.")


"""Block deletion if ledger has ever been used in a voucher."""


@receiver(pre_delete, sender=Ledger)
def prevent_delete_ledger_with_entries(sender, instance, **kwargs):
    if VoucherEntry.objects.filter(ledger=instance).exists():
        raise ValidationError("Cannot delete ledger used in vouchers.")
