from .accounting import LedgerAdmin, VoucherAdmin, VoucherSequenceAdmin
from .actions import (advance_selected_logs, recompute_company_balances,
                      recompute_contractor_balances, refresh_order_status,
                      resend_voucher_notifications)
from .auditlog import AuditLogAdmin, NotificationLogAdmin, VoucherNotificationAdmin
from .inlines import (DispatchEntryInline, NotificationLogInline,
                      OrderAssignmentInline, ProductionEntryInline,
                      SawmillOutputEntryInline, VoucherEntryInline)
from .membership import CompanyAdmin, UserRoleAdmin
from .mixins import TenantAdminMixin
from .production import (DispatchEntryAdmin, DispatchNotificationAdmin,
                         MachineAdmin, ProductionEntryAdmin, SalesOrderAdmin)
from .ReadOnly import ReadOnlyAdmin
from .sawmill import (ProductRateAdmin, SawMillAdmin, SawmillContractorAdmin,
                      SawmillContractorPaymentAdmin, SawmillLogAdmin,
                      SawmillOutputEntryAdmin, SawmillProductionEntryAdmin)
