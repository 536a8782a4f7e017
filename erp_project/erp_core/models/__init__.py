from .auditlog import AuditLog
from .entitymembership import Company, UserRole
from .ledger import (ASSET_TYPES, LEDGER_TYPES, LIABILITY_TYPES, Ledger)
from .notification import (DispatchNotification, NotificationLog,
                           VoucherNotification)
from .production import (DispatchEntry, Machine, OrderAssignment,
                         ProductionEntry, SalesOrder, derive_order_status)
from .sawmill import (ProductRate, SawMill, SawmillContractor,
                      SawmillContractorPayment, SawmillLog, SawmillOutputEntry,
                      SawmillProductionEntry)
from .voucher import (VOUCHER_PREFIXES, VOUCHER_TYPES, Voucher, VoucherEntry,
                      VoucherSequence)
