class UnbalancedVoucherError(Exception):
    """Raised when a Voucher's debits and credits differ by more than 0.01."""
    pass

class DuplicateVoucherNumberError(Exception):
    """Raised when a voucher number is already used for that company + voucher type."""
    pass

class DuplicateTagError(Exception):
    """Raised when a log tag number already exists in the company."""
    pass

class DuplicateMachineCodeError(Exception):
    """Raised when a machine code already exists in the company."""
    pass

class InvalidStatusTransition(Exception):
    """Raised when a log status change skips a step or moves backwards."""
    pass

class InvalidGstinError(Exception):
    """Raised when a GSTIN is not a well-formed 15 character identifier."""
    pass

class GstinLookupError(Exception):
    """Raised when the external GSTIN service fails or answers with an error."""
    pass
