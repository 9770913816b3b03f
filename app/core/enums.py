from enum import Enum


class PaymentMethod(str, Enum):
    CASH = "Cash"
    MOBILE_BANKING = "Mobile Banking"
    BANK_TRANSFER = "Bank Transfer"


class LedgerEntryType(str, Enum):
    PAYMENT = "PAYMENT"
    REVERSAL = "REVERSAL"


class CustomFeeAction(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DEACTIVATE = "DEACTIVATE"
