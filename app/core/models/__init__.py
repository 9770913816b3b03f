from app.core.models.student import Student
from app.core.models.fee_setting import FeeSetting
from app.core.models.custom_student_fee import CustomStudentFee, CustomStudentFeeRevision
from app.core.models.fee_transaction import FeeTransaction
from app.core.models.student_ledger_version import StudentLedgerVersion
from app.core.models.id_counter import IdCounter

__all__ = [
    "Student",
    "FeeSetting",
    "CustomStudentFee",
    "CustomStudentFeeRevision",
    "FeeTransaction",
    "StudentLedgerVersion",
    "IdCounter",
]
