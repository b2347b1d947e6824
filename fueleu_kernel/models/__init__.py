"""ORM models for the compliance kernel."""

from fueleu_kernel.models.bank_entry import BankEntryModel, BankingAccountModel
from fueleu_kernel.models.compliance_record import ComplianceRecordModel
from fueleu_kernel.models.pool import PoolMemberModel, PoolModel
from fueleu_kernel.models.route import RouteModel

__all__ = [
    "BankEntryModel",
    "BankingAccountModel",
    "ComplianceRecordModel",
    "PoolMemberModel",
    "PoolModel",
    "RouteModel",
]
