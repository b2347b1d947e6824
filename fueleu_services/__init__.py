"""
fueleu_services -- Stateful compliance services over the pure engines.

Each service receives its repository port (and optionally a Clock and a
ComplianceConfig) by constructor injection.  Services flush through the
repository and never commit; the caller owns the transaction.

Usage:
    from fueleu_services import (
        BankingLedger,
        ComplianceService,
        PoolAllocator,
        RouteService,
    )
"""

from fueleu_services.banking_ledger import BankingLedger, DepositResult
from fueleu_services.compliance_service import ComplianceService
from fueleu_services.pool_allocator import PoolAllocator
from fueleu_services.route_service import RouteService

__all__ = [
    "BankingLedger",
    "ComplianceService",
    "DepositResult",
    "PoolAllocator",
    "RouteService",
]
