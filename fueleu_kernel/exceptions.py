"""
Typed Exception Hierarchy for the FuelEU compliance kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Every failure the accounting core can produce is a typed exception with a
machine-readable ``code`` class attribute and structured attributes for the
offending values.  Callers (a request layer, a batch job, a test) catch by
type and render from attributes, never by parsing message text.

    try:
        allocator.allocate_units(pool_id, "IMO9876543", Decimal("60"))
    except ConservationViolationError as e:
        api_response(
            code=e.code,
            pool_id=e.pool_id,
            total=e.total_units,
            allocated=e.allocated_units,
            requested=e.requested_units,
        )

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from FuelEUError:

    FuelEUError (base)
    |
    +-- ValidationError
    |   +-- NonFiniteValueError
    |
    +-- CapacityExceededError
    |
    +-- NotFoundError
    |   +-- PoolNotFoundError
    |   +-- PoolMemberNotFoundError
    |   +-- ComplianceRecordNotFoundError
    |   +-- BankEntryNotFoundError
    |   +-- RouteNotFoundError
    |
    +-- ConservationViolationError
    |   +-- ReconciliationMismatchError
    |
    +-- PoolStateError
    |   +-- DuplicateMemberError
    |   +-- InvalidPoolTransitionError
    |
    +-- ConfigurationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category      | Code                          | When Raised
--------------|-------------------------------|--------------------------------------
Validation    | VALIDATION_ERROR              | Empty name, non-positive units,
              |                               | start >= end, negative deficit
              | NON_FINITE_VALUE              | NaN / Infinity numeric input
--------------|-------------------------------|--------------------------------------
Banking       | BANKING_CAPACITY_EXCEEDED     | New entry would exceed max capacity
--------------|-------------------------------|--------------------------------------
Not found     | POOL_NOT_FOUND                | Pool id doesn't exist
              | POOL_MEMBER_NOT_FOUND         | Ship is not a member of the pool
              | COMPLIANCE_RECORD_NOT_FOUND   | Record id doesn't exist
              | BANK_ENTRY_NOT_FOUND          | Bank entry id doesn't exist
              | ROUTE_NOT_FOUND               | Route id doesn't exist
--------------|-------------------------------|--------------------------------------
Conservation  | CONSERVATION_VIOLATION        | allocated + requested > total
              | POOL_RECONCILIATION_MISMATCH  | sum(members) != pool counter
--------------|-------------------------------|--------------------------------------
Pool state    | DUPLICATE_POOL_MEMBER         | add_member for an existing member
              | INVALID_POOL_TRANSITION       | e.g. CLOSED -> ACTIVE
--------------|-------------------------------|--------------------------------------
Config        | CONFIGURATION_ERROR           | Malformed YAML configuration value

===============================================================================
HANDLING PATTERNS
===============================================================================

1. ValidationError / CapacityExceededError / NotFoundError are recoverable
   by the caller and are never retried automatically.

2. ConservationViolationError aborts the operation; nothing is clamped.

3. ReconciliationMismatchError means some write path bypassed the
   allocator.  Alarm, do not auto-correct:

    except ReconciliationMismatchError as e:
        alert_operations(e.pool_id, e.counter_units, e.member_sum)
        halt_pool_writes(e.pool_id)

===============================================================================
"""


class FuelEUError(Exception):
    """
    Base exception for all compliance kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "FUELEU_ERROR"


# Validation


class ValidationError(FuelEUError):
    """Malformed or out-of-range input."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, field: str, value: object, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {field} ({value!r}): {reason}")


class NonFiniteValueError(ValidationError):
    """Numeric input is NaN or infinite."""

    code: str = "NON_FINITE_VALUE"

    def __init__(self, field: str, value: object):
        super().__init__(field, value, "must be a finite number")


# Banking


class CapacityExceededError(FuelEUError):
    """Banking would push the ship's unexpired banked units above capacity."""

    code: str = "BANKING_CAPACITY_EXCEEDED"

    def __init__(
        self,
        requested_units: str,
        current_units: str,
        capacity: str,
        ship_id: str | None = None,
    ):
        self.ship_id = ship_id
        self.requested_units = requested_units
        self.current_units = current_units
        self.capacity = capacity
        owner = f" for ship {ship_id}" if ship_id else ""
        super().__init__(
            f"Banking {requested_units} units{owner} exceeds capacity "
            f"{capacity} (currently banked: {current_units})"
        )


# Not found


class NotFoundError(FuelEUError):
    """Base exception for references to records that do not exist."""

    code: str = "NOT_FOUND"


class PoolNotFoundError(NotFoundError):
    """Pool with given ID was not found."""

    code: str = "POOL_NOT_FOUND"

    def __init__(self, pool_id: str):
        self.pool_id = pool_id
        super().__init__(f"Pool not found: {pool_id}")


class PoolMemberNotFoundError(NotFoundError):
    """Ship is not a member of the pool."""

    code: str = "POOL_MEMBER_NOT_FOUND"

    def __init__(self, pool_id: str, ship_id: str):
        self.pool_id = pool_id
        self.ship_id = ship_id
        super().__init__(f"Ship {ship_id} is not a member of pool {pool_id}")


class ComplianceRecordNotFoundError(NotFoundError):
    """Compliance record with given ID was not found."""

    code: str = "COMPLIANCE_RECORD_NOT_FOUND"

    def __init__(self, record_id: str):
        self.record_id = record_id
        super().__init__(f"Compliance record not found: {record_id}")


class BankEntryNotFoundError(NotFoundError):
    """Bank entry with given ID was not found."""

    code: str = "BANK_ENTRY_NOT_FOUND"

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"Bank entry not found: {entry_id}")


class RouteNotFoundError(NotFoundError):
    """Route with given ID was not found."""

    code: str = "ROUTE_NOT_FOUND"

    def __init__(self, route_id: str):
        self.route_id = route_id
        super().__init__(f"Route not found: {route_id}")


# Conservation


class ConservationViolationError(FuelEUError):
    """
    An allocation would make the pool's allocated units exceed its total.

    Fatal to the operation: the write is aborted, never clamped.
    """

    code: str = "CONSERVATION_VIOLATION"

    def __init__(
        self,
        pool_id: str,
        total_units: str,
        allocated_units: str,
        requested_units: str,
    ):
        self.pool_id = pool_id
        self.total_units = total_units
        self.allocated_units = allocated_units
        self.requested_units = requested_units
        super().__init__(
            f"Allocating {requested_units} units to pool {pool_id} would exceed "
            f"its total of {total_units} (already allocated: {allocated_units})"
        )


class ReconciliationMismatchError(ConservationViolationError):
    """
    Sum of member allocations differs from the pool's allocated counter.

    Indicates a defect in an external write path.  Never auto-corrected.
    """

    code: str = "POOL_RECONCILIATION_MISMATCH"

    def __init__(self, pool_id: str, counter_units: str, member_sum: str):
        self.counter_units = counter_units
        self.member_sum = member_sum
        super().__init__(
            pool_id=pool_id,
            total_units="",
            allocated_units=counter_units,
            requested_units="0",
        )
        # Replace the allocation message with the reconciliation one.
        self.args = (
            f"Pool {pool_id} counter {counter_units} does not match "
            f"sum of member allocations {member_sum}",
        )


# Pool state


class PoolStateError(FuelEUError):
    """Base exception for pool lifecycle and membership state errors."""

    code: str = "POOL_STATE_ERROR"


class DuplicateMemberError(PoolStateError):
    """Ship is already a member of the pool."""

    code: str = "DUPLICATE_POOL_MEMBER"

    def __init__(self, pool_id: str, ship_id: str):
        self.pool_id = pool_id
        self.ship_id = ship_id
        super().__init__(f"Ship {ship_id} is already a member of pool {pool_id}")


class InvalidPoolTransitionError(PoolStateError):
    """Requested pool status change is not allowed."""

    code: str = "INVALID_POOL_TRANSITION"

    def __init__(self, pool_id: str, from_status: str, to_status: str):
        self.pool_id = pool_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Pool {pool_id} cannot transition from {from_status} to {to_status}"
        )


# Configuration


class ConfigurationError(FuelEUError):
    """Configuration file contains a missing or malformed value."""

    code: str = "CONFIGURATION_ERROR"

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Invalid configuration '{key}': {reason}")
