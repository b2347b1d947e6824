"""
FuelEU Kernel

Compliance accounting core for fleet GHG-intensity regulation:
- Compliance balance inputs (records, statuses)
- Banked-unit ledger with expiry
- Pooling with unit conservation
- Typed errors and structured logging
"""

__version__ = "0.1.0"
