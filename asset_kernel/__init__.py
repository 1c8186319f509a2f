"""
Asset Kernel

Shared infrastructure for the depreciation engine:
- Structured JSON logging with run-scoped context
- Typed exceptions with machine-readable codes
- SQLAlchemy declarative base, engine and session scope
- Append-only guards for ledger tables
- Injectable clock
"""

__version__ = "0.1.0"
