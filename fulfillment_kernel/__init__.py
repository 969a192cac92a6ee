"""
Fulfillment Kernel

Shared foundation for LPO fulfillment tracking:
- Typed exceptions with machine-readable codes
- Structured JSON logging
- Immutable order, customer and ledger value types
- SQLAlchemy base, engine helpers and ORM models for the SQL store
"""

__version__ = "0.1.0"
