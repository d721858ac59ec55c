"""
Audit Ledger Module
===================

Bounded Context for the append-only audit trail.

Responsibilities:
- Append one immutable entry per state-changing operation
- Never block or fail the operation being audited
- Query entries per tenant with filters and pagination
- Refuse any update or delete of a stored entry
"""

__version__ = "1.0.0"
