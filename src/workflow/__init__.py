"""
Workflow Engine Module
======================

Bounded Context for tenant-configurable issue workflows.

Responsibilities:
- Validate workflow definitions before they are stored
- Keep at most one default workflow per tenant
- Resolve the tenant's active default workflow
- Decide whether a status transition is legal for a given role
"""

__version__ = "1.0.0"
