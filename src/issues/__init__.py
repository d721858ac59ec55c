"""
Issue Store Module
==================

Bounded Context for compliance issues and their lifecycle.

Responsibilities:
- Create issues in the tenant's initial workflow state
- Edit a fixed allow-list of fields (status excluded)
- Move issues through workflow transitions with optimistic concurrency
- Keep versioned AI root-cause summaries and attachments
- Audit and broadcast every change
"""

__version__ = "1.0.0"
