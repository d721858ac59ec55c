"""
Shared Kernel Module
====================

This module contains shared infrastructure used across all bounded
contexts (tenancy, workflow, issues, audit, SLA monitoring).

Architecture Pattern: Modular Monolith
- Each module is a bounded context
- Shared kernel contains only generic infrastructure: logging, security
  primitives, notification fan-out, HTTP middleware and schemas

DO NOT add business logic from any module to the shared kernel.
"""

__version__ = "1.0.0"
