"""
Tenant Registry Module
======================

Bounded Context for organizations (tenants), their users, and the
authentication contract every other module relies on.

Responsibilities:
- Register an organization with its first Admin and seeded default workflow
- Issue and verify access tokens
- Resolve an authenticated caller into an Actor {user, role, tenant}
- Manage users inside a tenant
"""

__version__ = "1.0.0"
