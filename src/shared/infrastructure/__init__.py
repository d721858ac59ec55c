"""
Shared Infrastructure
=====================

Cross-cutting infrastructure used by every bounded context:
- logging: structured JSON logs with correlation ids
- security: credential hashing and access tokens
- notifications: tenant-scoped real-time fan-out
"""
