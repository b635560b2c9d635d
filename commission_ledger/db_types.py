"""Database-agnostic type definitions for SQLAlchemy models.

The ledger runs on PostgreSQL in production and SQLite in development and
tests; these aliases keep model definitions identical for both.
"""
from sqlalchemy.dialects.postgresql import UUID as PG_UUID

# Native UUID on PostgreSQL, CHAR(32) on SQLite
UUIDType = PG_UUID
