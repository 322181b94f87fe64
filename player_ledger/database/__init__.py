"""Persistence layer: ORM models for ledger tables."""
