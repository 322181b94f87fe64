"""
Player Ledger Test Suite
========================

Test Organization
-----------------
- tests/unit/          : Fast unit tests with mocks or pure domain objects
- tests/integration/   : Services end to end against a temporary SQLite database

Testing Philosophy
------------------
- Unit tests: Fast, isolated, no database
- Integration tests: Real transactions, real signatures
- Use pytest markers to categorize and selectively run tests
- Follow AAA pattern: Arrange, Act, Assert
"""
