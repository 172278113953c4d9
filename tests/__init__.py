"""
Relic Calculator Test Suite
===========================

Test Organization
-----------------
- tests/unit/          : Fast unit tests (no network, injected fakes)
- tests/unit/domain/   : Value object validation and wire-form tests
- tests/integration/   : Full service container over the shipped config and catalog

Testing Philosophy
------------------
- Unit tests: Fast, isolated, test calculation rules
- Integration tests: Wire real services, fake only the remote calculator
- Use pytest markers to categorize and selectively run tests
- Follow AAA pattern: Arrange, Act, Assert
"""
