"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the collateral engine.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. test_rollback.py - All-or-nothing operation semantics
2. test_solvency.py - Over-collateralization and custody under random operation sequences

These tests use hypothesis for property-based testing.
"""
