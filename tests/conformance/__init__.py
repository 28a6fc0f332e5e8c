"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the share vault.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. rounding.py - Every rounding direction favors the pool
2. conservation.py - Supply, custody and solvency invariants
3. atomicity.py - All-or-nothing entry operations
4. reentrancy.py - Effect ordering under hostile callbacks

These tests use hypothesis for property-based testing and run under
decimals offsets of zero and above zero.
"""
