"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the lending ledger.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. atomicity.py - A failed operation changes nothing
2. conservation.py - Counters match records, custody matches counters
3. overflow.py - Arithmetic fails instead of wrapping
4. concurrency.py - Concurrent operations are serialized

These tests use hypothesis for property-based testing.
"""
