"""
Test Suite

Engine tests (lifecycle, permission guard, comment filter, audit writer)
run without storage. Repository, service and API tests run against an
in-memory MongoDB from conftest.py.

To run tests:
    pytest
    pytest tests/test_api.py
"""
