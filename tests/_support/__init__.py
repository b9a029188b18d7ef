"""
Test support utilities for accelbatch tests.

Helpers that are not fixtures but are shared across test files.
"""
