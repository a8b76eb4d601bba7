"""
XtreamTV Test Suite

Test Categories:
- unit/: Fast, isolated unit tests
- fixtures/: Shared test data and helpers
"""
