"""
Test suite for first run gate

Contains:
- tests/unit/          : Unit and scenario tests for first run logic
"""
