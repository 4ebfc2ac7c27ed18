# File: tests/__init__.py
# Test suite initializer


"""
Unit tests for the CRM console packages (core, services, utils, config).
Each test file follows standard pytest discovery naming.
"""
