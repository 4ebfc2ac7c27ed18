"""
domain/__init__.py

Domain models for the CRM console.

This package contains plain data models (CRM entities, session record,
synthetic market entities) that are independent of HTTP, storage, or UI.
"""
from __future__ import annotations
