"""
Infrastructure Layer
=====================

Shared low-level technical concerns:
- Database engine and session lifecycle
"""
