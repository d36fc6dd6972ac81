"""
Helpdesk Triage Service
=======================

Helpdesk ticketing backend with automated ticket triage.

Modules:
- Triage: keyword classification, knowledge-base retrieval, reply drafting
  and the auto-close / human-assignment decision, with a full audit trail
"""

__version__ = "1.0.0"
