"""
Triage Module
=============

Bounded Context for automated ticket triage.

Responsibilities:
- Classify tickets into billing / tech / shipping / other with a confidence
- Retrieve relevant knowledge-base articles
- Draft a reply citing those articles
- Auto-close or hand off to a human based on runtime config
- Record every step to the audit trail
"""
