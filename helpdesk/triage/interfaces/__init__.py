"""
Triage Interfaces Layer
========================

Interface adapters (controllers) for ticket triage module.

Contains:
- Controllers: FastAPI route handlers for triage, tickets, KB search and config
- Dependencies: providers wiring repositories into services
"""

from helpdesk.triage.interfaces.controllers import triage_router
from helpdesk.triage.interfaces.tickets import tickets_router
from helpdesk.triage.interfaces.kb import kb_router
from helpdesk.triage.interfaces.admin import config_router

__all__ = ["triage_router", "tickets_router", "kb_router", "config_router"]
