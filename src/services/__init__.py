"""
Service Layer Package

Business logic services sitting between the presentation layer and the
persistence collaborator.

Core Services:
- ProgressionService: quest/task progression, bonuses, XP ledger, history
"""

from src.services.container import ServiceContainer, get_container, init_container
from src.services.progression_service import ProgressionService, OperationResult

__all__ = [
    "ServiceContainer",
    "get_container",
    "init_container",
    "ProgressionService",
    "OperationResult",
]
