"""
Orchestration package coordinating the Convert and Export phases.
"""

from .migration_orchestrator import MigrationOrchestrator

__all__ = [
    'MigrationOrchestrator'
]
