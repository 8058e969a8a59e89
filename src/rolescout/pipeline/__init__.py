"""Escalation ladder and the orchestrator that drives it."""

from rolescout.pipeline.orchestrator import (
    RoleDiscoveryOrchestrator,
    discover_roles,
    discover_roles_sync,
)

__all__ = ["RoleDiscoveryOrchestrator", "discover_roles", "discover_roles_sync"]
