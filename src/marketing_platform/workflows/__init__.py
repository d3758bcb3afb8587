"""
Workflows: trigger criteria matching and event-driven triggering.
"""

from marketing_platform.workflows.models import EventType, TriggerType, Workflow

__all__ = ["EventType", "TriggerType", "Workflow"]
