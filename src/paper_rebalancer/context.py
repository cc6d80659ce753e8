"""
Rebalance cycle context using ContextVar for async-safe context propagation.
"""

from contextvars import ContextVar
from typing import Optional

from pydantic import BaseModel


class CycleContext(BaseModel):
    """Identifies the rebalance cycle a log line belongs to"""
    cycle_id: str
    portfolio: str


# Context variable to store the current cycle across async boundaries
current_cycle: ContextVar[Optional[CycleContext]] = ContextVar('current_cycle', default=None)


def set_current_cycle(cycle: CycleContext) -> None:
    """Set the current cycle in the context."""
    current_cycle.set(cycle)


def get_current_cycle() -> Optional[CycleContext]:
    """Get the current cycle from the context."""
    return current_cycle.get()


def clear_current_cycle() -> None:
    """Clear the current cycle from the context."""
    current_cycle.set(None)
