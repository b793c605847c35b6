"""Event routing and scheduling.

Key Components:
    - EventDispatcher: Routes webhook events to plugin handlers
    - EventContext: Per-event data handed to handlers
    - SweepScheduler: Dispatches periodic schedule events
"""

from repo_custodian.engine.context import EventContext
from repo_custodian.engine.dispatcher import DispatchResult, EventDispatcher, Registration
from repo_custodian.engine.scheduler import SweepScheduler

__all__ = ["DispatchResult", "EventContext", "EventDispatcher", "Registration", "SweepScheduler"]
