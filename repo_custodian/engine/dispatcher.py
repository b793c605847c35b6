"""
Routing of webhook events to plugin handlers.

Registrations are a static table built at startup. A handler that raises
is logged and counted as failed; it never stops the other handlers for the
same event.
"""

from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field

import structlog

from repo_custodian.config.settings import CustodianSettings
from repo_custodian.engine.context import EventContext
from repo_custodian.models.domain import WebhookEvent
from repo_custodian.providers.factory import ClientFactory

log = structlog.get_logger(__name__)

Handler = Callable[[EventContext], Awaitable[None]]


@dataclass(frozen=True)
class Registration:
    """One handler subscribed to one or more event patterns.

    A pattern is an event name (``status``) or ``name.action``
    (``issues.opened``).
    """

    plugin: str
    events: tuple[str, ...]
    handler: Handler

    def matches(self, event: WebhookEvent) -> bool:
        return event.name in self.events or event.qualified_name in self.events


@dataclass
class DispatchResult:
    """Outcome of dispatching one event."""

    event: str
    handled: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed


class EventDispatcher:
    """Runs every matching handler for an event, one after another."""

    def __init__(
        self,
        settings: CustodianSettings,
        clients: ClientFactory,
        registrations: Iterable[Registration] = (),
    ):
        self.settings = settings
        self.clients = clients
        self.registrations: list[Registration] = list(registrations)

    def handlers_for(self, event: WebhookEvent) -> list[Registration]:
        return [registration for registration in self.registrations if registration.matches(event)]

    async def dispatch(self, event: WebhookEvent) -> DispatchResult:
        """Dispatch ``event`` to its handlers.

        Errors obtaining the API client propagate; handler errors do not.
        """
        result = DispatchResult(event=event.qualified_name)
        matching = self.handlers_for(event)
        repository = event.repository
        event_log = log.bind(
            delivery=event.delivery_id,
            event=event.qualified_name,
            repository=repository.full_name if repository else None,
        )
        if not matching:
            event_log.debug("event_unhandled")
            return result

        github = await self.clients.client_for(event.installation_id)
        for registration in matching:
            ctx = EventContext(
                event=event,
                github=github,
                settings=self.settings,
                log=event_log.bind(plugin=registration.plugin),
            )
            handler_name = f"{registration.plugin}.{registration.handler.__name__}"
            try:
                await registration.handler(ctx)
            except Exception as e:
                event_log.error("handler_failed", handler=handler_name, error=str(e), exc_info=True)
                result.failed[handler_name] = str(e)
            else:
                result.handled.append(handler_name)

        event_log.info("event_dispatched", handled=len(result.handled), failed=len(result.failed))
        return result
