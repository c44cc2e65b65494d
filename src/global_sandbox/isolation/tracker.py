"""Registration tracker.

Hijacks the four registration functions a hosted program can reach
through its virtual namespace -- ``add_event_listener``,
``remove_event_listener``, ``set_timeout`` and ``set_interval`` -- so that
every listener and timer it creates is recorded in a
:class:`~global_sandbox.core.types.RegistrationLedger` and can be torn
down deterministically with :meth:`RegistrationTracker.release`.

The real registration is always performed on the host; the tracker only
keeps the books.
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from global_sandbox.core.types import (
    ADD_EVENT_LISTENER,
    REMOVE_EVENT_LISTENER,
    SET_INTERVAL,
    SET_TIMEOUT,
    RegistrationLedger,
    TimerId,
)

if TYPE_CHECKING:
    from global_sandbox.host.environment import GlobalEnvironment

logger = logging.getLogger(__name__)


class RegistrationTracker:
    """Records listener and timer registrations made through one sandbox.

    Parameters
    ----------
    host:
        The environment that performs the real registrations.
    ledger:
        Ledger to record into.  A fresh one is created when omitted.
    """

    def __init__(
        self,
        host: GlobalEnvironment,
        ledger: RegistrationLedger | None = None,
    ) -> None:
        self._host = host
        self.ledger = ledger if ledger is not None else RegistrationLedger()

    def hijacked(self) -> dict[str, Callable[..., Any]]:
        """Return the tracking functions keyed by the names they replace."""
        return {
            ADD_EVENT_LISTENER: self.add_event_listener,
            REMOVE_EVENT_LISTENER: self.remove_event_listener,
            SET_TIMEOUT: self.set_timeout,
            SET_INTERVAL: self.set_interval,
        }

    def add_event_listener(self, event: str, handler: Any, *rest: Any) -> Any:
        self.ledger.listeners.setdefault(event, []).append(handler)
        return self._host.add_event_listener(event, handler, *rest)

    def remove_event_listener(self, event: str, handler: Any, *rest: Any) -> Any:
        # The handler may have been registered outside the sandbox, so the
        # host removal is attempted regardless of the ledger.
        handlers = self.ledger.listeners.get(event, [])
        if handler in handlers:
            handlers.remove(handler)
        return self._host.remove_event_listener(event, handler, *rest)

    def set_timeout(self, *args: Any) -> TimerId:
        timer_id = self._host.set_timeout(*args)
        self.ledger.timeouts.add(timer_id)
        return timer_id

    def set_interval(self, *args: Any) -> TimerId:
        timer_id = self._host.set_interval(*args)
        self.ledger.intervals.add(timer_id)
        return timer_id

    def release(self) -> None:
        """Undo every recorded registration on the host.

        The ledger itself is left intact for diagnostics.  Cancellation is
        best-effort: callbacks that already ran are not undone.
        """
        ledger = self.ledger
        for event, handlers in ledger.listeners.items():
            for handler in handlers:
                self._host.remove_event_listener(event, handler)
        for timer_id in ledger.timeouts:
            self._host.clear_timeout(timer_id)
        for timer_id in ledger.intervals:
            self._host.clear_interval(timer_id)
        logger.debug(
            "released %d listener(s), %d timeout(s), %d interval(s)",
            sum(len(h) for h in ledger.listeners.values()),
            len(ledger.timeouts),
            len(ledger.intervals),
        )
