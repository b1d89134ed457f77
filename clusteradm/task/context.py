"""Per-host execution context."""

import threading
from typing import Optional

from ..exec.module import Module
from .store import SharedStore


class Context:
    """
    Binds one host's Module to the run's shared store.

    A context is owned by the thread running that host's task; only the
    store (and the audit recorder behind the module) is shared.
    """

    def __init__(self, module: Module, store: Optional[SharedStore] = None,
                 cancel_event: Optional[threading.Event] = None):
        self._module = module
        self._store = store if store is not None else SharedStore()
        self._cancel_event = cancel_event or threading.Event()

    @property
    def host(self) -> str:
        return self._module.host

    def module(self) -> Module:
        return self._module

    def store(self) -> SharedStore:
        return self._store

    def cancel_event(self) -> threading.Event:
        return self._cancel_event

    def cancelled(self) -> bool:
        return self._cancel_event.is_set()
