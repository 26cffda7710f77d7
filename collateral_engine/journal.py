"""
journal.py - All-or-nothing execution and the audit trail

Every engine operation runs inside Journal.atomic(). While a scope is open,
each write the engine makes records its own undo step with the journal:

    - the ledgers record the inverse of each increase/decrease
    - the event log records the retraction of each emitted event
    - PositionManager records a compensating token call for each token
      effect it can reverse (collateral pulled into custody is sent back,
      synthetic tokens pulled and burned are minted back)

If the body raises, the steps recorded since the scope opened run in
reverse and the exception propagates unchanged. Rolling back therefore
costs what the operation touched, not the size of the books, and it never
overwrites state the engine did not write itself: another engine moving
the same token in the middle of the operation keeps its changes.

Some token effects cannot be reversed by the engine (collateral sent out of
custody, synthetic tokens minted). PositionManager performs them last, after
every check of the operation has passed, and then calls seal(): the scope's
recorded steps are dropped, so a failure further out does not undo ledger
entries whose token side has already happened.

Operations nest. A primitive called from a composite opens an inner scope;
an inner failure undoes only the inner scope's steps. Only the outermost
scope reports to the console.

A single re-entrant lock serializes all operations and queries across
threads. It is re-entrant so a collaborator calling back into the engine on
the same thread (a token transfer hook, say) proceeds and sees the
already-updated ledgers.
"""

from __future__ import annotations
from contextlib import contextmanager
from functools import partial
from typing import Any, Callable, Dict, Iterator, List, Optional
import threading

from .core import EngineEvent


UndoStep = Callable[[], Any]


class Journal:
    """
    Undo log and lock for one engine instance.

    Args:
        verbose: Print one line per outermost operation.
    """

    def __init__(self, verbose: bool = True):
        self.verbose = verbose
        self._lock = threading.RLock()
        self._undo: List[UndoStep] = []
        self._marks: List[int] = []

    @property
    def depth(self) -> int:
        """Nesting level of the operation currently running (0 when idle)."""
        return len(self._marks)

    @property
    def pending(self) -> int:
        """Undo steps recorded by the scopes currently open."""
        return len(self._undo)

    def record(self, undo: UndoStep) -> None:
        """Register the step that reverses a write just made. Ignored outside a scope."""
        if self._marks:
            self._undo.append(undo)

    def seal(self) -> None:
        """Make everything the innermost scope has done so far permanent."""
        if self._marks:
            del self._undo[self._marks[-1]:]

    def _rollback(self, mark: int) -> None:
        while len(self._undo) > mark:
            self._undo.pop()()

    @contextmanager
    def atomic(self, operation: str, detail: Optional[Dict[str, Any]] = None) -> Iterator[None]:
        """
        Run the body all-or-nothing.

        Example:
            with journal.atomic("deposit_collateral", {"user": "alice"}):
                ledger.increase("alice", "WETH", amount)
                if not token.transfer_from(...):
                    raise TransferFailed(...)
        """
        with self._lock:
            mark = len(self._undo)
            self._marks.append(mark)
            outermost = len(self._marks) == 1
            try:
                yield
            except BaseException as exc:
                self._rollback(mark)
                if outermost and self.verbose:
                    self._print_result(operation, detail, "✗", f"REJECTED: {type(exc).__name__}: {exc}")
                raise
            else:
                if outermost:
                    self._undo.clear()
                    if self.verbose:
                        self._print_result(operation, detail, "✓", "APPLIED")
            finally:
                self._marks.pop()

    @contextmanager
    def reading(self) -> Iterator[None]:
        """Hold the lock for a query so it never sees an operation half done."""
        with self._lock:
            yield

    @staticmethod
    def _print_result(operation: str, detail: Optional[Dict[str, Any]], icon: str, result: str) -> None:
        args = ", ".join(f"{k}={v}" for k, v in (detail or {}).items())
        print(f"{icon} {operation}({args}) {result}")

    def __repr__(self):
        return f"Journal(depth={self.depth}, pending={len(self._undo)})"


class EventLog:
    """
    Append-only list of emitted events.

    Emissions are recorded with the journal, so failed operations emit nothing.
    """

    def __init__(self, journal: Optional[Journal] = None):
        self.events: List[EngineEvent] = []
        self.journal = journal

    def emit(self, event_type: str, **data: Any) -> EngineEvent:
        event = EngineEvent(event_type=event_type, sequence_number=len(self.events), data=data)
        self.events.append(event)
        if self.journal is not None:
            self.journal.record(partial(self._retract, event))
        return event

    def _retract(self, event: EngineEvent) -> None:
        # Usually the last event; a sealed nested operation may have emitted after it.
        for index in range(len(self.events) - 1, -1, -1):
            if self.events[index] is event:
                del self.events[index]
                return

    def of_type(self, event_type: str) -> List[EngineEvent]:
        return [e for e in self.events if e.event_type == event_type]

    def __len__(self):
        return len(self.events)

    def __iter__(self):
        return iter(self.events)

    def __repr__(self):
        return f"EventLog({len(self.events)} events)"
