# Copyright 2025 Vijaykumar Singh <singhvjd@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.


"""Execution observers.

The executor reports every lifecycle event to one ``ExecutionObserver``.
The base class implements every callback as a no-op, so observers only
override what they care about. A failing observer never breaks a run;
its exception is logged at debug level.

Observers:
    ExecutionObserver  - no-op base
    LoggingObserver    - logs each event through ``logging``
    RecordingObserver  - keeps an ordered list of ``ObservedEvent``
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence

from stepgraph.core.value import Value

if TYPE_CHECKING:
    from stepgraph.framework.executor import ExecutionResult

logger = logging.getLogger(__name__)


class ExecutionObserver:
    """Base observer; every callback does nothing."""

    def on_run_start(self, entry_point: str, max_steps: int) -> None:
        pass

    def on_step_start(self, step: int, frontier: Sequence[str]) -> None:
        pass

    def on_node_start(self, node: str, step: int) -> None:
        pass

    def on_node_retry(
        self, node: str, step: int, attempt: int, delay: float, error: Optional[Exception]
    ) -> None:
        pass

    def on_node_complete(self, node: str, step: int, value: Value) -> None:
        pass

    def on_node_failed(self, node: str, step: int, error: BaseException) -> None:
        pass

    def on_step_complete(self, step: int, executed: Sequence[str]) -> None:
        pass

    def on_run_complete(self, result: "ExecutionResult") -> None:
        pass


class LoggingObserver(ExecutionObserver):
    """Observer that logs execution events."""

    def __init__(self, logger_name: str = __name__):
        self._logger = logging.getLogger(logger_name)

    def on_run_start(self, entry_point: str, max_steps: int) -> None:
        self._logger.info(f"[run] start at '{entry_point}' (max_steps={max_steps})")

    def on_step_start(self, step: int, frontier: Sequence[str]) -> None:
        self._logger.debug(f"[step {step}] frontier={list(frontier)}")

    def on_node_start(self, node: str, step: int) -> None:
        self._logger.debug(f"[step {step}] {node} started")

    def on_node_retry(
        self, node: str, step: int, attempt: int, delay: float, error: Optional[Exception]
    ) -> None:
        self._logger.warning(
            f"[step {step}] {node} attempt {attempt} failed ({error}); retrying in {delay:.3f}s"
        )

    def on_node_complete(self, node: str, step: int, value: Value) -> None:
        self._logger.debug(f"[step {step}] {node} -> {value!r}")

    def on_node_failed(self, node: str, step: int, error: BaseException) -> None:
        self._logger.error(f"[step {step}] {node} failed: {error}")

    def on_step_complete(self, step: int, executed: Sequence[str]) -> None:
        self._logger.debug(f"[step {step}] committed {list(executed)}")

    def on_run_complete(self, result: "ExecutionResult") -> None:
        self._logger.info(
            f"[run] done: steps={result.steps} completed={result.completed_nodes} "
            f"bound_exceeded={result.bound_exceeded} ({result.duration:.3f}s)"
        )


@dataclass
class ObservedEvent:
    """One callback invocation seen by a RecordingObserver."""

    name: str
    payload: Dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)


class RecordingObserver(ExecutionObserver):
    """Observer that records every event in order."""

    def __init__(self) -> None:
        self.events: List[ObservedEvent] = []

    def _record(self, name: str, **payload: Any) -> None:
        self.events.append(ObservedEvent(name=name, payload=payload))

    def names(self) -> List[str]:
        return [event.name for event in self.events]

    def of(self, name: str) -> List[ObservedEvent]:
        return [event for event in self.events if event.name == name]

    def on_run_start(self, entry_point: str, max_steps: int) -> None:
        self._record("run_start", entry_point=entry_point, max_steps=max_steps)

    def on_step_start(self, step: int, frontier: Sequence[str]) -> None:
        self._record("step_start", step=step, frontier=list(frontier))

    def on_node_start(self, node: str, step: int) -> None:
        self._record("node_start", node=node, step=step)

    def on_node_retry(
        self, node: str, step: int, attempt: int, delay: float, error: Optional[Exception]
    ) -> None:
        self._record("node_retry", node=node, step=step, attempt=attempt, delay=delay, error=error)

    def on_node_complete(self, node: str, step: int, value: Value) -> None:
        self._record("node_complete", node=node, step=step, value=value)

    def on_node_failed(self, node: str, step: int, error: BaseException) -> None:
        self._record("node_failed", node=node, step=step, error=error)

    def on_step_complete(self, step: int, executed: Sequence[str]) -> None:
        self._record("step_complete", step=step, executed=list(executed))

    def on_run_complete(self, result: "ExecutionResult") -> None:
        self._record("run_complete", result=result)


def notify(observer: Optional[ExecutionObserver], event: str, *args: Any) -> None:
    """Call ``observer.on_<event>(*args)``, logging and dropping any failure."""
    if observer is None:
        return
    try:
        getattr(observer, f"on_{event}")(*args)
    except Exception as e:
        logger.debug(f"Observer {type(observer).__name__}.on_{event} failed: {e}")


__all__ = [
    "ExecutionObserver",
    "LoggingObserver",
    "ObservedEvent",
    "RecordingObserver",
    "notify",
]
