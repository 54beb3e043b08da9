"""Executors and the runner that wraps them with retry and timing settings."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from venom.types import H, StepAssertions, TestStep


class ExecutorError(Exception):
    """Raised when an executor cannot perform a step."""


class Executor(ABC):
    """Something that runs a test step and returns its result."""

    @abstractmethod
    def run(self, context: Any, step: TestStep) -> Any:
        """Run a test step and return its result."""


@dataclass
class ExecutorRunner:
    """An executor together with the settings of the step that uses it."""

    executor: Any = None
    name: str = ""
    kind: str = "builtin"
    retry: int = 0
    retry_if: list[str] = field(default_factory=list)
    delay: int = 0
    timeout: int = 0
    info: list[str] = field(default_factory=list)

    def _hook(self, name: str):
        if self.executor is None:
            return None
        hook = getattr(self.executor, name, None)
        return hook if callable(hook) else None

    def _has_setup(self) -> bool:
        return self._hook("setup") is not None and self._hook("tear_down") is not None

    def get_default_assertions(self) -> StepAssertions | None:
        hook = self._hook("get_default_assertions")
        return hook() if hook else None

    def zero_value_result(self) -> Any:
        hook = self._hook("zero_value_result")
        return hook() if hook else None

    def setup(self, context: Any, variables: H) -> Any:
        """Let the executor prepare itself; return the context to use."""
        if not self._has_setup():
            return context
        return self.executor.setup(context, variables)

    def tear_down(self, context: Any) -> None:
        if self._has_setup():
            self.executor.tear_down(context)

    def run(self, context: Any, step: TestStep) -> Any:
        if self.executor is None:
            return None
        return self.executor.run(context, step)


@dataclass
class UserExecutor(Executor):
    """An executor defined in a YAML file as a sequence of steps."""

    executor: str = ""
    input: H = field(default_factory=H)
    raw_test_steps: list[Any] = field(default_factory=list)
    output: Any = None
    filename: str = ""

    def run(self, context: Any, step: TestStep) -> Any:
        raise ExecutorError(
            "run is not available on a user executor, its steps must be run instead"
        )

    def zero_value_result(self) -> Any:
        """Return the declared output under "result", or "" if it cannot be encoded."""
        try:
            encoded = json.dumps({"result": self.output}, allow_nan=False)
            return json.loads(encoded)
        except (TypeError, ValueError):
            return ""