"""The test runner state: variables, executor registries and step contexts."""

from __future__ import annotations

import json
import logging
import os
import re
import sys
from decimal import Decimal
from typing import Any, Callable

import yaml

from venom.executor import ExecutorError, ExecutorRunner, UserExecutor
from venom.output import write_results
from venom.types import (
    H,
    TestStep,
    Tests,
    _to_int,
    _to_string,
    _to_string_slice,
    colour_enabled,
)

VERSION = "snapshot"

logger = logging.getLogger(__name__)

_TEMPLATE = re.compile(r"\{\{\s*\.([A-Za-z0-9_.\-]+)\s*\}\}")
_TRUE_WORDS = frozenset({"1", "t", "T", "TRUE", "true", "True"})


class StepContext:
    """An immutable set of contextual values handed to executors."""

    __slots__ = ("_values",)

    def __init__(self, values: dict[str, Any] | None = None) -> None:
        self._values = dict(values or {})

    def with_value(self, key: str, value: Any) -> StepContext:
        """Return a new context that also holds key."""
        values = dict(self._values)
        values[key] = value
        return StepContext(values)

    def value(self, key: str) -> Any:
        return self._values.get(key)


def _printf(fmt: str, *args: Any) -> int:
    text = fmt % args if args else fmt
    sys.stdout.write(text)
    return len(text)


def _trace(text: str) -> str:
    return f"\x1b[90m{text}\x1b[0m" if colour_enabled() else text


def _scalar_text(value: Any) -> str:
    try:
        return _to_string(value)
    except TypeError:
        return json.dumps(value, default=str)


def _dump_vars(variables: dict | None) -> dict[str, str]:
    """Flatten nested mappings into dotted keys with string values."""
    flat: dict[str, str] = {}

    def walk(prefix: str, value: Any) -> None:
        if isinstance(value, dict) and value:
            for key, item in value.items():
                walk(f"{prefix}.{key}" if prefix else str(key), item)
        else:
            flat[prefix] = _scalar_text(value)

    for key, value in (variables or {}).items():
        walk(str(key), value)
    return flat


def _interpolate(text: str, variables: dict[str, str]) -> str:
    def substitute(match: re.Match) -> str:
        key = match.group(1)
        return variables[key] if key in variables else match.group(0)

    return _TEMPLATE.sub(substitute, text)


def _input_defaults(text: str, variables: dict[str, str]) -> dict[str, str]:
    """Return the default inputs declared by a user executor file, flattened."""
    for candidate in (text, _interpolate(text, variables)):
        try:
            doc = yaml.safe_load(candidate)
        except yaml.YAMLError:
            continue
        if isinstance(doc, dict) and isinstance(doc.get("input"), dict):
            return _dump_vars({"input": doc["input"]})
        return {}
    return {}


class Venom:
    """Holds variables and executors for a test run."""

    def __init__(
        self,
        *,
        lib_dir: str = "",
        output_format: str = "xml",
        output_dir: str = "",
        stop_on_failure: bool = False,
        verbose: int = 0,
        print_func: Callable[..., Any] | None = None,
        log_output: Any = None,
    ) -> None:
        self.lib_dir = lib_dir
        self.output_format = output_format
        self.output_dir = output_dir
        self.stop_on_failure = stop_on_failure
        self.verbose = verbose
        self.print_func = print_func or _printf
        self.log_output = log_output if log_output is not None else sys.stdout
        self.executors_builtin: dict[str, Any] = {}
        self.executors_plugin: dict[str, Any] = {}
        self.executors_user: dict[str, Any] = {}
        self.testsuites: list = []
        self.variables = H()

    def print(self, fmt: str, *args: Any) -> None:
        self.print_func(fmt, *args)

    def println(self, fmt: str, *args: Any) -> None:
        self.print_func(fmt + "\n", *args)

    def println_trace(self, text: str) -> None:
        self.println("\t  %s %s", _trace("[trac]"), _trace(text))

    def add_variables(self, variables: dict) -> None:
        self.variables.update(variables)

    def register_executor_builtin(self, name: str, executor: Any) -> None:
        self.executors_builtin[name] = executor

    def register_executor_plugin(self, name: str, executor: Any) -> None:
        self.executors_plugin[name] = executor

    def register_executor_user(self, name: str, executor: Any) -> None:
        self.executors_user[name] = executor

    def get_executor_runner(
        self, context: StepContext | None, step: TestStep, variables: dict | None
    ) -> tuple[StepContext, ExecutorRunner]:
        """Find the executor for a step; an untyped step with a script uses "exec".

        Returns the context enriched with the step variables, and the runner.
        """
        step = step if isinstance(step, TestStep) else TestStep(step)
        ctx = context if context is not None else StepContext()
        try:
            name = step.string_value("type")
        except ValueError:
            name = ""
        try:
            script = step.string_value("script")
        except ValueError:
            script = ""
        if not name and script:
            name = "exec"
        retry = step.int_value("retry")
        retry_if = step.string_slice_value("retry_if")
        delay = step.int_value("delay")
        timeout = step.int_value("timeout")
        try:
            info = step.string_slice_value("info")
        except ValueError:
            info = []

        flat = _dump_vars(variables)
        for key, value in flat.items():
            ctx = ctx.with_value(f"var.{key}", value)
        ctx = ctx.with_value("vars", list(flat))

        def runner(executor: Any, kind: str) -> ExecutorRunner:
            return ExecutorRunner(
                executor=executor, name=name, kind=kind, retry=retry,
                retry_if=retry_if, delay=delay, timeout=timeout, info=list(info),
            )

        if not name:
            return ctx, runner(None, "builtin")
        if name in self.executors_builtin:
            return ctx, runner(self.executors_builtin[name], "builtin")

        try:
            self._register_user_executors(flat)
        except (OSError, ValueError, yaml.YAMLError) as exc:
            logger.debug("executor %r is not implemented as user executor - err:%s", name, exc)
        if name in self.executors_user:
            return ctx, runner(self.executors_user[name], "user")
        if name in self.executors_plugin:
            return ctx, runner(self.executors_plugin[name], "plugin")
        raise ExecutorError(f'executor "{name}" is not implemented')

    def get_user_executor_files_path(self, variables: dict) -> list[str]:
        """Return the sorted YAML files found in the library directories."""
        libpaths = self.lib_dir.split(os.pathsep) if self.lib_dir else []
        libpaths.append(os.path.join(variables.get("venom.testsuite.workdir", ""), "lib"))

        found: list[str] = []
        for libpath in (p.strip() for p in libpaths):
            if os.path.isfile(libpath):
                candidates = [libpath]
            else:
                candidates = [
                    os.path.join(root, filename)
                    for root, _dirs, files in os.walk(libpath)
                    for filename in files
                ]
            found.extend(
                c for c in candidates if os.path.splitext(c)[1] in (".yml", ".yaml")
            )
        if not found:
            raise ValueError("no user executor yml file selected")
        return sorted(found)

    def _register_user_executors(self, variables: dict[str, str]) -> None:
        for path in self.get_user_executor_files_path(variables):
            logger.info("Reading %s", path)
            with open(path, encoding="utf-8") as handle:
                text = handle.read()
            computed = _input_defaults(text, variables)
            computed.update(variables)
            content = _interpolate(text, computed)
            try:
                doc = yaml.safe_load(content)
            except yaml.YAMLError as exc:
                raise ValueError(f"unable to parse file {path!r}: {exc}") from exc
            if not isinstance(doc, dict):
                raise ValueError(f"unable to parse file {path!r} with content {content}")
            executor = UserExecutor(
                executor=str(doc.get("executor") or ""),
                input=H(doc.get("input") or {}),
                raw_test_steps=list(doc.get("steps") or []),
                output=doc.get("output"),
                filename=path,
            )
            for key, value in computed.items():
                executor.input.add(key, value)
            self.register_executor_user(executor.executor, executor)

    def output_result(self, tests: Tests, elapsed: Any = None) -> str | None:
        """Write results when an output directory is set; return the file written."""
        if not self.output_dir:
            return None
        filename = write_results(tests, self.output_dir, self.output_format)
        self.print("Writing file %s\n", filename)
        return filename


def var_from_ctx(context: StepContext, varname: str) -> Any:
    return context.value(f"var.{varname}")


def _safe_string(value: Any) -> str:
    try:
        return _to_string(value)
    except TypeError:
        return ""


def _safe_slice(value: Any) -> list[str]:
    try:
        return _to_string_slice(value)
    except TypeError:
        return []


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float, Decimal)):
        return value != 0
    if isinstance(value, str):
        return value in _TRUE_WORDS
    return False


def _to_string_map(value: Any) -> dict[str, Any]:
    if isinstance(value, dict):
        return {str(k): v for k, v in value.items()}
    if isinstance(value, str):
        try:
            loaded = json.loads(value)
        except ValueError:
            return {}
        return loaded if isinstance(loaded, dict) else {}
    return {}


def string_var_from_ctx(context: StepContext, varname: str) -> str:
    return _safe_string(var_from_ctx(context, varname))


def string_slice_var_from_ctx(context: StepContext, varname: str) -> list[str]:
    return _safe_slice(var_from_ctx(context, varname))


def int_var_from_ctx(context: StepContext, varname: str) -> int:
    try:
        return _to_int(var_from_ctx(context, varname))
    except (TypeError, ValueError):
        return 0


def bool_var_from_ctx(context: StepContext, varname: str) -> bool:
    return _to_bool(var_from_ctx(context, varname))


def string_map_interface_var_from_ctx(context: StepContext, varname: str) -> dict[str, Any]:
    return _to_string_map(var_from_ctx(context, varname))


def string_map_string_var_from_ctx(context: StepContext, varname: str) -> dict[str, str]:
    return {k: _safe_string(v) for k, v in _to_string_map(var_from_ctx(context, varname)).items()}


def all_vars_from_ctx(context: StepContext) -> H:
    result = H()
    for key in _safe_slice(context.value("vars")):
        result.add(key, var_from_ctx(context, key))
    return result


def json_unmarshal(data: bytes | str) -> Any:
    """Decode the first JSON value, keeping decimal numbers exact."""
    text = data.decode("utf-8") if isinstance(data, (bytes, bytearray)) else data
    decoder = json.JSONDecoder(parse_float=Decimal)
    value, _end = decoder.raw_decode(text.lstrip())
    return value