"""Core data types: variables, test steps, test cases, suites and results."""

from __future__ import annotations

import math
import os
import unicodedata
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

_YELLOW = "\x1b[33m"
_RESET = "\x1b[0m"

# Whitespace characters outside the Z categories that are kept as they are.
_EXTRA_SPACE = frozenset("\t\n\v\f\r\x85")


def colour_enabled() -> bool:
    """Return True unless the IS_TTY environment variable disables colours."""
    value = os.environ.get("IS_TTY", "")
    return value == "" or value.lower() == "true" or value == "1"


def _yellow(text: str) -> str:
    return f"{_YELLOW}{text}{_RESET}" if colour_enabled() else text


class H(dict):
    """A mapping of variable names to values."""

    def clone(self) -> H:
        """Return a shallow copy."""
        return H(self)

    def add(self, key: str, value: Any) -> None:
        self[key] = value

    def add_with_prefix(self, prefix: str, key: str, value: Any) -> None:
        self[f"{prefix}.{key}"] = value

    def add_all(self, other: dict | None) -> None:
        if other:
            self.update(other)

    def add_all_with_prefix(self, prefix: str, other: dict | None) -> None:
        if other is None:
            return
        for key, value in other.items():
            self.add_with_prefix(prefix, key, value)


def _format_float(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    return format(Decimal(repr(value)).normalize(), "f")


def _to_string(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return _format_float(value)
    if isinstance(value, Decimal):
        return format(value, "f")
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    if isinstance(value, BaseException):
        return str(value)
    raise TypeError(f"unable to convert {type(value).__name__} to string")


def _sprint(value: Any) -> str:
    if value is None:
        return "<nil>"
    try:
        return _to_string(value)
    except TypeError:
        return str(value)


def _to_int(value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, (float, Decimal)):
        if isinstance(value, float) and not math.isfinite(value):
            raise ValueError("not a finite number")
        return int(value)
    if isinstance(value, str):
        if value != value.strip() or not value:
            raise ValueError(f"invalid integer {value!r}")
        digits = value.lstrip("+-")
        if len(digits) > 1 and digits[0] == "0" and digits[1] in "01234567_":
            return int(value[: len(value) - len(digits)] + digits[1:], 8)
        return int(value, 0)
    raise TypeError(f"unable to convert {type(value).__name__} to int")


def _to_string_slice(value: Any) -> list[str]:
    if isinstance(value, str):
        return value.split()
    if isinstance(value, (list, tuple)):
        return [_sprint(item) for item in value]
    raise TypeError(f"unable to convert {type(value).__name__} to a string list")


class TestStep(dict):
    """A raw test step: a mapping of attribute names to values."""

    __test__ = False

    def int_value(self, name: str) -> int:
        """Return the attribute as an integer; a missing attribute is 0."""
        try:
            return _to_int(self.get(name))
        except (TypeError, ValueError):
            raise ValueError(f'attribute "{name}" is not an integer') from None

    def string_value(self, name: str) -> str:
        """Return the attribute as a string; a missing attribute is empty."""
        try:
            return _to_string(self.get(name))
        except TypeError:
            raise ValueError(f'attribute "{name}" is not an string') from None

    def string_slice_value(self, name: str) -> list[str]:
        """Return the attribute as a list of strings.

        A single string becomes a one-element list, an empty one an empty list.
        """
        raw = self.get(name)
        try:
            text = _to_string(raw)
        except TypeError:
            try:
                return _to_string_slice(raw)
            except TypeError:
                raise ValueError(
                    f'attribute "{name}" is neither a string nor a string array'
                ) from None
        return [text] if text else []


@dataclass
class StepAssertions:
    """Assertions of a step: strings, or mappings for logical operators."""

    assertions: list[Any] = field(default_factory=list)


@dataclass
class Property:
    name: str = ""
    value: str = ""


@dataclass
class Skipped:
    value: str = ""


@dataclass
class InnerResult:
    value: str = ""


@dataclass
class Failure:
    """A failed assertion or an error of a test case."""

    testcase_classname: str = ""
    testcase_name: str = ""
    testcase_line_number: int = 0
    step_number: int = 0
    assertion: str = ""
    assertion_required: bool = False
    error: BaseException | None = None
    value: str = ""
    type: str = ""
    message: str = ""

    def __str__(self) -> str:
        if self.value:
            return _yellow(self.value)
        if self.error is not None:
            return _yellow(str(self.error))
        return self.message


@dataclass
class TestCase:
    """A single test case with its result."""

    __test__ = False

    classname: str = ""
    errors: list[Failure] = field(default_factory=list)
    failures: list[Failure] = field(default_factory=list)
    name: str = ""
    original_name: str = ""
    skipped: list[Skipped] = field(default_factory=list)
    status: str = ""
    systemout: InnerResult = field(default_factory=InnerResult)
    systemerr: InnerResult = field(default_factory=InnerResult)
    time: float = 0.0
    raw_test_steps: list[Any] = field(default_factory=list)
    test_steps: list[TestStep] = field(default_factory=list)
    test_suite_vars: H = field(default_factory=H)
    vars: H = field(default_factory=H)
    computed_vars: H = field(default_factory=H)
    computed_info: list[str] = field(default_factory=list)
    computed_verbose: list[str] = field(default_factory=list)
    skip: list[str] = field(default_factory=list)
    is_executor: bool = False
    is_evaluated: bool = False

    def append_error(self, err: BaseException | str) -> None:
        """Record an error, with unprintable characters blanked out."""
        self.errors.append(Failure(value=remove_not_printable_char(str(err))))


@dataclass
class TestSuite:
    """A JUnit-style test suite holding many test cases."""

    __test__ = False

    disabled: int = 0
    errors: int = 0
    failures: int = 0
    hostname: str = ""
    id: str = ""
    name: str = ""
    filename: str = ""
    package: str = ""
    properties: list[Property] = field(default_factory=list)
    skipped: int = 0
    total: int = 0
    test_cases: list[TestCase] = field(default_factory=list)
    version: str = ""
    time: str = ""
    timestamp: str = ""
    vars: H = field(default_factory=H)
    computed_vars: H = field(default_factory=H)
    work_dir: str = ""


@dataclass
class Tests:
    """All test suites of a run, with totals."""

    __test__ = False

    total: int = 0
    total_ok: int = 0
    total_ko: int = 0
    total_skipped: int = 0
    test_suites: list[TestSuite] = field(default_factory=list)


@dataclass
class RangeData:
    key: str = ""
    value: Any = None


@dataclass
class Range:
    """Iterable user values of a step."""

    enabled: bool = False
    items: list[RangeData] = field(default_factory=list)
    raw_content: Any = None


@dataclass
class Assignment:
    from_: str = ""
    regex: str = ""


@dataclass
class AssignStep:
    assignments: dict[str, Assignment] = field(default_factory=dict)


def remove_not_printable_char(text: str) -> str:
    """Replace every character that is neither printable nor space with a blank."""

    def keep(ch: str) -> bool:
        return ch in _EXTRA_SPACE or unicodedata.category(ch)[0] in "LMNPSZ"

    return "".join(ch if keep(ch) else " " for ch in text)