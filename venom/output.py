"""Serialisation of test results to JSON, YAML, TAP and JUnit XML."""

from __future__ import annotations

import json
import os
from dataclasses import replace
from decimal import Decimal
from typing import Any

import yaml

from venom.types import Failure, InnerResult, Skipped, TestCase, Tests, TestSuite

XML_HEADER = '<?xml version="1.0" encoding="utf-8"?>'

_XML_ESCAPES = {
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&#34;",
    "'": "&#39;",
    "\t": "&#x9;",
    "\n": "&#xA;",
    "\r": "&#xD;",
}


class OutputError(Exception):
    """Raised when results cannot be written."""


def _plain(value: Any) -> Any:
    """Turn a value into something JSON and YAML encoders accept."""
    if isinstance(value, dict):
        return {str(k): _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return str(value)


def _failure_dict(failure: Failure) -> dict[str, Any]:
    return {"value": failure.value, "type": failure.type, "message": failure.message}


def _case_dict(case: TestCase) -> dict[str, Any]:
    return {
        "classname": case.classname,
        "errors": [_failure_dict(f) for f in case.errors],
        "failures": [_failure_dict(f) for f in case.failures],
        "name": case.name,
        "skipped": [{"value": s.value} for s in case.skipped],
        "status": case.status,
        "systemout": {"value": case.systemout.value},
        "systemerr": {"value": case.systemerr.value},
        "time": case.time,
        "steps": _plain(case.raw_test_steps),
        "skip": list(case.skip),
    }


def _suite_dict(suite: TestSuite) -> dict[str, Any]:
    return {
        "disabled": suite.disabled,
        "errors": suite.errors,
        "failures": suite.failures,
        "hostname": suite.hostname,
        "id": suite.id,
        "name": suite.name,
        "package": suite.package,
        "properties": [{"name": p.name, "value": p.value} for p in suite.properties],
        "skipped": suite.skipped,
        "total": suite.total,
        "testcases": [_case_dict(c) for c in suite.test_cases],
        "version": suite.version,
        "time": suite.time,
        "timestamp": suite.timestamp,
    }


def tests_to_dict(tests: Tests) -> dict[str, Any]:
    """Return the JSON shape of the results."""
    return {
        "total": tests.total,
        "ok": tests.total_ok,
        "ko": tests.total_ko,
        "skipped": tests.total_skipped,
        "test_suites": [_suite_dict(s) for s in tests.test_suites],
    }


def tests_to_json(tests: Tests) -> str:
    return json.dumps(tests_to_dict(tests), indent=2)


def _omit_empty(mapping: dict[str, Any], *keys: str) -> dict[str, Any]:
    return {k: v for k, v in mapping.items() if k not in keys or v}


def _yaml_failure(failure: Failure) -> dict[str, Any]:
    return _omit_empty(_failure_dict(failure), "value", "type", "message")


def _yaml_inner(result: InnerResult) -> dict[str, Any]:
    return {"value": result.value}


def _yaml_case(case: TestCase) -> dict[str, Any]:
    data = {
        "errors": [_yaml_failure(f) for f in case.errors],
        "failures": [_yaml_failure(f) for f in case.failures],
        "name": case.name,
        "skipped": [_omit_empty({"value": s.value}, "value") for s in case.skipped],
        "status": case.status,
        "systemout": _yaml_inner(case.systemout) if case.systemout.value else None,
        "systemerr": _yaml_inner(case.systemerr) if case.systemerr.value else None,
        "time": case.time,
        "steps": _plain(case.raw_test_steps),
        "vars": _plain(dict(case.vars)),
        "skip": list(case.skip),
    }
    return _omit_empty(
        data, "errors", "failures", "skipped", "status", "systemout", "systemerr", "time"
    )


def _yaml_suite(suite: TestSuite) -> dict[str, Any]:
    data = {
        "disabled": suite.disabled,
        "name": suite.name,
        "skipped": suite.skipped,
        "total": suite.total,
        "testcases": [_yaml_case(c) for c in suite.test_cases],
        "version": suite.version,
        "vars": _plain(dict(suite.vars)),
    }
    return _omit_empty(data, "skipped", "total", "version")


def tests_to_yaml(tests: Tests) -> str:
    data = {
        "total": tests.total,
        "totalok": tests.total_ok,
        "totalko": tests.total_ko,
        "totalskipped": tests.total_skipped,
        "testsuites": [_yaml_suite(s) for s in tests.test_suites],
    }
    return yaml.safe_dump(
        data, sort_keys=False, allow_unicode=True, default_flow_style=False
    )


def _escape(text: str) -> str:
    return "".join(_XML_ESCAPES.get(ch, ch) for ch in text)


def _cdata(text: str) -> str:
    if not text:
        return ""
    return "<![CDATA[" + text.replace("]]>", "]]]]><![CDATA[>") + "]]>"


def _go_float(value: float) -> str:
    text = repr(float(value))
    return text[:-2] if text.endswith(".0") else text


class _Node:
    def __init__(self, tag: str, attrs: list[tuple[str, str]] | None = None,
                 children: list[_Node] | None = None, text: str = "") -> None:
        self.tag = tag
        self.attrs = attrs or []
        self.children = children or []
        self.text = text

    def render(self, depth: int, lines: list[str]) -> None:
        indent = "  " * depth
        attrs = "".join(f' {k}="{_escape(v)}"' for k, v in self.attrs)
        opening, closing = f"<{self.tag}{attrs}>", f"</{self.tag}>"
        if self.children:
            lines.append(indent + opening)
            for child in self.children:
                child.render(depth + 1, lines)
            lines.append(indent + closing)
        else:
            lines.append(indent + opening + self.text + closing)


def _attrs(*pairs: tuple[str, Any, bool]) -> list[tuple[str, str]]:
    """Build attributes from (name, value, always) triples, dropping empty optional ones."""
    return [(name, str(value)) for name, value, always in pairs if always or value]


def _failure_node(tag: str, failure: Failure) -> _Node:
    return _Node(
        tag,
        _attrs(("type", failure.type, False), ("message", failure.message, False)),
        text=_cdata(failure.value),
    )


def _case_node(case: TestCase) -> _Node:
    children = [_failure_node("error", f) for f in case.errors]
    children += [_failure_node("failure", f) for f in case.failures]
    children += [_Node("skipped", text=_cdata(s.value)) for s in case.skipped]
    children.append(_Node("system-out", text=_cdata(case.systemout.value)))
    children.append(_Node("system-err", text=_cdata(case.systemerr.value)))
    attrs = _attrs(
        ("classname", case.classname, False),
        ("name", case.name, True),
        ("status", case.status, False),
    )
    if case.time:
        attrs.append(("time", _go_float(case.time)))
    return _Node("testcase", attrs, children)


def _suite_node(suite: TestSuite) -> _Node:
    attrs = _attrs(
        ("disabled", suite.disabled, False),
        ("errors", suite.errors, False),
        ("failures", suite.failures, False),
        ("hostname", suite.hostname, False),
        ("id", suite.id, False),
        ("name", suite.name, True),
        ("package", suite.package, False),
        ("skipped", suite.skipped, False),
        ("tests", suite.total, True),
        ("time", suite.time, False),
        ("timestamp", suite.timestamp, False),
    )
    children = [_case_node(c) for c in suite.test_cases]
    if suite.version:
        children.append(_Node("version", text=_escape(suite.version)))
    return _Node("testsuite", attrs, children)


def tests_to_xml(tests: Tests) -> str:
    """Return the JUnit XML document, declaration included."""
    root = _Node("testsuites", children=[_suite_node(s) for s in tests.test_suites])
    lines: list[str] = []
    root.render(0, lines)
    return XML_HEADER + "\n".join(lines)


def output_tap_format(tests: Tests) -> str:
    """Return the results in TAP version 13."""
    lines = ["TAP version 13"]
    if tests.total > 0:
        lines.append(f"1..{tests.total}")
    number = 1

    def diagnostic(message: str) -> None:
        lines.append("# " + message.rstrip("\n").replace("\n", "\n# "))

    for suite in tests.test_suites:
        for case in suite.test_cases:
            name = f"{suite.name} / {case.name}"
            if case.skipped:
                lines.append(f"ok {number} # SKIP {name}")
            elif case.errors:
                lines.append(f"not ok {number} - {name}")
                for failure in case.errors:
                    diagnostic(f"Error: {failure.value}")
            elif case.failures:
                lines.append(f"not ok {number} - {name}")
                for failure in case.failures:
                    diagnostic(f"Failure: {failure.value}")
            else:
                lines.append(f"ok {number} - {name}")
            number += 1
    return "\n".join(lines) + "\n"


def _evaluated_only(tests: Tests) -> Tests:
    suites = [
        replace(suite, test_cases=[c for c in suite.test_cases if c.is_evaluated])
        for suite in tests.test_suites
    ]
    return replace(tests, test_suites=suites)


def write_results(tests: Tests, output_dir: str, output_format: str) -> str:
    """Write evaluated test cases to test_results.<format> and return the path."""
    filtered = _evaluated_only(tests)
    if output_format == "json":
        data = tests_to_json(filtered)
    elif output_format == "tap":
        data = output_tap_format(filtered)
    elif output_format in ("yml", "yaml"):
        data = tests_to_yaml(filtered)
    else:
        data = tests_to_xml(filtered)

    filename = os.path.join(output_dir, f"test_results.{output_format}")
    try:
        fd = os.open(filename, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "wb") as handle:
            handle.write(data.encode("utf-8"))
    except OSError as exc:
        raise OutputError(f"Error while creating file {filename}: {exc}") from exc
    return filename