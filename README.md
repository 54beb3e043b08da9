# venom

Building blocks for declarative integration test suites: a data model for
suites and their results, a registry that finds the executor for each test
step, and writers that turn results into JUnit XML, JSON, YAML or TAP.

## Modules

- `venom.types`: the data model.
  - `H` is a variables dictionary with `clone`, `add`, `add_with_prefix`, `add_all` and `add_all_with_prefix`.
  - `TestStep` is a step mapping with `int_value`, `string_value` and `string_slice_value`. A missing attribute gives `0`, `""` or `[]`. A value that cannot be converted raises `ValueError`.
  - Also here: `TestCase` (whose `append_error` records an error), `TestSuite`, `Tests`, `Failure`, `Skipped`, `InnerResult`, `Property`, `StepAssertions`, `Range`, `RangeData`, `Assignment` and `AssignStep`.
  - `remove_not_printable_char` replaces unprintable characters with blanks.
- `venom.executor`:
  - `Executor` is the abstract base with a `run(context, step)` method.
  - `ExecutorRunner` wraps an executor together with its `name`, `kind`, `retry`, `retry_if`, `delay`, `timeout` and `info`. It forwards `run`, `setup`, `tear_down`, `get_default_assertions` and `zero_value_result` to the executor whenever the executor provides them.
  - `UserExecutor` holds an executor declared in a YAML file. Its `run` raises `ExecutorError`, and its `zero_value_result` returns `{"result": output}`.
- `venom.core`:
  - `Venom` holds variables and the registries of builtin, plugin and user executors.
  - `StepContext` is an immutable key/value context.
  - The helpers `var_from_ctx`, `string_var_from_ctx`, `string_slice_var_from_ctx`, `int_var_from_ctx`, `bool_var_from_ctx`, `string_map_interface_var_from_ctx`, `string_map_string_var_from_ctx` and `all_vars_from_ctx` read values from a context.
  - `json_unmarshal` decodes JSON and keeps decimals exact.
- `venom.output`: `tests_to_dict`, `tests_to_json`, `tests_to_yaml`, `tests_to_xml`, `output_tap_format` and `write_results`.

## Installation

```
pip install .
```

To install the test dependencies as well:

```
pip install .[test]
```

## Example

```python
from venom.core import Venom, StepContext, string_var_from_ctx
from venom.executor import Executor
from venom.types import TestStep, H


class Echo(Executor):
    def run(self, context, step):
        return {"echo": step.string_value("message")}


v = Venom()
v.register_executor_builtin("echo", Echo())

step = TestStep({"type": "echo", "message": "hello"})
ctx, runner = v.get_executor_runner(StepContext(), step, H({"name": "world"}))

print(runner.run(ctx, step))              # {'echo': 'hello'}
print(string_var_from_ctx(ctx, "name"))   # world
```

## Finding executors

`Venom.get_executor_runner(context, step, variables)` returns a new context and an `ExecutorRunner`.

Variables are flattened into dotted keys with string values. The returned context holds each of them as `var.<key>`, and the list of keys as `vars`.

The executor is chosen as follows:

- The executor name comes from the step's `type`. A step that has a `script` but no `type` uses `exec`.
- A step with no name gets a runner that wraps no executor.
- Builtin executors are looked up first.
- Next come user executors. They are read from every `.yml` or `.yaml` file under the directories in `lib_dir` (separated by `os.pathsep`) and under `<venom.testsuite.workdir>/lib`. The `{{ .key }}` placeholders in those files are filled in from the step variables and from the file's own `input` defaults.
- After that come executors registered with `register_executor_plugin`.

An unknown name raises `ExecutorError`. A `retry`, `delay`, `timeout` or `retry_if` value that cannot be converted raises `ValueError`.

## Writing results

Set `output_dir`, and optionally `output_format`, on a `Venom` instance. Then call `output_result(tests, elapsed)`.

The formats are `xml` (the default), `json`, `yaml`/`yml` and `tap`. Results are written to `test_results.<format>` in the output directory. Only test cases whose `is_evaluated` is true are included. The method returns the path it wrote, or `None` when no output directory is set. A file that cannot be written raises `venom.output.OutputError`.

## What this package does not do

- It does not read test suite files.
- It does not run test cases, steps or assertions.
- It does not load executor plugins from shared libraries. Plugin executors must be registered with `register_executor_plugin`.
- It provides no command-line tool.

It supplies the types, the executor lookup and the result writers that such a runner would build on.

## Running the tests

```
pytest
```