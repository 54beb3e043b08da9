import pytest

from venom.executor import Executor, ExecutorError, ExecutorRunner, UserExecutor
from venom.types import H, StepAssertions, TestStep


class FullExecutor(Executor):
    def __init__(self):
        self.torn_down = []

    def run(self, context, step):
        return {"echo": step.get("x"), "ctx": context}

    def get_default_assertions(self):
        return StepAssertions(assertions=["result.code ShouldEqual 0"])

    def zero_value_result(self):
        return {"code": 0}

    def setup(self, context, variables):
        return {"parent": context, "vars": dict(variables)}

    def tear_down(self, context):
        self.torn_down.append(context)


class BareExecutor(Executor):
    def run(self, context, step):
        return step.string_value("x")


class SetupOnlyExecutor(Executor):
    def run(self, context, step):
        return None

    def setup(self, context, variables):
        return "changed"


class FailingTearDown(FullExecutor):
    def tear_down(self, context):
        raise RuntimeError("teardown failed")


def test_runner_without_executor():
    runner = ExecutorRunner(name="", kind="builtin")
    assert runner.run("ctx", TestStep()) is None
    assert runner.setup("ctx", H()) == "ctx"
    assert runner.tear_down("ctx") is None
    assert runner.get_default_assertions() is None
    assert runner.zero_value_result() is None


def test_runner_delegates_to_full_executor():
    executor = FullExecutor()
    runner = ExecutorRunner(executor=executor, name="full", retry=3, delay=1)
    assert runner.run("ctx", TestStep(x=5)) == {"echo": 5, "ctx": "ctx"}
    assert runner.get_default_assertions().assertions == ["result.code ShouldEqual 0"]
    assert runner.zero_value_result() == {"code": 0}
    assert runner.setup("ctx", H(a=1)) == {"parent": "ctx", "vars": {"a": 1}}
    runner.tear_down("ctx")
    assert executor.torn_down == ["ctx"]
    assert runner.retry == 3 and runner.delay == 1


def test_runner_with_bare_executor_uses_defaults():
    runner = ExecutorRunner(executor=BareExecutor(), name="bare")
    assert runner.run(None, TestStep(x="hi")) == "hi"
    assert runner.get_default_assertions() is None
    assert runner.zero_value_result() is None
    assert runner.setup("ctx", H()) == "ctx"


def test_setup_requires_tear_down_too():
    runner = ExecutorRunner(executor=SetupOnlyExecutor())
    assert runner.setup("ctx", H()) == "ctx"


def test_tear_down_error_propagates():
    runner = ExecutorRunner(executor=FailingTearDown())
    with pytest.raises(RuntimeError, match="teardown failed"):
        runner.tear_down("ctx")


def test_runner_defaults_are_not_shared():
    first = ExecutorRunner()
    second = ExecutorRunner()
    first.info.append("x")
    assert second.info == []
    assert first.kind == "builtin"


def test_executor_requires_run():
    with pytest.raises(TypeError):
        Executor()


def test_user_executor_run_raises():
    ux = UserExecutor(executor="myexec")
    with pytest.raises(ExecutorError):
        ux.run(None, TestStep())


def test_user_executor_zero_value_result():
    output = {"a": [1, "two"], "b": {"c": True}}
    ux = UserExecutor(executor="myexec", output=output)
    assert ux.zero_value_result() == {"result": output}


def test_user_executor_zero_value_result_without_output():
    assert UserExecutor().zero_value_result() == {"result": None}


@pytest.mark.parametrize("output", [object(), float("nan")])
def test_user_executor_zero_value_result_unencodable(output):
    assert UserExecutor(output=output).zero_value_result() == ""


def test_user_executor_zero_value_result_is_a_copy():
    output = {"a": [1]}
    ux = UserExecutor(output=output)
    result = ux.zero_value_result()
    result["result"]["a"].append(2)
    assert output == {"a": [1]}


def test_user_executor_in_runner():
    ux = UserExecutor(executor="myexec", output={"x": 1})
    runner = ExecutorRunner(executor=ux, name="myexec", kind="user")
    assert runner.zero_value_result() == {"result": {"x": 1}}
    assert runner.setup("ctx", H()) == "ctx"
    with pytest.raises(ExecutorError):
        runner.run(None, TestStep())