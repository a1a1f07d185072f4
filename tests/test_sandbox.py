import pytest

from nodeflow.engine.errors import SandboxError
from nodeflow.engine.sandbox import run_user_code


def test_returns_procedure_result():
    code = 'return {"result": input["value"] * 2}'
    assert run_user_code(code, {"value": 5}) == {"result": 10}


def test_loops_and_augmented_assignment():
    code = "\n".join([
        "total = 0",
        "for item in input['items']:",
        "    total += item",
        "return {'total': total, 'count': len(input['items'])}",
    ])
    assert run_user_code(code, {"items": [1, 2, 3]}) == {"total": 6, "count": 3}


def test_code_without_return_yields_none():
    assert run_user_code("x = 1", {}) is None


def test_input_is_copied():
    data = {"value": 1}
    result = run_user_code('input["value"] = 99\nreturn input', data)
    assert result == {"value": 99}
    assert data == {"value": 1}


def test_private_attribute_access_is_rejected_at_compile_time():
    with pytest.raises(SandboxError):
        run_user_code("return input.__class__", {})


def test_imports_are_unavailable():
    with pytest.raises(Exception):
        run_user_code("import os\nreturn os.listdir('/')", {})


def test_file_access_is_unavailable():
    with pytest.raises(NameError):
        run_user_code("return open('/etc/hostname').read()", {})


def test_time_budget_is_enforced():
    code = "x = 0\nwhile True:\n    x += 1"
    with pytest.raises(SandboxError, match="time budget"):
        run_user_code(code, {}, time_budget=0.2)


def test_user_exceptions_propagate():
    with pytest.raises(ZeroDivisionError):
        run_user_code("return 1 / 0", {})


def test_time_budget_cannot_be_caught():
    code = "\n".join([
        "n = 0",
        "while True:",
        "    try:",
        "        while True:",
        "            n += 1",
        "    except:",
        "        pass",
    ])
    with pytest.raises(SandboxError, match="time budget"):
        run_user_code(code, {}, time_budget=0.2)


def test_time_budget_covers_finally_blocks():
    code = "\n".join([
        "try:",
        "    while True:",
        "        pass",
        "finally:",
        "    while True:",
        "        pass",
    ])
    with pytest.raises(SandboxError, match="time budget"):
        run_user_code(code, {}, time_budget=0.2)


def test_unreturnable_result_is_reported():
    with pytest.raises(SandboxError, match="cannot be returned"):
        run_user_code("return lambda value: value", {})


def test_compile_errors_raise_before_running():
    with pytest.raises(SandboxError):
        run_user_code("return (", {})
