#!/usr/bin/env python3
"""
Restricted execution of user-supplied function node code.

The code is the body of a one-argument procedure whose parameter is named
``input``. It is compiled with RestrictedPython, so imports, file access and
private attribute access are rejected. It runs in a separate worker process
that is terminated once its wall-clock budget is spent, so user code cannot
catch or outlive the budget.
"""
import logging
import multiprocessing
import operator
from typing import Any, Optional

from RestrictedPython import (
    compile_restricted_function,
    limited_builtins,
    safe_builtins,
    utility_builtins,
)
from RestrictedPython.Eval import default_guarded_getitem
from RestrictedPython.Guards import (
    full_write_guard,
    guarded_iter_unpack_sequence,
    guarded_unpack_sequence,
    safer_getattr,
)
from RestrictedPython.PrintCollector import PrintCollector

from nodeflow.engine.errors import SandboxError

logger = logging.getLogger(__name__)

SANDBOX_FILENAME = "<function node>"
HANDLER_NAME = "handler"
DEFAULT_TIME_BUDGET = 5.0
# Seconds a worker may take to start and compile before the budget starts
STARTUP_TIMEOUT = 30.0

INPLACE_OPERATORS = {
    "+=": operator.iadd,
    "-=": operator.isub,
    "*=": operator.imul,
    "/=": operator.itruediv,
    "//=": operator.ifloordiv,
    "%=": operator.imod,
    "**=": operator.ipow,
    "<<=": operator.ilshift,
    ">>=": operator.irshift,
    "&=": operator.iand,
    "|=": operator.ior,
    "^=": operator.ixor,
}

EXTRA_BUILTINS = {
    "dict": dict,
    "enumerate": enumerate,
    "sum": sum,
    "min": min,
    "max": max,
    "any": any,
    "all": all,
    "map": map,
    "filter": filter,
    "reversed": reversed,
    "sorted": sorted,
}


def _inplace_var(op: str, target: Any, value: Any) -> Any:
    func = INPLACE_OPERATORS.get(op)
    if func is None:
        raise SandboxError(f"Operator {op} is not allowed")
    return func(target, value)


def _apply(func, *args, **kwargs):
    return func(*args, **kwargs)


def build_globals() -> dict:
    """Globals visible to sandboxed code"""
    builtins = dict(safe_builtins)
    builtins.update(limited_builtins)
    builtins.update(utility_builtins)
    builtins.update(EXTRA_BUILTINS)

    return {
        "__builtins__": builtins,
        "__name__": "function_node",
        "_getattr_": safer_getattr,
        "_getitem_": default_guarded_getitem,
        "_getiter_": iter,
        "_iter_unpack_sequence_": guarded_iter_unpack_sequence,
        "_unpack_sequence_": guarded_unpack_sequence,
        "_write_": full_write_guard,
        "_inplacevar_": _inplace_var,
        "_apply_": _apply,
        "_print_": PrintCollector,
    }


def compile_handler(code: str):
    """
    Compile function node code into a callable.

    Raises:
        SandboxError: If the code does not compile under the restrictions
    """
    result = compile_restricted_function(
        p="input",
        body=code,
        name=HANDLER_NAME,
        filename=SANDBOX_FILENAME,
    )
    if result.errors:
        raise SandboxError("; ".join(result.errors))

    sandbox_globals = build_globals()
    sandbox_locals: dict = {}
    exec(result.code, sandbox_globals, sandbox_locals)
    handler = sandbox_locals[HANDLER_NAME]
    # Module-level names referenced by the body resolve through these globals
    sandbox_globals[HANDLER_NAME] = handler
    return handler


def _send_outcome(conn, status: str, payload: Any):
    try:
        conn.send((status, payload))
    except Exception as e:
        # Result or exception could not be pickled
        conn.send(("error", SandboxError(
            f"Function code produced a {type(payload).__name__} that cannot be returned: {e}"
        )))


def _worker(conn, code: str, input_data: Any):
    """Worker process body: compile, report ready, run, report the outcome"""
    try:
        handler = compile_handler(code)
    except SandboxError as e:
        _send_outcome(conn, "error", e)
        conn.close()
        return

    conn.send(("ready", None))
    try:
        result = handler(input_data)
    except Exception as e:
        _send_outcome(conn, "error", e)
    else:
        _send_outcome(conn, "ok", result)
    finally:
        conn.close()


def _receive(conn, process, timeout: float):
    if not conn.poll(timeout):
        return None
    try:
        return conn.recv()
    except EOFError:
        raise SandboxError(
            f"Function process exited unexpectedly with code {process.exitcode}"
        ) from None


def run_user_code(code: str, input_data: Any, time_budget: Optional[float] = None) -> Any:
    """
    Run function node code against an input payload.

    Args:
        code: Body of the procedure; ``input`` is bound to ``input_data``
        input_data: Resolved input. The worker process receives a copy.
        time_budget: Seconds the code may run (default: DEFAULT_TIME_BUDGET)

    Returns:
        Whatever the procedure returns

    Raises:
        SandboxError: On compile errors, when the budget is exceeded or when
            the result cannot be returned
    """
    compile_handler(code)
    budget = time_budget if time_budget else DEFAULT_TIME_BUDGET

    receiver, sender = multiprocessing.Pipe(duplex=False)
    process = multiprocessing.Process(
        target=_worker,
        args=(sender, code, input_data),
        name="nodeflow-function",
        daemon=True,
    )
    process.start()
    sender.close()

    try:
        message = _receive(receiver, process, STARTUP_TIMEOUT)
        if message is None:
            raise SandboxError("Function process did not start")
        if message[0] == "ready":
            message = _receive(receiver, process, budget)
        if message is None:
            logger.warning("Function code exceeded its %.1fs budget", budget)
            raise SandboxError(f"Execution exceeded time budget of {budget}s")
    finally:
        receiver.close()
        if process.is_alive():
            process.terminate()
        process.join()

    status, payload = message
    if status == "error":
        raise payload
    return payload
