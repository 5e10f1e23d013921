"""Turns any value handed to an emitter into the string payload sent to the collector."""

import dataclasses
import json
import numbers
import traceback

CIRCULAR = "[Circular]"


def _prepare(value, ancestors: set):
    """Convert value into JSON-encodable data, replacing back-references with CIRCULAR."""
    if value is None or isinstance(value, (str, bool, int, float)):
        return value

    if id(value) in ancestors:
        return CIRCULAR

    if isinstance(value, dict):
        children = value.items()
    elif isinstance(value, (list, tuple, set, frozenset)):
        children = None
    elif dataclasses.is_dataclass(value) and not isinstance(value, type):
        children = ((f.name, getattr(value, f.name)) for f in dataclasses.fields(value))
    elif hasattr(value, "__dict__") and not isinstance(value, type):
        children = vars(value).items()
    else:
        return str(value)

    ancestors.add(id(value))
    try:
        if children is None:
            return [_prepare(item, ancestors) for item in value]
        return {str(key): _prepare(item, ancestors) for key, item in children}
    finally:
        ancestors.discard(id(value))


def safe_dumps(value, indent: int = 1) -> str:
    """JSON-encode value, tolerating reference cycles and non-JSON types."""
    return json.dumps(_prepare(value, set()), indent=indent, ensure_ascii=False)


def _stack_of(value):
    if isinstance(value, BaseException):
        if value.__traceback__ is not None:
            return "".join(
                traceback.format_exception(type(value), value, value.__traceback__)
            ).rstrip("\n")
        return "".join(traceback.format_exception_only(type(value), value)).rstrip("\n")
    return getattr(value, "stack", None)


def is_error_shaped(value) -> bool:
    return isinstance(value, BaseException) or hasattr(value, "stack")


def normalize(value) -> str:
    """Render value as the message string sent to the collector."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, numbers.Number):
        return str(value)
    if is_error_shaped(value):
        stack = _stack_of(value)
        if isinstance(stack, str):
            return stack
        if stack is not None:
            return "\n" + safe_dumps(stack)
        return str(value)
    return "\n\n" + safe_dumps(value) + "\n"


def format_fatal(exc) -> str:
    """Message body for a fatal line: the traceback on its own line."""
    if exc is None:
        return "\nUNKNOWN"
    return "\n" + normalize(exc) if is_error_shaped(exc) else "\n" + str(exc)
