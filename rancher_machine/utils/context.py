"""Context management for structured logging and tracing.

Context variables carry the machine being operated on through every log
record and span emitted while a driver operation runs, without threading the
values through each call.
"""

import contextvars
from contextlib import contextmanager
from typing import Optional, Any, Dict
from opentelemetry import trace

# Context variables for operation tracking
machine_name_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "machine_name", default=None
)
machine_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "machine_id", default=None
)
project_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "project_id", default=None
)
action_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "action", default=None
)

_VARS: Dict[str, contextvars.ContextVar] = {
    "machine_name": machine_name_var,
    "machine_id": machine_id_var,
    "project_id": project_id_var,
    "action": action_var,
}


def set_context(
    machine_name: Optional[str] = None,
    machine_id: Optional[str] = None,
    project_id: Optional[str] = None,
    action: Optional[str] = None,
) -> None:
    """Set context variables.

    Args:
        machine_name: Local docker-machine name
        machine_id: Rancher virtual machine id (e.g. 1i42)
        project_id: Rancher environment id (e.g. 1a5)
        action: Operation being performed (e.g. 'machine.create')
    """
    if machine_name is not None:
        machine_name_var.set(machine_name)
    if machine_id is not None:
        machine_id_var.set(machine_id)
    if project_id is not None:
        project_id_var.set(project_id)
    if action is not None:
        action_var.set(action)


def get_context() -> Dict[str, Any]:
    """Get all current context values as a dictionary.

    Returns:
        Dictionary with all non-empty context values
    """
    context = {}
    for key, var in _VARS.items():
        value = var.get()
        if value:
            context[key] = value
    return context


def clear_context() -> None:
    """Clear all context variables."""
    for var in _VARS.values():
        var.set(None)


@contextmanager
def operation_context(
    action: str,
    machine_name: Optional[str] = None,
    machine_id: Optional[str] = None,
    project_id: Optional[str] = None,
):
    """Context manager for setting operation context with automatic cleanup.

    This also sets the action as a span attribute if there's an active span.

    Example:
        with operation_context("machine.start", machine_name="dev"):
            logger.info("Starting machine")
    """
    old_context = get_context()

    try:
        set_context(
            machine_name=machine_name,
            machine_id=machine_id,
            project_id=project_id,
            action=action,
        )

        span = trace.get_current_span()
        if span.is_recording():
            span.set_attribute("action", action)
            if machine_name:
                span.set_attribute("machine.name", machine_name)
            if machine_id:
                span.set_attribute("machine.id", machine_id)

        yield

    finally:
        # Restore old context
        clear_context()
        for key, value in old_context.items():
            _VARS[key].set(value)


def get_trace_context() -> Dict[str, str]:
    """Get current OpenTelemetry trace context.

    Returns:
        Dictionary with trace_id and span_id (if available)
    """
    context = {}

    span = trace.get_current_span()
    if span.is_recording():
        span_context = span.get_span_context()
        if span_context.is_valid:
            context["trace_id"] = format(span_context.trace_id, "032x")
            context["span_id"] = format(span_context.span_id, "016x")

    return context
