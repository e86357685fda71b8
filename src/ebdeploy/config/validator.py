"""Validation utilities for ebdeploy configuration."""

from pydantic import ValidationError as PydanticValidationError


def flatten_pydantic_errors(exc: PydanticValidationError) -> list[str]:
    """Flatten a pydantic ValidationError into human-readable messages.

    Args:
        exc: Pydantic ValidationError exception

    Returns:
        One message per error, prefixed with the dotted field path. Errors
        raised by model validators carry no field path and are reported
        without one.
    """
    errors: list[str] = []

    for error in exc.errors():
        loc = error.get("loc", ())
        msg = error.get("msg", "Unknown error")
        # pydantic prefixes ValueError messages
        msg = msg.removeprefix("Value error, ")

        if not loc:
            errors.append(msg)
            continue

        field_path = ".".join(str(item) for item in loc)
        if error.get("type") == "value_error":
            input_val = error.get("input")
            errors.append(f"Field '{field_path}': {msg} (received: {input_val!r})")
        else:
            errors.append(f"Field '{field_path}': {msg}")

    return errors if errors else ["Validation failed with unknown error"]


def first_error_field(exc: PydanticValidationError) -> str:
    """Return the top-level field of the first error, or "config"."""
    for error in exc.errors():
        loc = error.get("loc", ())
        if loc:
            return str(loc[0])
    return "config"
