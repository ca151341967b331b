"""Small parameter validation helpers.

Shared by the decode config, the compression budget and the settings loader
so every entry point reports bad values with the same wording.
"""

from __future__ import annotations

from numbers import Number


def check_parameter(
    param: Number,
    low: Number | None = None,
    high: Number | None = None,
    *,
    param_name: str = "parameter",
    include_left: bool = True,
    include_right: bool = True,
) -> None:
    """Validate a numeric parameter is within a given range.

    Parameters
    ----------
    param:
        The numeric value to validate.
    low / high:
        Optional bounds. When `None`, the bound is not checked.
    include_left / include_right:
        Whether the comparison is inclusive.
    param_name:
        Used in error messages.
    """

    if not isinstance(param, Number) or isinstance(param, bool):
        raise TypeError(f"{param_name} must be a number, got {type(param).__name__}")

    if low is not None and high is not None and low > high:
        raise ValueError(f"Invalid bounds for {param_name}: low={low} > high={high}")

    if low is not None:
        if include_left:
            if param < low:
                raise ValueError(f"{param_name} must be >= {low}, got {param}")
        elif param <= low:
            raise ValueError(f"{param_name} must be > {low}, got {param}")

    if high is not None:
        if include_right:
            if param > high:
                raise ValueError(f"{param_name} must be <= {high}, got {param}")
        elif param >= high:
            raise ValueError(f"{param_name} must be < {high}, got {param}")


def check_int(param: object, low: int | None = None, high: int | None = None, *, param_name: str) -> int:
    """Like `check_parameter`, but also rejects non-integral values."""

    if not isinstance(param, int) or isinstance(param, bool):
        raise TypeError(f"{param_name} must be an int, got {type(param).__name__}")
    check_parameter(param, low, high, param_name=param_name)
    return int(param)


def check_power_of_two(param: object, *, param_name: str) -> int:
    value = check_int(param, low=1, param_name=param_name)
    if value & (value - 1):
        raise ValueError(f"{param_name} must be a power of two, got {value}")
    return value
