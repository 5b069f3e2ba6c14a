from typing import Annotated

from fastapi import Header

DEFAULT_OPERATOR = "system"


async def get_operator(x_operator: Annotated[str | None, Header()] = None) -> str:
    """Name recorded on audited changes; identity is asserted by the caller, not verified."""

    if x_operator and x_operator.strip():
        return x_operator.strip()[:120]
    return DEFAULT_OPERATOR
