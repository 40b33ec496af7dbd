"""Deadline handling shared by the services."""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from pr_reviewer.errors import ErrorCode, ServiceError


@asynccontextmanager
async def operation_deadline(timeout: Optional[float], log) -> AsyncIterator[None]:
    """
    Bound the enclosed block by ``timeout`` seconds (None disables it).

    An expired deadline cancels the work inside, which rolls back any open
    transaction, and surfaces as an INTERNAL ServiceError. Cancellation
    coming from the caller propagates unchanged.
    """
    try:
        async with asyncio.timeout(timeout):
            yield
    except TimeoutError as e:
        log.error("Operation deadline exceeded", timeout=timeout)
        raise ServiceError(ErrorCode.INTERNAL, cause=e) from e
