"""Detection of unrecoverable statement failures."""

from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager

import asyncpg

from utils.exceptions import StatementTimeoutError, TransientQueryError
from utils.logging import get_logger


class FailureMonitor:
    """Translates driver errors and tears the engine down on timeouts.

    A timeout leaves the connection in an unknown state, so it is treated as
    fatal for the whole engine. Every other driver error only aborts the
    statement that raised it.
    """

    def __init__(self, teardown: Callable[[], Awaitable[None]]) -> None:
        self._teardown = teardown
        self.timeouts = 0
        self.logger = get_logger("archive.monitor")

    async def report_timeout(self, operation: str) -> None:
        self.timeouts += 1
        self.logger.critical("statement_timeout", operation=operation, action="closing database")
        await self._teardown()

    @asynccontextmanager
    async def watch(self, operation: str) -> AsyncIterator[None]:
        """Run a block of statements on behalf of ``operation``.

        Raises:
            StatementTimeoutError: After the engine has been torn down.
            TransientQueryError: For any other driver failure.
        """
        try:
            yield
        except (TimeoutError, asyncpg.QueryCanceledError) as e:
            await self.report_timeout(operation)
            raise StatementTimeoutError(operation) from e
        except (asyncpg.PostgresError, asyncpg.InterfaceError) as e:
            self.logger.error("statement_failed", operation=operation, error=str(e))
            raise TransientQueryError(operation, f"{operation} failed: {e}") from e
