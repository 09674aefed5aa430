"""Validated execution of query plans.

Two strategies:

- transactional: used only when the plan is marked bulk *and* holds more than
  one statement. One pooled connection is held for the whole plan; a rejected
  statement or a driver error rolls back every statement of the plan.
- sequential: everything else. Each statement is validated, run and committed
  on its own, so statements that ran before a failure stay committed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any, Optional

from ..core.db import ConnectionPool, RawResult, run_statement
from ..core.exceptions import StatementExecutionError
from ..core.models import QueryPlan, StatementRequest
from ..security.sql_guard import validate_statement
from .formatter import format_result

logger = logging.getLogger(__name__)


@dataclass
class PlanResult:
    """Aggregate outcome of one query plan."""
    success: bool
    results: list[dict[str, Any]] = field(default_factory=list)
    is_bulk: bool = False
    error: Optional[str] = None
    failed_index: Optional[int] = None

    @classmethod
    def rejected(cls, reason: str, index: int) -> "PlanResult":
        return cls(success=False, error=reason, failed_index=index)

    @property
    def total_queries(self) -> int:
        return len(self.results)

    def to_dict(self) -> dict[str, Any]:
        if not self.success:
            return {"success": False, "error": self.error, "failedIndex": self.failed_index}
        return {
            "success": True,
            # A single statement reports its result directly
            "results": self.results[0] if len(self.results) == 1 else self.results,
            "totalQueries": self.total_queries,
            "isBulk": self.is_bulk,
        }


class _StatementRejected(Exception):
    def __init__(self, index: int, reason: str) -> None:
        super().__init__(reason)
        self.index = index
        self.reason = reason


class StatementExecutor:
    """Runs query plans against a connection pool.

    Args:
        pool: Connection pool owned by the application
        max_rows: Row cap per SELECT (0 = unlimited)
    """

    def __init__(self, pool: ConnectionPool, max_rows: int = 0) -> None:
        self._pool = pool
        self._max_rows = max_rows

    def execute(self, plan: QueryPlan) -> PlanResult:
        """Validate and execute every statement of the plan in order.

        Returns:
            PlanResult; ``success`` is False when a statement was rejected

        Raises:
            StatementExecutionError: If the driver rejects a statement
            DatabaseError: If no connection could be obtained
        """
        transactional = plan.is_bulk and len(plan.queries) > 1
        logger.info(
            f"Executing plan with {len(plan.queries)} statement(s) "
            f"({'transactional' if transactional else 'sequential'})"
        )
        if transactional:
            return self._execute_transactional(plan.queries)
        return self._execute_sequential(plan.queries)

    def _execute_sequential(self, statements: list[StatementRequest]) -> PlanResult:
        results: list[dict[str, Any]] = []
        for index, statement in enumerate(statements):
            outcome = validate_statement(statement.text, statement.operation)
            if not outcome.valid:
                logger.warning(f"Statement {index} rejected: {outcome.reason}")
                return PlanResult.rejected(outcome.reason, index)

            with self._pool.connection() as conn:
                raw = self._run(conn, statement, index, commit=True)
            results.append(format_result(raw, statement.operation))

        return PlanResult(success=True, results=results, is_bulk=False)

    def _execute_transactional(self, statements: list[StatementRequest]) -> PlanResult:
        results: list[dict[str, Any]] = []
        try:
            with self._pool.transaction() as conn:
                for index, statement in enumerate(statements):
                    outcome = validate_statement(statement.text, statement.operation)
                    if not outcome.valid:
                        raise _StatementRejected(index, outcome.reason)
                    raw = self._run(conn, statement, index)
                    results.append(format_result(raw, statement.operation))
        except _StatementRejected as rejection:
            logger.warning(f"Statement {rejection.index} rejected, bulk plan rolled back: {rejection.reason}")
            return PlanResult.rejected(rejection.reason, rejection.index)
        except self._pool.driver_error as e:
            logger.error(f"Commit of bulk plan failed: {e}")
            raise StatementExecutionError(f"Commit failed: {e}") from e

        logger.info(f"Bulk plan committed ({len(results)} statements)")
        return PlanResult(success=True, results=results, is_bulk=True)

    def _run(self, conn: Any, statement: StatementRequest, index: int, commit: bool = False) -> RawResult:
        try:
            raw = run_statement(
                conn,
                statement.text,
                statement.parameters,
                max_rows=self._max_rows,
                want_insert_id=statement.operation.strip().upper() == "INSERT",
                identity_lookup=self._pool.identity_lookup,
            )
            if commit:
                conn.commit()
            return raw
        except self._pool.driver_error as e:
            logger.error(f"Statement {index} failed: {e}")
            raise StatementExecutionError(str(e), index) from e
