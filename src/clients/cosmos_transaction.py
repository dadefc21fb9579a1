"""Unit of work over a Cosmos DB transactional batch."""

import logging
from typing import Any, Optional

from azure.cosmos.aio._container import ContainerProxy
from azure.cosmos.exceptions import CosmosBatchOperationError

from src.errors import TransactionConflictError

logger = logging.getLogger(__name__)

PRECONDITION_FAILED = 412


class CosmosTransaction:
    """Stages write operations for one partition and executes them atomically.

    Operations are buffered until commit() sends them as a single
    transactional batch; either all of them are applied or none is.
    abort() discards whatever is still staged. A transaction can be
    committed or aborted once.
    """

    def __init__(self, container: ContainerProxy, partition_key: str):
        self._container = container
        self._partition_key = partition_key
        self._operations: list[tuple] = []
        self._committed = False
        self._aborted = False

    @property
    def is_active(self) -> bool:
        """Whether the transaction can still stage or commit work."""
        return not (self._committed or self._aborted)

    @property
    def partition_key(self) -> str:
        return self._partition_key

    def _ensure_active(self) -> None:
        if not self.is_active:
            raise RuntimeError("Transaction already finished.")

    def create_item(self, body: dict[str, Any]) -> None:
        """Stage the insertion of a new item."""
        self._ensure_active()
        self._operations.append(("create", (body,)))

    def replace_item(self, item_id: str, body: dict[str, Any], etag: Optional[str] = None) -> None:
        """Stage the replacement of an item, optionally guarded by its etag."""
        self._ensure_active()
        if etag is not None:
            self._operations.append(("replace", (item_id, body), {"if_match_etag": etag}))
        else:
            self._operations.append(("replace", (item_id, body)))

    async def commit(self) -> list[dict[str, Any]]:
        """Execute the staged operations as one batch.

        Returns:
            The resource bodies written by the batch, in staging order.

        Raises:
            TransactionConflictError: If an etag precondition failed.
            CosmosBatchOperationError: If the batch failed for any other reason.
        """
        self._ensure_active()
        operations, self._operations = self._operations, []

        if not operations:
            self._committed = True
            return []

        try:
            results = await self._container.execute_item_batch(
                batch_operations=operations,
                partition_key=self._partition_key,
            )
        except CosmosBatchOperationError as e:
            self._aborted = True
            failed = e.operation_responses[e.error_index] if e.operation_responses else {}
            if failed.get("statusCode") == PRECONDITION_FAILED:
                raise TransactionConflictError(
                    f"Item in partition {self._partition_key} was modified concurrently"
                ) from e
            raise

        self._committed = True
        logger.debug(f"Committed {len(operations)} operation(s) in partition {self._partition_key}")
        return [dict(result["resourceBody"]) for result in results if result.get("resourceBody")]

    def abort(self) -> None:
        """Discard staged operations. Nothing has reached the store yet."""
        if not self.is_active:
            return
        discarded = len(self._operations)
        self._operations = []
        self._aborted = True
        logger.debug(f"Aborted transaction in partition {self._partition_key} ({discarded} staged)")
