"""Tests for the Cosmos DB unit of work.

These tests verify:
- Staged operations reach the store only on commit
- Leaving the scope without commit aborts, also on exceptions
- Etag precondition failures surface as TransactionConflictError
- Finished transactions reject further work
"""

import pytest
from azure.cosmos.exceptions import CosmosBatchOperationError

from src.errors import TransactionConflictError


class TestCosmosTransaction:
    """Test CosmosTransaction through CosmosDBClient.transaction()."""

    @pytest.mark.asyncio
    async def test_commit_applies_staged_create(self, cosmos_client, fake_container):
        async with cosmos_client.transaction("p-1") as transaction:
            transaction.create_item({"id": "p-1", "name": {"first": "Desk"}})
            assert fake_container.items == {}

            results = await transaction.commit()

        assert [r["id"] for r in results] == ["p-1"]
        assert "p-1" in fake_container.items
        assert transaction.is_active is False

    @pytest.mark.asyncio
    async def test_scope_exit_without_commit_discards_work(self, cosmos_client, fake_container):
        async with cosmos_client.transaction("p-1") as transaction:
            transaction.create_item({"id": "p-1"})

        assert fake_container.items == {}
        assert fake_container.batches == []
        assert transaction.is_active is False

    @pytest.mark.asyncio
    async def test_exception_aborts_and_propagates_unchanged(self, cosmos_client, fake_container):
        class Boom(Exception):
            pass

        with pytest.raises(Boom):
            async with cosmos_client.transaction("p-1") as transaction:
                transaction.create_item({"id": "p-1"})
                raise Boom()

        assert fake_container.items == {}
        assert transaction.is_active is False

    @pytest.mark.asyncio
    async def test_stale_etag_raises_conflict(self, cosmos_client, fake_container, stored_product):
        product_id = stored_product["id"]
        fake_container._store({**fake_container.items[product_id]})  # new etag

        with pytest.raises(TransactionConflictError) as exc_info:
            async with cosmos_client.transaction(product_id) as transaction:
                transaction.replace_item(product_id, {**stored_product, "isDeleted": True}, etag=stored_product["_etag"])
                await transaction.commit()

        assert isinstance(exc_info.value.__cause__, CosmosBatchOperationError)
        assert fake_container.items[product_id]["isDeleted"] is False

    @pytest.mark.asyncio
    async def test_other_batch_failures_propagate(self, cosmos_client, stored_product):
        with pytest.raises(CosmosBatchOperationError):
            async with cosmos_client.transaction(stored_product["id"]) as transaction:
                transaction.create_item({"id": stored_product["id"]})
                await transaction.commit()

    @pytest.mark.asyncio
    async def test_empty_commit_skips_the_store(self, cosmos_client, fake_container):
        async with cosmos_client.transaction("p-1") as transaction:
            results = await transaction.commit()

        assert results == []
        assert fake_container.batches == []

    @pytest.mark.asyncio
    async def test_finished_transaction_rejects_work(self, cosmos_client):
        async with cosmos_client.transaction("p-1") as transaction:
            await transaction.commit()

            with pytest.raises(RuntimeError, match="already finished"):
                transaction.create_item({"id": "p-1"})

    @pytest.mark.asyncio
    async def test_transaction_requires_connection(self):
        from src.clients import CosmosDBClient

        client = CosmosDBClient(
            endpoint="https://test.documents.azure.com:443/",
            key="test-key",
            database_name="catalog",
            container_name="products",
        )

        with pytest.raises(RuntimeError, match="not connected"):
            async with client.transaction("p-1"):
                pass
