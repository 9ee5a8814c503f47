"""
Unit tests for the persistence gateways.
"""

import asyncio
import json
import shutil
import tempfile
import threading
from pathlib import Path

import pytest

from src.ordering.errors import LoadFailure
from src.ordering.models import EntityKind, Folder, Item
from src.persistence import (
    BatchOperation,
    InMemoryGateway,
    JsonFileGateway,
    OpType,
    SQLiteGateway,
    create_gateway,
)


def upsert(entity, kind=EntityKind.ITEM, **fields):
    return BatchOperation(OpType.UPSERT, kind, entity.id, fields or entity.to_dict())


def delete(entity_id, kind=EntityKind.ITEM):
    return BatchOperation(OpType.DELETE, kind, entity_id)


class GatewayContract:
    """Behaviour every gateway must share. Subclasses provide make_gateway."""

    def make_gateway(self):
        raise NotImplementedError

    def test_empty_read(self):
        gateway = self.make_gateway()
        assert asyncio.run(gateway.read_all(EntityKind.ITEM)) == []
        assert asyncio.run(gateway.read_all(EntityKind.FOLDER)) == []

    def test_upsert_then_read(self):
        gateway = self.make_gateway()
        item = Item("a", "Alpha", container_id=None, order=0)
        folder = Folder("f", "Folder", order=0)

        result = asyncio.run(
            gateway.atomic_batch(
                [upsert(item), upsert(folder, kind=EntityKind.FOLDER)]
            )
        )

        assert result.success
        assert result.applied == 2
        assert asyncio.run(gateway.read_all(EntityKind.ITEM)) == [item.to_dict()]
        assert asyncio.run(gateway.read_all(EntityKind.FOLDER)) == [folder.to_dict()]

    def test_partial_upsert_merges_fields(self):
        gateway = self.make_gateway()
        item = Item("a", "Alpha", container_id=None, order=0)
        asyncio.run(gateway.atomic_batch([upsert(item)]))

        asyncio.run(gateway.atomic_batch([upsert(item, containerId="f", order=3)]))

        stored = asyncio.run(gateway.read_all(EntityKind.ITEM))[0]
        assert Item.from_dict(stored) == Item("a", "Alpha", container_id="f", order=3)

    def test_delete(self):
        gateway = self.make_gateway()
        a, b = Item("a", "A", order=0), Item("b", "B", order=1)
        asyncio.run(gateway.atomic_batch([upsert(a), upsert(b)]))

        result = asyncio.run(gateway.atomic_batch([delete("a"), upsert(b, order=0)]))

        assert result.success
        stored = asyncio.run(gateway.read_all(EntityKind.ITEM))
        assert [Item.from_dict(doc) for doc in stored] == [Item("b", "B", order=0)]

    def test_kinds_are_separate(self):
        gateway = self.make_gateway()
        asyncio.run(gateway.atomic_batch([upsert(Item("same", "I"))]))
        asyncio.run(
            gateway.atomic_batch([upsert(Folder("same", "F"), kind=EntityKind.FOLDER)])
        )

        asyncio.run(gateway.atomic_batch([delete("same", kind=EntityKind.FOLDER)]))

        assert len(asyncio.run(gateway.read_all(EntityKind.ITEM))) == 1
        assert asyncio.run(gateway.read_all(EntityKind.FOLDER)) == []


class TestInMemoryGateway(GatewayContract):
    """Test the in-memory gateway and its failure injection."""

    def make_gateway(self):
        return InMemoryGateway()

    def test_fail_next_batch(self):
        gateway = self.make_gateway()
        gateway.fail_next_batch(reason="offline")

        result = asyncio.run(gateway.atomic_batch([upsert(Item("a", "A"))]))

        assert not result.success
        assert result.error == "offline"
        assert gateway.documents[EntityKind.ITEM] == {}
        assert len(gateway.attempted_batches) == 1
        assert gateway.committed_batches == []

        # Only the next batch fails
        assert asyncio.run(gateway.atomic_batch([upsert(Item("a", "A"))])).success

    def test_fail_reads(self):
        gateway = self.make_gateway()
        gateway.fail_reads.add(EntityKind.FOLDER)

        with pytest.raises(LoadFailure):
            asyncio.run(gateway.read_all(EntityKind.FOLDER))
        assert asyncio.run(gateway.read_all(EntityKind.ITEM)) == []

    def test_seed(self):
        gateway = self.make_gateway()
        gateway.seed(EntityKind.ITEM, [Item("a", "A").to_dict()])

        assert asyncio.run(gateway.read_all(EntityKind.ITEM)) == [Item("a", "A").to_dict()]
        assert gateway.attempted_batches == []


class DiskGatewayContract(GatewayContract):
    """Backends that do blocking I/O."""

    def test_batches_run_in_worker_thread(self, mocker):
        gateway = self.make_gateway()
        original = gateway._atomic_batch
        threads = []

        def record(operations):
            threads.append(threading.get_ident())
            return original(operations)

        mocker.patch.object(gateway, "_atomic_batch", side_effect=record)

        result = asyncio.run(gateway.atomic_batch([upsert(Item("a", "A"))]))

        assert result.success
        assert len(threads) == 1
        assert threads[0] != threading.get_ident()

    def test_concurrent_batches_keep_every_write(self):
        gateway = self.make_gateway()
        item = Item("a", "A")
        asyncio.run(gateway.atomic_batch([upsert(item)]))

        async def together():
            return await asyncio.gather(
                gateway.atomic_batch([upsert(item, title="Renamed")]),
                gateway.atomic_batch([upsert(item, order=3)]),
                gateway.atomic_batch([upsert(Item("b", "B"))]),
            )

        results = asyncio.run(together())

        assert all(result.success for result in results)
        documents = {
            doc["id"]: doc for doc in asyncio.run(gateway.read_all(EntityKind.ITEM))
        }
        assert set(documents) == {"a", "b"}
        assert documents["a"]["title"] == "Renamed"
        assert documents["a"]["order"] == 3


class TestSQLiteGateway(DiskGatewayContract):
    """Test the SQLite gateway."""

    def setup_method(self):
        self.temp_dir = Path(tempfile.mkdtemp())

    def teardown_method(self):
        shutil.rmtree(self.temp_dir)

    def make_gateway(self):
        return SQLiteGateway(str(self.temp_dir / "store" / "organizer.db"))

    def test_failed_batch_leaves_nothing_applied(self):
        gateway = self.make_gateway()
        good = upsert(Item("a", "A"))
        bad = BatchOperation(OpType.UPSERT, EntityKind.ITEM, "b", {"title": object()})

        result = asyncio.run(gateway.atomic_batch([good, bad]))

        assert not result.success
        assert result.error
        assert asyncio.run(gateway.read_all(EntityKind.ITEM)) == []

    def test_data_survives_reopen(self):
        gateway = self.make_gateway()
        asyncio.run(gateway.atomic_batch([upsert(Item("a", "A", order=0))]))

        reopened = self.make_gateway()

        assert asyncio.run(reopened.read_all(EntityKind.ITEM)) == [
            Item("a", "A", order=0).to_dict()
        ]


class TestJsonFileGateway(DiskGatewayContract):
    """Test the JSON file gateway."""

    def setup_method(self):
        self.temp_dir = Path(tempfile.mkdtemp())
        self.json_path = self.temp_dir / "organizer.json"

    def teardown_method(self):
        shutil.rmtree(self.temp_dir)

    def make_gateway(self):
        return JsonFileGateway(str(self.json_path))

    def test_file_layout(self):
        gateway = self.make_gateway()
        asyncio.run(gateway.atomic_batch([upsert(Item("a", "A"))]))

        with open(self.json_path) as f:
            store = json.load(f)

        assert store["items"]["a"]["title"] == "A"
        assert store["folders"] == {}

    def test_failed_batch_leaves_file_untouched(self):
        gateway = self.make_gateway()
        asyncio.run(gateway.atomic_batch([upsert(Item("a", "A"))]))
        before = self.json_path.read_text()

        bad = BatchOperation(OpType.UPSERT, EntityKind.ITEM, "b", {"title": object()})
        result = asyncio.run(gateway.atomic_batch([delete("a"), bad]))

        assert not result.success
        assert self.json_path.read_text() == before
        assert [p.name for p in self.temp_dir.iterdir()] == ["organizer.json"]

    def test_corrupt_file_raises_load_failure(self):
        gateway = self.make_gateway()
        self.json_path.write_text("{not json")

        with pytest.raises(LoadFailure):
            asyncio.run(gateway.read_all(EntityKind.ITEM))


class TestCreateGateway:
    """Test backend selection from configuration."""

    def setup_method(self):
        self.temp_dir = Path(tempfile.mkdtemp())

    def teardown_method(self):
        shutil.rmtree(self.temp_dir)

    def _config(self, mocker, values):
        config = mocker.Mock()
        config.get.side_effect = lambda path, default=None: values.get(path, default)
        return config

    def test_memory_is_default(self, mocker):
        assert isinstance(create_gateway(self._config(mocker, {})), InMemoryGateway)

    def test_sqlite(self, mocker):
        config = self._config(
            mocker,
            {"storage.backend": "sqlite", "storage.db_path": str(self.temp_dir / "x.db")},
        )
        assert isinstance(create_gateway(config), SQLiteGateway)

    def test_json(self, mocker):
        config = self._config(
            mocker,
            {"storage.backend": "json", "storage.json_path": str(self.temp_dir / "x.json")},
        )
        assert isinstance(create_gateway(config), JsonFileGateway)

    def test_unknown_backend(self, mocker):
        with pytest.raises(ValueError):
            create_gateway(self._config(mocker, {"storage.backend": "firestore"}))
