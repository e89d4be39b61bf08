"""Tests for the offline-tolerant store."""

import asyncio
import base64
import io
import itertools
from datetime import datetime, timedelta

import pytest
import pytest_asyncio
from PIL import Image, ImageFilter

from stocksync.compression import (
    ImageCompressionError,
    compress_image,
    compress_image_with_stats,
    payload_size_kb,
)
from stocksync.connectivity import ConnectivityMonitor
from stocksync.notifications import Level, Notifier
from stocksync.remote import RemoteError
from stocksync.storage import LocalStore
from stocksync.store import (
    CATEGORIES_KEY,
    ITEMS_KEY,
    OFFLINE_HINT,
    StockStore,
    StoreState,
    filter_items,
)

OWNER_ID = "owner-1"
BASE_TIME = datetime(2026, 1, 1, 12, 0, 0)


def sized_payload(size_kb: float) -> str:
    return "data:image/jpeg;base64," + "A" * round(size_kb * 1024 * 4 / 3)


class FakeRemote:
    """In-memory stand-in for RemoteCollections.

    ``failures`` maps ``(method, collection)`` to the error to raise and
    ``gates`` maps a collection to an event every call on it waits for.
    """

    def __init__(self):
        self.tables: dict[str, list[dict]] = {"categories": [], "items": []}
        self.calls: list[tuple] = []
        self.failures: dict[tuple[str, str], Exception] = {}
        self.gates: dict[str, asyncio.Event] = {}
        self._ids = itertools.count(1)

    def seed(self, collection: str, **record) -> dict:
        n = next(self._ids)
        created = (BASE_TIME + timedelta(minutes=n)).isoformat()
        row = {
            "id": f"{collection}-{n}",
            "user_id": OWNER_ID,
            "created_at": created,
            "updated_at": created,
        }
        if collection == "items":
            row.update({"description": None, "category_id": None, "photos": []})
        row.update(record)
        self.tables[collection].append(row)
        return dict(row)

    async def _call(self, method: str, collection: str, *args) -> None:
        self.calls.append((method, collection, *args))
        gate = self.gates.get(collection)
        if gate is not None:
            await gate.wait()
        error = self.failures.get((method, collection))
        if error is not None:
            raise error

    def methods(self) -> list[tuple[str, str]]:
        return [call[:2] for call in self.calls]

    async def select(self, collection, order_by=None, descending=False, **filters):
        await self._call("select", collection)
        rows = [
            dict(row)
            for row in self.tables[collection]
            if all(row.get(key) == value for key, value in filters.items())
        ]
        if order_by:
            rows.sort(key=lambda row: row[order_by], reverse=descending)
        return rows

    async def insert(self, collection, record):
        await self._call("insert", collection, record)
        return self.seed(collection, **record)

    async def insert_many(self, collection, records):
        await self._call("insert_many", collection, records)
        return [self.seed(collection, **record) for record in records]

    async def update(self, collection, record_id, changes):
        await self._call("update", collection, record_id, changes)
        for row in self.tables[collection]:
            if row["id"] == record_id:
                row.update(changes)
                return dict(row)
        raise RemoteError("Item not found", 404)

    async def delete(self, collection, record_id):
        await self._call("delete", collection, record_id)
        self.tables[collection] = [r for r in self.tables[collection] if r["id"] != record_id]

    async def delete_where(self, collection, **filters):
        await self._call("delete_where", collection, filters)
        keep = [
            r
            for r in self.tables[collection]
            if not all(r.get(key) == value for key, value in filters.items())
        ]
        deleted = len(self.tables[collection]) - len(keep)
        self.tables[collection] = keep
        return deleted


class FakeCompressor:
    """Compressor returning a payload at 80% of the target size."""

    def __init__(self, fail_on: tuple[str, ...] = ()):
        self.calls: list[str] = []
        self.fail_on = set(fail_on)

    async def __call__(self, photo: str, max_size_kb: float) -> str:
        self.calls.append(photo)
        if photo in self.fail_on:
            raise ImageCompressionError("Failed to load image: corrupt")
        return sized_payload(max_size_kb * 0.8)


@pytest.fixture
def remote() -> FakeRemote:
    return FakeRemote()


@pytest.fixture
def compressor() -> FakeCompressor:
    return FakeCompressor()


@pytest.fixture
def notifier() -> Notifier:
    return Notifier()


@pytest.fixture
def store(remote, compressor, notifier, tmp_path) -> StockStore:
    return StockStore(
        remote,
        LocalStore(tmp_path / "cache"),
        notifier=notifier,
        compressor=compressor,
    )


@pytest.fixture
def fasteners(remote: FakeRemote) -> dict:
    """A category holding three items, plus one item elsewhere."""
    category = remote.seed("categories", name="Fasteners")
    other = remote.seed("categories", name="Cables")
    remote.seed("items", name="Bolt M6", description="Zinc plated", category_id=category["id"])
    remote.seed("items", name="Nut M6", category_id=category["id"])
    remote.seed("items", name="Washer", description="for bolts", category_id=category["id"])
    remote.seed("items", name="USB cable", category_id=other["id"])
    return category


@pytest_asyncio.fixture
async def ready_store(store: StockStore, remote: FakeRemote, fasteners: dict) -> StockStore:
    """Authenticated store with the fasteners data loaded."""
    await store.authenticate(OWNER_ID)
    remote.calls.clear()
    store.notifier.history.clear()
    return store


async def settle() -> None:
    for _ in range(5):
        await asyncio.sleep(0)


class TestFilterItems:
    """Tests for search and category filtering."""

    @pytest.mark.asyncio
    async def test_search_matches_name_or_description(self, ready_store: StockStore):
        ready_store.set_search_query("bolt")

        names = {item.name for item in ready_store.filtered_items}
        assert names == {"Bolt M6", "Washer"}

    @pytest.mark.asyncio
    async def test_search_and_category(self, ready_store: StockStore, fasteners: dict):
        ready_store.set_search_query("M6")
        ready_store.set_selected_category(fasteners["id"])

        assert {i.name for i in ready_store.filtered_items} == {"Bolt M6", "Nut M6"}

    @pytest.mark.asyncio
    async def test_empty_filters_return_all(self, ready_store: StockStore):
        assert filter_items(ready_store.items, "", None) == ready_store.items


class TestSession:
    """Tests for authenticate, logout and snapshots."""

    @pytest.mark.asyncio
    async def test_authenticate_loads_collections(self, store, remote, fasteners):
        await store.authenticate(OWNER_ID)

        assert store.state == StoreState.READY
        assert [c.name for c in store.categories] == ["Cables", "Fasteners"]
        assert [i.name for i in store.items][0] == "USB cable"
        assert len(store.items) == 4
        assert not store.syncing

    @pytest.mark.asyncio
    async def test_snapshot_survives_restart(self, remote, fasteners, tmp_path):
        """A new session offline shows the previous session's data."""
        cache = tmp_path / "shared"
        first = StockStore(remote, LocalStore(cache), compressor=FakeCompressor())
        await first.authenticate(OWNER_ID)

        offline = FakeRemote()
        offline.failures[("select", "categories")] = RemoteError("Network error: refused")
        offline.failures[("select", "items")] = RemoteError("Network error: refused")
        notifier = Notifier()
        second = StockStore(
            offline,
            LocalStore(cache),
            notifier=notifier,
            connectivity=ConnectivityMonitor(online=False),
        )
        await second.authenticate(OWNER_ID)

        assert len(second.categories) == 2
        assert len(second.items) == 4
        assert second.state == StoreState.READY
        assert notifier.errors[0] == "Network error: refused" + OFFLINE_HINT

    @pytest.mark.asyncio
    async def test_corrupt_snapshot_ignored(self, store, tmp_path):
        store.local.set_item(CATEGORIES_KEY, [{"id": "broken"}])

        assert store.restore_snapshot() is False
        assert store.categories == []

    @pytest.mark.asyncio
    async def test_seeds_initial_categories(self, remote, notifier, tmp_path):
        store = StockStore(
            remote,
            LocalStore(tmp_path),
            notifier=notifier,
            initial_categories=["Tools", "Parts"],
        )

        await store.authenticate(OWNER_ID)

        assert [c.name for c in store.categories] == ["Parts", "Tools"]
        assert ("insert_many", "categories") in remote.methods()
        assert notifier.history[-1].message == "Initial categories created successfully"

    @pytest.mark.asyncio
    async def test_no_seed_when_categories_exist(self, remote, fasteners, tmp_path):
        store = StockStore(remote, LocalStore(tmp_path), initial_categories=["Tools"])

        await store.authenticate(OWNER_ID)

        assert ("insert_many", "categories") not in remote.methods()

    @pytest.mark.asyncio
    async def test_logout_clears_state(self, ready_store: StockStore):
        ready_store.set_search_query("bolt")

        ready_store.logout()

        assert ready_store.categories == []
        assert ready_store.items == []
        assert ready_store.search_query == ""
        assert not ready_store.is_authenticated

    @pytest.mark.asyncio
    async def test_logout_discards_inflight_fetch(self, store, remote, fasteners):
        remote.gates["items"] = asyncio.Event()
        remote.gates["categories"] = asyncio.Event()
        task = asyncio.create_task(store.authenticate(OWNER_ID))
        await settle()
        assert store.syncing

        store.logout()
        remote.gates["items"].set()
        remote.gates["categories"].set()
        await task

        assert store.items == []
        assert store.categories == []
        assert store.state == StoreState.LOGGED_OUT

    @pytest.mark.asyncio
    async def test_must_be_logged_in(self, store, remote, notifier):
        assert await store.add_category("Tools") is None
        assert await store.delete_item("items-1") is False

        assert notifier.errors == [
            "You must be logged in to add categories",
            "You must be logged in to delete items",
        ]
        assert remote.calls == []


class TestSyncing:
    """Tests for the syncing flag and change notifications."""

    @pytest.mark.asyncio
    async def test_syncing_counts_overlapping_operations(self, ready_store, remote):
        remote.gates["items"] = asyncio.Event()
        remote.gates["categories"] = asyncio.Event()
        item_id = ready_store.items[0].id

        deleting = asyncio.create_task(ready_store.delete_item(item_id))
        adding = asyncio.create_task(ready_store.add_category("Tools"))
        await settle()
        assert ready_store.syncing

        remote.gates["items"].set()
        await deleting
        assert ready_store.syncing

        remote.gates["categories"].set()
        await adding
        assert not ready_store.syncing

    @pytest.mark.asyncio
    async def test_subscribe_and_unsubscribe(self, ready_store):
        seen = []
        unsubscribe = ready_store.subscribe(lambda s: seen.append(s.search_query))

        ready_store.set_search_query("nut")
        unsubscribe()
        ready_store.set_search_query("bolt")

        assert seen == ["nut"]


class TestCategories:
    """Tests for category operations."""

    @pytest.mark.asyncio
    async def test_add_category(self, ready_store, remote, notifier):
        category = await ready_store.add_category("  Tools ")

        assert category.name == "Tools"
        assert ready_store.categories[-1].id == category.id
        assert notifier.history[-1].level == Level.SUCCESS
        assert notifier.history[-1].message == "Category added successfully"
        stored = ready_store.local.get_item(CATEGORIES_KEY)
        assert any(row["name"] == "Tools" for row in stored)

    @pytest.mark.asyncio
    async def test_duplicate_rejected_locally(self, ready_store, remote, notifier):
        assert await ready_store.add_category("fasteners") is None

        assert notifier.errors == ["Category already exists"]
        assert remote.calls == []

    @pytest.mark.asyncio
    async def test_empty_name_rejected_locally(self, ready_store, remote, notifier):
        assert await ready_store.add_category("   ") is None

        assert notifier.errors == ["Please enter a name"]
        assert remote.calls == []

    @pytest.mark.asyncio
    async def test_add_failure_keeps_state(self, ready_store, remote, notifier):
        remote.failures[("insert", "categories")] = RemoteError("Server returned 500", 500)
        before = list(ready_store.categories)

        assert await ready_store.add_category("Tools") is None

        assert ready_store.categories == before
        assert notifier.errors == ["Server returned 500"]

    @pytest.mark.asyncio
    async def test_delete_category_cascades(self, ready_store, remote, notifier, fasteners):
        ready_store.set_selected_category(fasteners["id"])
        prompts = []

        def confirm(message):
            prompts.append(message)
            return True

        assert await ready_store.delete_category(fasteners["id"], confirm)

        assert "3 items" in prompts[0]
        assert remote.methods() == [("delete_where", "items"), ("delete", "categories")]
        assert [c.name for c in ready_store.categories] == ["Cables"]
        assert [i.name for i in ready_store.items] == ["USB cable"]
        assert ready_store.selected_category is None
        assert notifier.history[-1].message == "Category and 3 items deleted successfully"
        assert len(ready_store.local.get_item(ITEMS_KEY)) == 1

    @pytest.mark.asyncio
    async def test_delete_category_declined(self, ready_store, remote, fasteners):
        assert not await ready_store.delete_category(fasteners["id"], lambda message: False)

        assert remote.calls == []
        assert len(ready_store.items) == 4

    @pytest.mark.asyncio
    async def test_delete_empty_category_skips_items(self, ready_store, remote):
        empty = await ready_store.add_category("Empty")
        remote.calls.clear()

        assert await ready_store.delete_category(empty.id, lambda message: True)

        assert remote.methods() == [("delete", "categories")]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("failing", [("delete_where", "items"), ("delete", "categories")])
    async def test_delete_category_failure_is_atomic(
        self, ready_store, remote, notifier, fasteners, failing
    ):
        remote.failures[failing] = RemoteError("Network error: refused")

        assert not await ready_store.delete_category(fasteners["id"], lambda message: True)

        assert len(ready_store.categories) == 2
        assert len(ready_store.items) == 4
        assert notifier.errors == ["Network error: refused"]
        if failing[0] == "delete_where":
            assert ("delete", "categories") not in remote.methods()


class TestItems:
    """Tests for item operations."""

    @pytest.mark.asyncio
    async def test_add_item_compresses_photos(self, ready_store, compressor, fasteners):
        raw = sized_payload(400)

        item = await ready_store.add_item(
            {"name": "Rivet", "category_id": fasteners["id"], "photos": [raw]}
        )

        assert compressor.calls == [raw]
        assert payload_size_kb(item.photos[0]) <= 101
        assert ready_store.items[0].id == item.id
        assert ready_store.notifier.history[-1].message == "Item added successfully"

    @pytest.mark.asyncio
    async def test_add_item_requires_category(self, ready_store, remote, notifier):
        assert await ready_store.add_item({"name": "Rivet"}) is None

        assert notifier.errors == ["Please select a category"]
        assert remote.calls == []

    @pytest.mark.asyncio
    async def test_add_item_failure_keeps_items(self, ready_store, remote, notifier, fasteners):
        remote.failures[("insert", "items")] = RemoteError("Network error: refused")

        result = await ready_store.add_item({"name": "Rivet", "category_id": fasteners["id"]})

        assert result is None
        assert len(ready_store.items) == 4
        assert notifier.errors == ["Network error: refused"]

    @pytest.mark.asyncio
    async def test_photo_failure_keeps_original(self, remote, notifier, fasteners, tmp_path):
        corrupt = "data:image/png;base64,AAAA"
        good = sized_payload(300)
        store = StockStore(
            remote,
            LocalStore(tmp_path),
            notifier=notifier,
            compressor=FakeCompressor(fail_on=(corrupt,)),
        )
        await store.authenticate(OWNER_ID)

        item = await store.add_item(
            {"name": "Rivet", "category_id": fasteners["id"], "photos": [corrupt, good]}
        )

        assert item.photos[0] == corrupt
        assert payload_size_kb(item.photos[1]) <= 101
        assert notifier.errors == []

    @pytest.mark.asyncio
    async def test_update_only_recompresses_raw_photos(self, ready_store, remote, compressor):
        item = ready_store.items[-1]
        hosted = "https://cdn.example.com/bolt.jpg"
        raw = sized_payload(250)

        updated = await ready_store.update_item(item.id, {"photos": [hosted, raw]})

        assert compressor.calls == [raw]
        assert updated.photos[0] == hosted
        assert payload_size_kb(updated.photos[1]) <= 101
        assert ready_store.items[-1].photos == updated.photos

    @pytest.mark.asyncio
    async def test_update_with_real_compressor_bounds_photo(
        self, remote, notifier, fasteners, tmp_path
    ):
        """A large camera photo is stored at no more than 101KB."""
        image = Image.effect_noise((1600, 1200), 100).filter(ImageFilter.GaussianBlur(1))
        buffer = io.BytesIO()
        image.convert("RGB").save(buffer, format="JPEG", quality=95)
        raw = "data:image/jpeg;base64," + base64.b64encode(buffer.getvalue()).decode("ascii")
        default_encode = await compress_image_with_stats(raw, 10_000)
        assert default_encode.size_kb > 100

        store = StockStore(
            remote, LocalStore(tmp_path), notifier=notifier, compressor=compress_image
        )
        await store.authenticate(OWNER_ID)
        item_id = store.items[0].id

        updated = await store.update_item(item_id, {"photos": [raw]})

        assert payload_size_kb(updated.photos[0]) <= 101
        assert store.items[0].photos == updated.photos
        assert notifier.errors == []

    @pytest.mark.asyncio
    async def test_update_stamps_updated_at(self, ready_store, remote):
        item = ready_store.items[0]

        await ready_store.update_item(item.id, {"description": "new"})

        method, collection, record_id, changes = remote.calls[0]
        assert (method, collection, record_id) == ("update", "items", item.id)
        assert set(changes) == {"description", "updated_at"}
        assert datetime.fromisoformat(changes["updated_at"]).tzinfo is not None

    @pytest.mark.asyncio
    async def test_update_failure_keeps_item(self, ready_store, remote, notifier):
        item = ready_store.items[0]
        remote.failures[("update", "items")] = RemoteError("Item not found", 404)

        assert await ready_store.update_item(item.id, {"name": "Renamed"}) is None

        assert ready_store.items[0] == item
        assert notifier.errors == ["Item not found"]

    @pytest.mark.asyncio
    async def test_delete_item(self, ready_store, remote):
        item = ready_store.items[0]

        assert await ready_store.delete_item(item.id)

        assert item.id not in {i.id for i in ready_store.items}
        assert ready_store.notifier.history[-1].message == "Item deleted successfully"


class TestStats:
    """Tests for inventory summary."""

    @pytest.mark.asyncio
    async def test_stats(self, ready_store, fasteners):
        summary = ready_store.stats(top=1)

        assert summary["total_items"] == 4
        assert summary["total_categories"] == 2
        assert summary["uncategorized"] == 0
        assert summary["top_categories"] == [
            {"id": fasteners["id"], "name": "Fasteners", "count": 3}
        ]
