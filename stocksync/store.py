"""Offline-tolerant mirror of an owner's categories and items.

The store keeps both collections in memory and in a local snapshot, so a
restarted client can show the last known inventory before the server answers.
Writes are remote-authoritative: every mutation is sent to the server first
and the local copy only changes once the server has confirmed it. A failed
call leaves memory and snapshot exactly as they were.
"""

import asyncio
import enum
import logging
from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager
from datetime import UTC, datetime

from pydantic import ValidationError

from stocksync.compression import (
    DEFAULT_MAX_SIZE_KB,
    ImageCompressionError,
    compress_image,
    is_raw_payload,
)
from stocksync.connectivity import ConnectivityMonitor
from stocksync.models import Category, CategoryDraft, ItemChanges, ItemDraft, StockItem
from stocksync.notifications import Notifier
from stocksync.remote import RemoteCollections, RemoteError
from stocksync.storage import LocalStore

logger = logging.getLogger(__name__)

# Local storage keys
CATEGORIES_KEY = "inventory_categories"
ITEMS_KEY = "inventory_items"

OFFLINE_HINT = " (offline: showing cached data)"

Compressor = Callable[[str, float], Awaitable[str]]
Confirm = Callable[[str], bool]


class StoreState(str, enum.Enum):
    """Session lifecycle of the store."""

    LOGGED_OUT = "logged_out"
    LOADING = "loading"  # Snapshot shown, first remote fetch in flight
    READY = "ready"


def filter_items(
    items: list[StockItem],
    search_query: str = "",
    selected_category: str | None = None,
) -> list[StockItem]:
    """Filter items by free-text query and category.

    The query matches case-insensitively against name or description. A
    category of None means all categories.

    Args:
        items: Items to filter.
        search_query: Substring to look for.
        selected_category: Category ID to restrict to.

    Returns:
        list[StockItem]: Matching items in their original order.
    """
    query = search_query.lower()

    def matches(item: StockItem) -> bool:
        if query and query not in item.name.lower():
            if not item.description or query not in item.description.lower():
                return False
        return selected_category is None or item.category_id == selected_category

    return [item for item in items if matches(item)]


def _validation_message(error: ValidationError) -> str:
    first = error.errors()[0]
    field = ".".join(str(part) for part in first.get("loc", ())) or "input"
    if field == "name":
        return "Please enter a name"
    if field == "category_id":
        return "Please select a category"
    return f"Invalid {field}: {first.get('msg')}"


class StockStore:
    """Categories and items for the signed-in owner.

    Consumers hold a reference to the store, read its collections, and may
    :meth:`subscribe` to be called after every state change.
    """

    def __init__(
        self,
        remote: RemoteCollections,
        local: LocalStore,
        notifier: Notifier | None = None,
        connectivity: ConnectivityMonitor | None = None,
        compressor: Compressor = compress_image,
        max_photo_size_kb: float = DEFAULT_MAX_SIZE_KB,
        raw_photo_prefix: str = "data:image",
        initial_categories: list[str] | None = None,
    ):
        """Initialize the store.

        Args:
            remote: Collection API adapter.
            local: Durable key-value store for snapshots.
            notifier: Sink for user-facing messages.
            connectivity: Optional monitor used to annotate failure messages.
            compressor: Coroutine compressing one photo payload.
            max_photo_size_kb: Target size for compressed photos.
            raw_photo_prefix: Marker of photos that get recompressed on update.
            initial_categories: Names created when the owner has no categories.
        """
        self.remote = remote
        self.local = local
        self.notifier = notifier or Notifier()
        self.connectivity = connectivity
        self.compressor = compressor
        self.max_photo_size_kb = max_photo_size_kb
        self.raw_photo_prefix = raw_photo_prefix
        self.initial_categories = list(initial_categories or [])

        self.categories: list[Category] = []
        self.items: list[StockItem] = []
        self.selected_category: str | None = None
        self.search_query: str = ""
        self.state = StoreState.LOGGED_OUT
        self.owner_id: str | None = None

        self._busy = 0
        # Bumped on login/logout so late responses from an old session are dropped
        self._session = 0
        self._listeners: list[Callable[["StockStore"], None]] = []

    @property
    def syncing(self) -> bool:
        """True while any remote-touching operation is in flight."""
        return self._busy > 0

    @property
    def is_authenticated(self) -> bool:
        return self.state != StoreState.LOGGED_OUT

    @property
    def filtered_items(self) -> list[StockItem]:
        """Items matching the current search query and category selection."""
        return filter_items(self.items, self.search_query, self.selected_category)

    def subscribe(self, listener: Callable[["StockStore"], None]) -> Callable[[], None]:
        """Register a change listener.

        Returns:
            Callable[[], None]: Unsubscribe handle.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _changed(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    @contextmanager
    def _syncing(self) -> Iterator[None]:
        self._busy += 1
        self._changed()
        try:
            yield
        finally:
            self._busy -= 1
            self._changed()

    def _report_failure(self, message: str, error: Exception) -> None:
        logger.error(f"{message}: {error}")
        text = str(error) or message
        if self.connectivity is not None and not self.connectivity.is_online:
            text += OFFLINE_HINT
        self.notifier.error(text)

    def _require_login(self, action: str) -> bool:
        if self.is_authenticated:
            return True
        self.notifier.error(f"You must be logged in to {action}")
        return False

    def set_selected_category(self, category_id: str | None) -> None:
        self.selected_category = category_id
        self._changed()

    def set_search_query(self, query: str) -> None:
        self.search_query = query
        self._changed()

    def save_snapshot(self) -> bool:
        """Persist both collections to local storage.

        Returns:
            bool: True if both keys were written.
        """
        saved_categories = self.local.set_item(
            CATEGORIES_KEY, [c.model_dump(mode="json") for c in self.categories]
        )
        saved_items = self.local.set_item(
            ITEMS_KEY, [i.model_dump(mode="json") for i in self.items]
        )
        return saved_categories and saved_items

    def restore_snapshot(self) -> bool:
        """Load collections from local storage.

        A corrupt snapshot is ignored and leaves the collections as they are.

        Returns:
            bool: True if anything was restored.
        """
        stored_categories = self.local.get_item(CATEGORIES_KEY)
        stored_items = self.local.get_item(ITEMS_KEY)
        restored = False

        try:
            if stored_categories:
                self.categories = [Category.model_validate(c) for c in stored_categories]
                restored = True
            if stored_items:
                self.items = [StockItem.model_validate(i) for i in stored_items]
                restored = True
        except (ValidationError, TypeError) as e:
            logger.error(f"Error reading local snapshot: {e}")
            return False

        if restored:
            logger.info(
                f"Restored {len(self.categories)} categories and {len(self.items)} items from cache"
            )
            self._changed()
        return restored

    async def authenticate(self, owner_id: str) -> None:
        """Start a session: show the snapshot, then revalidate from the server.

        Args:
            owner_id: Identifier of the signed-in owner.
        """
        self._session += 1
        self.owner_id = owner_id
        self.state = StoreState.LOADING
        self.restore_snapshot()

        categories_ok, _ = await asyncio.gather(self.fetch_categories(), self.fetch_items())
        if categories_ok and not self.categories and self.initial_categories:
            await self.seed_initial_categories(self.initial_categories)

        if self.state == StoreState.LOADING:
            self.state = StoreState.READY
            self._changed()

    def logout(self) -> None:
        """End the session and clear the in-memory collections.

        Responses still in flight for the old session are discarded.
        """
        self._session += 1
        self.owner_id = None
        self.state = StoreState.LOGGED_OUT
        self.categories = []
        self.items = []
        self.selected_category = None
        self.search_query = ""
        self._changed()

    async def fetch_categories(self) -> bool:
        """Replace categories with the server's list, ordered by name.

        Returns:
            bool: True on success.
        """
        session = self._session
        with self._syncing():
            try:
                rows = await self.remote.select("categories", order_by="name")
                categories = [Category.model_validate(row) for row in rows]
            except (RemoteError, ValidationError) as e:
                self._report_failure("Failed to load categories", e)
                return False

        if session != self._session:
            return False
        self.categories = categories
        self.save_snapshot()
        self._changed()
        return True

    async def fetch_items(self) -> bool:
        """Replace items with the server's list, newest first.

        Returns:
            bool: True on success.
        """
        session = self._session
        with self._syncing():
            try:
                rows = await self.remote.select("items", order_by="created_at", descending=True)
                items = [StockItem.model_validate(row) for row in rows]
            except (RemoteError, ValidationError) as e:
                self._report_failure("Failed to load items", e)
                return False

        if session != self._session:
            return False
        self.items = items
        self.save_snapshot()
        self._changed()
        return True

    async def refresh(self) -> bool:
        """Revalidate both collections from the server."""
        categories_ok, items_ok = await asyncio.gather(self.fetch_categories(), self.fetch_items())
        return categories_ok and items_ok

    async def seed_initial_categories(self, names: list[str]) -> list[Category]:
        """Create starter categories for an owner who has none.

        Args:
            names: Category names to create.

        Returns:
            list[Category]: Categories created (empty on failure or if the
            owner already has categories).
        """
        if not self._require_login("create categories") or self.categories:
            return []

        session = self._session
        with self._syncing():
            try:
                rows = await self.remote.insert_many("categories", [{"name": n} for n in names])
                created = [Category.model_validate(row) for row in rows]
            except (RemoteError, ValidationError) as e:
                self._report_failure("Failed to create initial categories", e)
                return []

        if session != self._session:
            return created
        self.categories = sorted(self.categories + created, key=lambda c: c.name)
        self.save_snapshot()
        self.notifier.success("Initial categories created successfully")
        self._changed()
        return created

    async def add_category(self, name: str) -> Category | None:
        """Create a category.

        Empty names and names already present (ignoring case) are rejected
        without contacting the server.

        Args:
            name: Category name.

        Returns:
            Category | None: The stored category, or None if rejected or failed.
        """
        if not self._require_login("add categories"):
            return None

        try:
            draft = CategoryDraft(name=name)
        except ValidationError as e:
            self.notifier.error(_validation_message(e))
            return None

        if any(c.name.lower() == draft.name.lower() for c in self.categories):
            self.notifier.error("Category already exists")
            return None

        session = self._session
        with self._syncing():
            try:
                row = await self.remote.insert("categories", draft.model_dump())
                category = Category.model_validate(row)
            except (RemoteError, ValidationError) as e:
                self._report_failure("Failed to add category", e)
                return None

        if session != self._session:
            return category
        self.categories = [*self.categories, category]
        self.save_snapshot()
        self.notifier.success("Category added successfully")
        self._changed()
        return category

    async def delete_category(self, category_id: str, confirm: Confirm) -> bool:
        """Delete a category together with all of its items.

        Items are deleted on the server first, then the category. The local
        collections change only after both calls succeed.

        Args:
            category_id: Category ID.
            confirm: Asked with a description of what will be removed; the
                deletion only proceeds if it returns True.

        Returns:
            bool: True if the category was deleted.
        """
        if not self._require_login("delete categories"):
            return False

        count = sum(1 for item in self.items if item.category_id == category_id)
        plural = "" if count == 1 else "s"
        if count:
            detail = f"This will also delete {count} item{plural} in this category."
        else:
            detail = "This category is empty."
        if not confirm(f"Are you sure you want to delete this category?\n\n{detail}"):
            return False

        session = self._session
        with self._syncing():
            try:
                if count:
                    await self.remote.delete_where("items", category_id=category_id)
                await self.remote.delete("categories", category_id)
            except RemoteError as e:
                self._report_failure("Failed to delete category", e)
                return False

        if session != self._session:
            return True
        self.items = [item for item in self.items if item.category_id != category_id]
        self.categories = [c for c in self.categories if c.id != category_id]
        if self.selected_category == category_id:
            self.selected_category = None
        self.save_snapshot()
        self.notifier.success(f"Category and {count} item{plural} deleted successfully")
        self._changed()
        return True

    async def _process_photos(self, photos: list[str], only_raw: bool) -> list[str]:
        processed = []
        for photo in photos:
            if only_raw and not is_raw_payload(photo, self.raw_photo_prefix):
                processed.append(photo)
                continue
            try:
                processed.append(await self.compressor(photo, self.max_photo_size_kb))
            except ImageCompressionError as e:
                logger.warning(f"Failed to process image, keeping original: {e}")
                processed.append(photo)
        return processed

    async def add_item(self, item: ItemDraft | dict) -> StockItem | None:
        """Create an item, compressing its photos first.

        A photo that fails to compress is uploaded as-is.

        Args:
            item: Name, description, category and photos.

        Returns:
            StockItem | None: The stored item, or None if rejected or failed.
        """
        if not self._require_login("add items"):
            return None

        try:
            draft = item if isinstance(item, ItemDraft) else ItemDraft.model_validate(item)
        except ValidationError as e:
            self.notifier.error(_validation_message(e))
            return None

        session = self._session
        with self._syncing():
            photos = await self._process_photos(draft.photos, only_raw=False)
            record = draft.model_dump()
            record["photos"] = photos
            try:
                row = await self.remote.insert("items", record)
                created = StockItem.model_validate(row)
            except (RemoteError, ValidationError) as e:
                self._report_failure("Failed to add item", e)
                return None

        if session != self._session:
            return created
        self.items = [created, *self.items]
        self.save_snapshot()
        self.notifier.success("Item added successfully")
        self._changed()
        return created

    async def update_item(self, item_id: str, updates: ItemChanges | dict) -> StockItem | None:
        """Apply a partial update to an item.

        When photos are part of the update, only raw embedded payloads are
        recompressed; hosted URLs pass through unchanged. ``updated_at`` is
        stamped with the current time.

        Args:
            item_id: Item ID.
            updates: Fields to change.

        Returns:
            StockItem | None: The stored item, or None if rejected or failed.
        """
        if not self._require_login("update items"):
            return None

        try:
            changes = (
                updates if isinstance(updates, ItemChanges) else ItemChanges.model_validate(updates)
            )
        except ValidationError as e:
            self.notifier.error(_validation_message(e))
            return None

        session = self._session
        with self._syncing():
            payload = changes.model_dump(exclude_unset=True)
            if changes.photos is not None:
                payload["photos"] = await self._process_photos(changes.photos, only_raw=True)
            payload["updated_at"] = datetime.now(UTC).isoformat()
            try:
                row = await self.remote.update("items", item_id, payload)
                updated = StockItem.model_validate(row)
            except (RemoteError, ValidationError) as e:
                self._report_failure("Failed to update item", e)
                return None

        if session != self._session:
            return updated
        self.items = [updated if existing.id == item_id else existing for existing in self.items]
        self.save_snapshot()
        self.notifier.success("Item updated successfully")
        self._changed()
        return updated

    async def delete_item(self, item_id: str) -> bool:
        """Delete an item.

        Returns:
            bool: True if the item was deleted.
        """
        if not self._require_login("delete items"):
            return False

        session = self._session
        with self._syncing():
            try:
                await self.remote.delete("items", item_id)
            except RemoteError as e:
                self._report_failure("Failed to delete item", e)
                return False

        if session != self._session:
            return True
        self.items = [item for item in self.items if item.id != item_id]
        self.save_snapshot()
        self.notifier.success("Item deleted successfully")
        self._changed()
        return True

    def stats(self, top: int = 5) -> dict:
        """Summarize the inventory.

        Args:
            top: Number of categories to include, by descending item count.

        Returns:
            dict: ``total_items``, ``total_categories``, ``uncategorized`` and
            ``top_categories`` (list of ``{id, name, count}``).
        """
        counts: dict[str | None, int] = {}
        for item in self.items:
            counts[item.category_id] = counts.get(item.category_id, 0) + 1

        known_ids = {c.id for c in self.categories}
        ranked = sorted(
            (
                {"id": c.id, "name": c.name, "count": counts.get(c.id, 0)}
                for c in self.categories
            ),
            key=lambda entry: entry["count"],
            reverse=True,
        )
        return {
            "total_items": len(self.items),
            "total_categories": len(self.categories),
            "uncategorized": sum(n for cid, n in counts.items() if cid not in known_ids),
            "top_categories": ranked[:top],
        }
