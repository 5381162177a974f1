from typing import Any, List, Mapping

from pymongo import ReturnDocument

from database import Database, parse_object_id, utcnow
from errors import NotFound, ValidationFailed
from logger import get_logger
from schemas import Item
from validation import validate_item_patch, validate_new_item

logger = get_logger(__name__)


class ItemCatalog:
    """Item records. Any authenticated user may edit or delete any item."""

    def __init__(self, db: Database):
        self.db = db

    def _oid(self, item_id):
        oid = parse_object_id(item_id)
        if oid is None:
            raise ValidationFailed("Invalid item id", fields={"id": "Invalid item id"})
        return oid

    def find(self, item_id):
        """Lookup that treats a malformed id as a missing item."""
        oid = parse_object_id(item_id)
        if oid is None:
            return None
        return self.db.items.find_one({"_id": oid})

    def create(self, owner_id, payload: Mapping[str, Any]) -> dict:
        result = validate_new_item(payload)
        if not result.ok:
            raise result.to_error()
        item = Item(owner=str(owner_id), **result.cleaned)
        item_id = self.db.create_document("item", item)
        logger.info("item created", item_id=item_id, owner=str(owner_id))
        return self.db.items.find_one({"_id": parse_object_id(item_id)})

    def get(self, item_id) -> dict:
        item = self.db.items.find_one({"_id": self._oid(item_id)})
        if not item:
            raise NotFound("Item not found")
        return item

    def list_all(self) -> List[dict]:
        return self.db.get_documents("item")

    def update(self, item_id, patch: Mapping[str, Any]) -> dict:
        result = validate_item_patch(patch)
        if not result.ok:
            raise result.to_error()
        oid = self._oid(item_id)
        item = self.db.items.find_one_and_update(
            {"_id": oid},
            {"$set": {**result.cleaned, "updated_at": utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        if not item:
            raise NotFound("Item not found")
        logger.info("item updated", item_id=str(oid), fields=sorted(result.cleaned))
        return item

    def delete(self, item_id) -> dict:
        item = self.db.items.find_one_and_delete({"_id": self._oid(item_id)})
        if not item:
            raise NotFound("Item not found")
        logger.info("item deleted", item_id=str(item["_id"]))
        return item
