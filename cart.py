"""
Cart engine.

A cart holds one line per item. Each line carries a name and unit price
snapshot taken when the item was first added; later catalog price changes do
not touch existing lines. The bill is always recomputed as a full fold over
the lines, never adjusted incrementally.

Writes are optimistic: every cart document has a `version`, and a mutation
only lands if the version it read is still current. A lost race re-reads the
cart and tries again, up to `cart_max_retries` times.
"""
from typing import List, Optional, Tuple

from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from catalog import ItemCatalog
from database import Database, utcnow
from errors import CartConflict, NotFound
from logger import get_logger
from schemas import Cart, CartLine
from settings import Settings

logger = get_logger(__name__)


def compute_bill(lines: List[dict]):
    return sum(line["quantity"] * line["price"] for line in lines)


def merge_line(lines: List[dict], line: dict) -> List[dict]:
    """Add `line`, bumping the quantity of an existing line for the same item."""
    merged = [dict(existing) for existing in lines]
    for existing in merged:
        if existing["itemId"] == line["itemId"]:
            existing["quantity"] += line["quantity"]
            return merged
    merged.append(dict(line))
    return merged


def drop_line(lines: List[dict], item_id: str) -> List[dict]:
    remaining = [dict(line) for line in lines if line["itemId"] != item_id]
    if len(remaining) == len(lines):
        raise NotFound("Item not found")
    return remaining


class CartEngine:
    def __init__(self, db: Database, catalog: ItemCatalog, settings: Settings):
        self.db = db
        self.catalog = catalog
        self.max_retries = settings.cart_max_retries

    def _load(self, owner_id) -> Optional[dict]:
        return self.db.carts.find_one({"owner": str(owner_id)})

    def _swap(self, cart: dict, lines: List[dict]) -> Optional[dict]:
        """Write `lines` if nobody changed the cart since it was read."""
        return self.db.carts.find_one_and_update(
            {"_id": cart["_id"], "version": cart.get("version", 0)},
            {
                "$set": {
                    "items": lines,
                    "bill": compute_bill(lines),
                    "updated_at": utcnow(),
                },
                "$inc": {"version": 1},
            },
            return_document=ReturnDocument.AFTER,
        )

    def fetch(self, owner_id) -> Optional[dict]:
        cart = self._load(owner_id)
        if cart and len(cart.get("items", [])) > 0:
            return cart
        return None

    def add_item(self, owner_id, item_id: str, quantity: int) -> Tuple[dict, bool]:
        """Returns the cart and whether it was created by this call."""
        item = self.catalog.find(item_id)
        if not item:
            raise NotFound("Item not found")

        line = CartLine(
            item_id=str(item["_id"]), name=item["name"], quantity=quantity, price=item["price"]
        ).model_dump(by_alias=True)

        for attempt in range(self.max_retries):
            cart = self._load(owner_id)
            if cart is None:
                new_cart = Cart(owner=str(owner_id), items=[line], bill=compute_bill([line]))
                try:
                    cart_id = self.db.create_document("cart", new_cart.model_dump(by_alias=True))
                except DuplicateKeyError:
                    # another request created the cart first; merge into it
                    logger.info("cart create race", owner=str(owner_id), attempt=attempt)
                    continue
                logger.info("cart created", cart_id=cart_id, owner=str(owner_id), item_id=line["itemId"])
                return self._load(owner_id), True

            updated = self._swap(cart, merge_line(cart.get("items", []), line))
            if updated is not None:
                logger.info("cart updated", owner=str(owner_id), item_id=line["itemId"], bill=updated["bill"])
                return updated, False
            logger.info("cart version conflict", owner=str(owner_id), attempt=attempt)

        logger.warning("cart update gave up", owner=str(owner_id), retries=self.max_retries)
        raise CartConflict()

    def remove_item(self, owner_id, item_id: str) -> dict:
        for attempt in range(self.max_retries):
            cart = self._load(owner_id)
            if cart is None:
                raise NotFound("Cart not found")

            updated = self._swap(cart, drop_line(cart.get("items", []), item_id))
            if updated is not None:
                logger.info("cart item removed", owner=str(owner_id), item_id=item_id, bill=updated["bill"])
                return updated
            logger.info("cart version conflict", owner=str(owner_id), attempt=attempt)

        logger.warning("cart update gave up", owner=str(owner_id), retries=self.max_retries)
        raise CartConflict()
