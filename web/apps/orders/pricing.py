"""Authoritative pricing of requested line items.

Clients only send product ids, quantities and sizes. Names, unit prices and
images are always taken from the catalog at order time and snapshotted onto
the line item so later catalog edits do not rewrite order history.
"""

from typing import List

from .domain import CatalogPort, LineItemRequest, PricedLineItem, ProductNotFound, ResolutionError


def normalize_images(image) -> tuple:
    """Return the catalog image field as an ordered tuple of references.

    A single reference becomes a one-element tuple and a list keeps its
    order. Empty values yield an empty tuple; callers decide whether that
    is acceptable.
    """
    if image is None:
        return ()
    if isinstance(image, str):
        return (image,) if image else ()
    return tuple(img for img in image if img)


def order_subtotal_cents(items: List[PricedLineItem]) -> int:
    return sum(it.line_total_cents for it in items)


class ProductPriceResolver:
    """Turns ``LineItemRequest`` objects into ``PricedLineItem`` snapshots."""

    def __init__(self, catalog: CatalogPort):
        self.catalog = catalog

    def resolve(self, items: List[LineItemRequest]) -> List[PricedLineItem]:
        """Price every requested item, or none of them.

        All ids are fetched in a single catalog lookup. If any id is unknown
        the whole resolution fails so the caller never commits a partial
        order.

        Args:
            items: Requested line items, in submission order.

        Returns:
            list[PricedLineItem]: One priced item per request, same order.

        Raises:
            ProductNotFound: If one or more product ids do not resolve.
            ResolutionError: If a product has no image to snapshot.
        """
        wanted = list(dict.fromkeys(it.product_id for it in items))
        found = self.catalog.lookup(wanted)

        missing = [pid for pid in wanted if pid not in found]
        if missing:
            raise ProductNotFound(missing)

        priced = []
        for it in items:
            product = found[it.product_id]
            images = normalize_images(product.image)
            if not images:
                raise ResolutionError(f"Product {product.id} has no image")
            priced.append(
                PricedLineItem(
                    product_id=product.id,
                    name=product.name,
                    unit_price_cents=product.price_cents,
                    quantity=it.quantity,
                    images=images,
                    size=it.size,
                )
            )
        return priced
