"""In-process stub adapter for the catalog port.

``CatalogStub`` implements ``CatalogPort`` without any network calls. It is
intended for unit tests and local development where deterministic behavior
is useful and the catalog service is not running.
"""

from typing import Dict, Iterable, List, Optional

from .domain import CatalogPort, Product


DEMO_PRODUCTS = (
    Product(id="TSHIRT-001", name="Basic Tee", price_cents=1500, image="tee-front.png"),
    Product(id="HOODIE-002", name="Zip Hoodie", price_cents=4200, image=["hoodie-front.png", "hoodie-back.png"]),
    Product(id="CAP-003", name="Logo Cap", price_cents=900, image="cap.png"),
)


class CatalogStub(CatalogPort):
    """Dictionary-backed catalog.

    Starts with ``DEMO_PRODUCTS`` unless another product set is given.
    """

    def __init__(self, products: Optional[Iterable[Product]] = None):
        self.products: Dict[str, Product] = {
            p.id: p for p in (DEMO_PRODUCTS if products is None else products)
        }

    def add(self, product: Product) -> Product:
        self.products[product.id] = product
        return product

    def remove(self, product_id: str) -> None:
        self.products.pop(product_id, None)

    def lookup(self, product_ids: List[str]) -> dict:
        """Return the known products among ``product_ids``.

        Args:
            product_ids: Ids to look up.

        Returns:
            dict[str, Product]: Found products keyed by id; unknown ids are
            left out.
        """
        return {pid: self.products[pid] for pid in product_ids if pid in self.products}
