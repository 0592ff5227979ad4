import pytest

from apps.orders.adapters import CatalogStub
from apps.orders.domain import LineItemRequest, Product, ProductNotFound
from apps.orders.pricing import ProductPriceResolver, normalize_images, order_subtotal_cents


@pytest.mark.parametrize(
    "image,expected",
    [
        ("a.png", ("a.png",)),
        (["a.png", "b.png"], ("a.png", "b.png")),
        (["a.png", "", None], ("a.png",)),
        ("", ()),
        (None, ()),
    ],
)
def test_normalize_images(image, expected):
    assert normalize_images(image) == expected


class CountingCatalog(CatalogStub):
    def __init__(self, products):
        super().__init__(products)
        self.calls = []

    def lookup(self, product_ids):
        self.calls.append(list(product_ids))
        return super().lookup(product_ids)


def test_resolver_fetches_all_ids_in_one_lookup_and_keeps_order():
    catalog = CountingCatalog(
        [
            Product(id="A", name="Alpha", price_cents=100, image="a.png"),
            Product(id="B", name="Beta", price_cents=250, image=["b1.png", "b2.png"]),
        ]
    )
    items = [LineItemRequest("B", 2), LineItemRequest("A", 1, "XL"), LineItemRequest("B", 1, "S")]

    priced = ProductPriceResolver(catalog).resolve(items)

    assert catalog.calls == [["B", "A"]]
    assert [p.product_id for p in priced] == ["B", "A", "B"]
    assert order_subtotal_cents(priced) == 2 * 250 + 100 + 250
    assert priced[1].size == "XL"


def test_resolver_reports_every_missing_id():
    catalog = CatalogStub([Product(id="A", name="Alpha", price_cents=100, image="a.png")])
    with pytest.raises(ProductNotFound) as e:
        ProductPriceResolver(catalog).resolve([LineItemRequest("X", 1), LineItemRequest("A", 1), LineItemRequest("Y", 1)])
    assert e.value.missing_ids == ["X", "Y"]
