"""Application tests for AdjustStock via domain.process()."""

import pytest
from catalogue.product.lookup import find_products, oversold_products
from catalogue.product.product import Product
from catalogue.stock.adjustment import AdjustStock
from protean import current_domain
from shared.errors import InsufficientStockError, NotFoundError


def _adjust(product_id, delta, **kwargs):
    return current_domain.process(AdjustStock(product_id=product_id, quantity_delta=delta, **kwargs), asynchronous=False)


class TestAdjustStock:
    def test_adjustment_is_persisted(self, product_id):
        assert _adjust(product_id, -4, reason="Damaged") is True
        product = current_domain.repository_for(Product).get(product_id)
        assert product.stock == 6
        assert len(product.movements) == 1

    def test_repeated_reference_is_skipped(self, product_id):
        _adjust(product_id, -4, reference="order-1:created", allow_negative=True)
        assert _adjust(product_id, -4, reference="order-1:created", allow_negative=True) is False
        assert find_products([product_id])[0].stock == 6

    def test_manual_adjustment_below_zero_is_refused(self, product_id):
        with pytest.raises(InsufficientStockError):
            _adjust(product_id, -11)
        assert find_products([product_id])[0].stock == 10

    def test_unknown_product(self):
        with pytest.raises(NotFoundError):
            _adjust("missing-product", 1)


class TestLookup:
    def test_find_products_skips_missing_ids(self, product_id):
        found = find_products(["missing", product_id, product_id])
        assert [str(p.id) for p in found] == [product_id]

    def test_oversold_report(self, product_id):
        assert oversold_products() == []
        _adjust(product_id, -13, reference="order-9:created", allow_negative=True)
        [product] = oversold_products()
        assert product.stock == -3
