import pytest
from ordering.gateway import set_customer_directory, set_product_catalog
from ordering.gateway.fake_adapter import FakeProductCatalog, StaticCustomerDirectory
from ordering.gateway.port import ProductSnapshot
from ordering.order.workflow import ItemRequest, OrderWorkflow


@pytest.fixture(scope="session")
def ordering_domain():
    from ordering.domain import ordering

    return ordering


@pytest.fixture(autouse=True)
def _ctx(ordering_domain):
    with ordering_domain.domain_context():
        yield


def make_products():
    return [
        ProductSnapshot(id="prod-001", name="Widget", sku="WID-001", price=10.0, stock=20),
        ProductSnapshot(id="prod-002", name="Gadget", sku="GAD-002", price=20.0, stock=5),
        ProductSnapshot(id="prod-003", name="Gizmo", sku="GIZ-003", price=60.0, stock=3),
        ProductSnapshot(id="prod-retired", name="Old Thing", sku="OLD-001", price=5.0, stock=50, is_active=False),
    ]


@pytest.fixture()
def catalog():
    catalog = FakeProductCatalog(make_products())
    set_product_catalog(catalog)
    return catalog


@pytest.fixture()
def customers():
    directory = StaticCustomerDirectory()
    set_customer_directory(directory)
    return directory


@pytest.fixture()
def workflow(catalog, customers):
    return OrderWorkflow()


@pytest.fixture()
def placed_order(workflow):
    """A Pending order: 3 x Widget @ 10.00 and 1 x Gadget @ 20.00."""
    return workflow.create_order(
        customer_id="cust-001",
        items=[ItemRequest(product_id="prod-001", quantity=3), ItemRequest(product_id="prod-002", quantity=1)],
    )
