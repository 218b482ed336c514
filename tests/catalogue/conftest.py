import pytest


@pytest.fixture(scope="session")
def _catalogue_domain():
    from catalogue.domain import catalogue

    return catalogue


@pytest.fixture(autouse=True)
def run_in_catalogue(_catalogue_domain):
    """Push the catalogue domain context before each test."""
    ctx = _catalogue_domain.domain_context()
    ctx.push()

    yield

    ctx.pop()


@pytest.fixture()
def product_id(_catalogue_domain):
    from catalogue.product.creation import CreateProduct

    return _catalogue_domain.process(
        CreateProduct(name="Mechanical Keyboard", sku="KB-MECH-001", price=89.99, stock=10, minimum_stock=3),
        asynchronous=False,
    )
