import pytest
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def sales_bed():
    from sales.domain import sales

    bed = DomainFixture(sales)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(sales_bed):
    with sales_bed.domain_context():
        yield


@pytest.fixture(autouse=True)
def _reset_numbering():
    """Numbers handed out by one test must not leak into the next."""
    from sales.numbering import invoice_numbers, order_numbers

    order_numbers.reset()
    invoice_numbers.reset()
    yield
