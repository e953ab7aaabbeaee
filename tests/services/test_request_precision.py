"""
Create/inspect round trips with arbitrary-precision line items.

Quantities are stored at 4 decimal places and prices at 2.  A request is
either rejected up front or its stored total equals the sum of its stored
item subtotals, so Inspect never reports an integrity violation for a
request the workflow accepted.
"""

from decimal import Decimal

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from procurement_kernel.domain.dtos import (
    AMOUNT_QUANTUM,
    QUANTITY_QUANTUM,
    LineItemSpec,
    sum_subtotals,
)
from procurement_kernel.exceptions import RequestValidationError

quantities = st.decimals(
    min_value=Decimal("0.000001"),
    max_value=Decimal("10000"),
    places=6,
    allow_nan=False,
    allow_infinity=False,
)

prices = st.decimals(
    min_value=Decimal("0"),
    max_value=Decimal("1000000"),
    places=4,
    allow_nan=False,
    allow_infinity=False,
)

items_strategy = st.lists(
    st.builds(LineItemSpec, description=st.just("Part"), quantity=quantities, unit_price=prices),
    min_size=1,
    max_size=5,
)


def fits_storage(item: LineItemSpec) -> bool:
    return (
        item.quantity == item.quantity.quantize(QUANTITY_QUANTUM)
        and item.unit_price == item.unit_price.quantize(AMOUNT_QUANTUM)
    )


@settings(
    max_examples=40,
    deadline=None,
    suppress_health_check=[HealthCheck.function_scoped_fixture, HealthCheck.too_slow],
)
@given(items=items_strategy)
def test_accepted_requests_pass_inspection(orchestrator, directory, items):
    try:
        record = orchestrator.create_request(
            title="Spare parts",
            justification="Line maintenance",
            area_id=directory.area_id,
            items=items,
            requester_id=directory.requester_id,
        )
    except RequestValidationError as exc:
        assert not all(fits_storage(item) for item in items)
        assert exc.field.startswith("items[")
        return

    assert all(fits_storage(item) for item in items)
    assert [(i.quantity, i.unit_price) for i in record.items] == [
        (i.quantity, i.unit_price) for i in items
    ]

    detail = orchestrator.inspect(record.id)
    assert detail.request.total_amount == record.total_amount
    assert detail.request.total_amount == sum_subtotals(detail.request.items)
    assert detail.request.total_amount == sum_subtotals(items)


def test_half_cent_price_is_rejected_not_rounded(orchestrator, directory):
    items = [LineItemSpec("Washer", Decimal("1000"), Decimal("0.005"))]
    try:
        orchestrator.create_request(
            title="Washers",
            justification="Stock",
            area_id=directory.area_id,
            items=items,
            requester_id=directory.requester_id,
        )
    except RequestValidationError as exc:
        assert exc.field == "items[1].unit_price"
    else:
        raise AssertionError("half-cent unit price was accepted")
