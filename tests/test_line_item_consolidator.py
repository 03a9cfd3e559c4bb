from __future__ import annotations

from decimal import Decimal

from ftz_outbound.models.entry_summary import EntrySummaryLineItem
from ftz_outbound.models.master_data import Customer
from ftz_outbound.models.preshipment import Preshipment, PreshipmentItem
from ftz_outbound.services.grand_totals import calculate_grand_totals
from ftz_outbound.services.line_item_consolidator import consolidate_line_items


def _preshipment(pk: int, customer: str, items: list[dict]) -> Preshipment:
    preshipment = Preshipment(id=pk, shipment_id=f"SHP-{pk}", customer=Customer(name=customer))
    for index, item in enumerate(items, start=1):
        preshipment.items.append(PreshipmentItem(item_number=index, **item))
    return preshipment


def test_matching_keys_merge_into_one_line():
    first = _preshipment(
        1,
        "Acme Motors",
        [
            {
                "hts_code": "8708.80.6590",
                "country_of_origin": "MX",
                "description": "bracket",
                "quantity": Decimal("10"),
                "total_value": Decimal("100.00"),
                "duty_rate": Decimal("0.025"),
                "duty_amount": Decimal("2.50"),
            }
        ],
    )
    second = _preshipment(
        2,
        "Baja Parts",
        [
            {
                "hts_code": "8708.80.6590",
                "country_of_origin": "MX",
                "description": "bracket",
                "quantity": Decimal("15"),
                "unit_value": Decimal("10.00"),
                "duty_rate": Decimal("0.050"),
                "duty_amount": Decimal("9.00"),
            }
        ],
    )

    lines = consolidate_line_items([first, second])

    assert len(lines) == 1
    line = lines[0]
    assert line.line_number == 1
    assert line.quantity == Decimal("25")
    assert line.total_value == Decimal("250.00")
    assert line.consolidated_from_count == 2
    assert line.source_preshipments == [1, 2]
    assert line.source_customers == "Acme Motors, Baja Parts"
    assert line.unit_value == Decimal("10.00")
    # duty figures stay as first seen
    assert line.duty_rate == Decimal("0.025")
    assert line.duty_amount == Decimal("2.50")


def test_missing_key_parts_share_na_bucket():
    preshipment = _preshipment(
        7,
        "Acme Motors",
        [
            {"hts_code": None, "country_of_origin": "", "description": None, "quantity": Decimal("2")},
            {"hts_code": "  ", "country_of_origin": None, "description": "", "quantity": Decimal("3")},
            {"hts_code": "8708.30", "country_of_origin": "CN", "description": "rotor", "quantity": Decimal("1")},
        ],
    )

    lines = consolidate_line_items([preshipment])

    assert [(line.hts_code, line.country_of_origin, line.description) for line in lines] == [
        ("N/A", "N/A", "N/A"),
        ("8708.30", "CN", "rotor"),
    ]
    assert lines[0].quantity == Decimal("5")
    assert lines[0].total_value == Decimal("0")
    assert [line.line_number for line in lines] == [1, 2]


def test_line_numbers_follow_first_appearance():
    first = _preshipment(
        1,
        "Acme Motors",
        [
            {"hts_code": "1111", "country_of_origin": "US", "description": "a", "quantity": Decimal("1")},
            {"hts_code": "2222", "country_of_origin": "US", "description": "b", "quantity": Decimal("1")},
        ],
    )
    second = _preshipment(
        2,
        "Acme Motors",
        [
            {"hts_code": "3333", "country_of_origin": "US", "description": "c", "quantity": Decimal("1")},
            {"hts_code": "1111", "country_of_origin": "US", "description": "a", "quantity": Decimal("4")},
        ],
    )

    lines = consolidate_line_items([first, second])

    assert [(line.line_number, line.hts_code, line.quantity) for line in lines] == [
        (1, "1111", Decimal("5")),
        (2, "2222", Decimal("1")),
        (3, "3333", Decimal("1")),
    ]
    assert lines[0].source_customers == "Acme Motors"


def test_grand_totals_sum_line_values():
    lines = [
        EntrySummaryLineItem(
            total_value=Decimal("125.00"),
            duty_amount=Decimal("3.13"),
            antidumping_duty_amount=Decimal("0"),
            countervailing_duty_amount=Decimal("1.00"),
        ),
        EntrySummaryLineItem(
            total_value=Decimal("200.00"),
            duty_amount=Decimal("5.00"),
            antidumping_duty_amount=Decimal("2.00"),
            countervailing_duty_amount=Decimal("0"),
        ),
    ]

    totals = calculate_grand_totals(lines)

    assert totals.total_entered_value == Decimal("325.00")
    assert totals.grand_total_duty_amount == Decimal("8.13")
    assert totals.grand_total_antidumping_duty_amount == Decimal("2.00")
    assert totals.grand_total_countervailing_duty_amount == Decimal("1.00")
    assert totals.grand_total_user_fee_amount == Decimal("0")
    assert totals.grand_total_tax_amount == Decimal("0")
    assert totals.estimated_total_amount == Decimal("333.13")
    assert calculate_grand_totals(lines) == totals


def test_grand_totals_empty():
    totals = calculate_grand_totals([])
    assert totals.total_entered_value == Decimal("0")
    assert totals.estimated_total_amount == Decimal("0")
