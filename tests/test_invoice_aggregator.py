from datetime import date

import pytest

from textile_erp.exceptions import ValidationFailure
from textile_erp.models import InvoiceItem, InvoiceItemUpdate, InvoiceType, TaxType
from textile_erp.services.invoice_aggregator import (
    aggregate_challans, build_invoice, compute_invoice_totals, compute_item_amounts, round_currency,
    update_line_item
)
from textile_erp.services.rate_service import RateBook


@pytest.fixture
def rate_book(client, process_types):
    return RateBook(client, process_types)


def test_single_challan_client_rate_with_gst(rate_book, make_challan):
    items = aggregate_challans([make_challan("DC-1", process=["DYEING"], mtr=100)], rate_book)

    assert len(items) == 1
    item = items[0]
    assert item.rate == 5.0
    assert item.subtotal == pytest.approx(500.0)
    assert item.cgst == pytest.approx(12.5)
    assert item.sgst == pytest.approx(12.5)
    assert item.amount == pytest.approx(525.0)
    assert item.hsn_sac == "998821"


def test_challans_sharing_process_and_rate_merge(rate_book, make_challan):
    challans = [
        make_challan("DC-1", mtr=100, pcs=10),
        make_challan("DC-2", mtr=50, pcs=5, date=date(2024, 4, 3)),
        make_challan("DC-3", mtr=25.5, pcs=2),
    ]
    items = aggregate_challans(challans, rate_book)

    assert len(items) == 1
    item = items[0]
    assert item.pcs == 17
    assert item.mtr == pytest.approx(175.5)
    assert item.challan_number == "DC-1, DC-2, DC-3"
    assert item.challan_date == date(2024, 4, 3)


def test_multi_process_challan_replicates_full_meterage(rate_book, make_challan):
    items = aggregate_challans([make_challan("DC-1", process=["Dyeing", "Washing"], mtr=80)], rate_book)

    assert [item.process for item in items] == ["Dyeing", "Washing"]
    assert all(item.mtr == 80 for item in items)
    assert all(item.challan_number == "DC-1" for item in items)


def test_split_process_overrides_process(rate_book, make_challan):
    items = aggregate_challans(
        [make_challan("DC-1", process=["Dyeing"], split_process=["Printing"], mtr=10)], rate_book
    )
    assert [(item.process, item.rate) for item in items] == [("Printing", 4.5)]


def test_challan_number_listed_once_when_repeated(rate_book, make_challan):
    challan = make_challan("DC-7", process=["Washing", " Washing "], mtr=10)
    items = aggregate_challans([challan], rate_book)

    assert len(items) == 1
    assert items[0].challan_number == "DC-7"
    assert items[0].mtr == 20


def test_design_mode_groups_by_design_number(rate_book, make_challan):
    challans = [
        make_challan("DC-1", design_no="D-101", mtr=10),
        make_challan("DC-2", design_no="D-202", mtr=20),
        make_challan("DC-3", design_no="D-101", mtr=30),
    ]
    items = aggregate_challans(challans, rate_book, invoice_type=InvoiceType.DESIGN)

    by_design = {item.design_no: item for item in items}
    assert set(by_design) == {"D-101", "D-202"}
    assert by_design["D-101"].mtr == 40
    assert by_design["D-101"].description == "Design: D-101 (DYEING)"
    assert by_design["D-101"].challan_number == "DC-1, DC-3"


def test_process_mode_ignores_design_number(rate_book, make_challan):
    challans = [
        make_challan("DC-1", design_no="D-2", mtr=10),
        make_challan("DC-2", design_no="D-1", mtr=20),
    ]
    items = aggregate_challans(challans, rate_book)

    assert len(items) == 1
    assert items[0].description == "DYEING"
    assert items[0].design_no == "D-1, D-2"


def test_ngst_has_no_tax(rate_book, make_challan):
    items = aggregate_challans(
        [make_challan("DC-1", process=["Printing"], mtr=33)], rate_book, tax_type=TaxType.NGST
    )
    totals = compute_invoice_totals(items)

    assert totals.total_cgst == 0
    assert totals.total_sgst == 0
    assert totals.total_amount == round_currency(33 * 4.5)


def test_empty_selection_gives_zero_totals(rate_book):
    items = aggregate_challans([], rate_book)
    totals = compute_invoice_totals(items)

    assert items == []
    assert totals.total_amount == 0
    assert totals.rounded_off == 0


def test_unknown_process_priced_at_zero(rate_book, make_challan):
    items = aggregate_challans([make_challan("DC-1", process=["Calendering"])], rate_book)
    assert items[0].rate == 0
    assert items[0].amount == 0


def test_totals_round_half_up():
    assert round_currency(10.5) == 11
    assert round_currency(11.5) == 12
    assert round_currency(10.49) == 10


def test_rounded_off_matches_total_difference():
    items = [
        InvoiceItem(process="Dyeing", mtr=12.3, rate=7.1),
        InvoiceItem(process="Washing", mtr=3.7, rate=2.9),
    ]
    items = [compute_item_amounts(item, TaxType.GST) for item in items]
    totals = compute_invoice_totals(items)

    gross = totals.sub_total + totals.total_cgst + totals.total_sgst
    assert totals.total_amount == round_currency(gross)
    assert totals.rounded_off == pytest.approx(totals.total_amount - gross)
    assert totals.total_tax_amount == pytest.approx(totals.total_cgst + totals.total_sgst)


def test_process_spelling_variants_stay_separate_lines(rate_book, make_challan):
    items = aggregate_challans(
        [make_challan("DC-1", process=["Dyeing"], mtr=10), make_challan("DC-2", process=["DYEING"], mtr=20)],
        rate_book,
    )

    assert sorted(item.process for item in items) == ["DYEING", "Dyeing"]
    assert {item.rate for item in items} == {5.0}


def test_exact_half_total_rounds_up():
    # 0.7 + 0.7 + 0.7 + 0.4 is 2.4999999999999996 in binary floating point
    items = [InvoiceItem(process="Dyeing", mtr=mtr, rate=1) for mtr in (0.7, 0.7, 0.7, 0.4)]
    items = [compute_item_amounts(item, TaxType.NGST) for item in items]
    totals = compute_invoice_totals(items)

    assert totals.sub_total == 2.5
    assert totals.total_amount == 3
    assert totals.rounded_off == 0.5


def test_exact_half_total_with_gst_rounds_up():
    # 10 x 9.5 = 95.00, taxes 2.375 + 2.375, gross 99.75
    items = [InvoiceItem(process="Dyeing", mtr=9.5, rate=10)]
    totals = compute_invoice_totals([compute_item_amounts(item, TaxType.GST) for item in items])
    assert totals.total_tax_amount == 4.75
    assert totals.total_amount == 100

    half = [InvoiceItem(process="Dyeing", mtr=0.1, rate=1) for _ in range(5)]
    totals = compute_invoice_totals([compute_item_amounts(item, TaxType.NGST) for item in half])
    assert totals.sub_total == 0.5
    assert totals.total_amount == 1


def test_update_line_item_recomputes_only_that_item():
    item = InvoiceItem(process="Dyeing", mtr=100, rate=5, subtotal=500, cgst=12.5, sgst=12.5, amount=525)
    updated = update_line_item(item, InvoiceItemUpdate(rate=6, hsn_sac=" 998822 "), TaxType.GST)

    assert updated.rate == 6
    assert updated.subtotal == pytest.approx(600)
    assert updated.amount == pytest.approx(630)
    assert updated.hsn_sac == "998822"
    assert item.rate == 5


def test_update_line_item_clamps_negative_values():
    item = InvoiceItem(process="Dyeing", mtr=100, rate=5)
    updated = update_line_item(item, InvoiceItemUpdate(mtr=-4), TaxType.GST)
    assert updated.mtr == 0
    assert updated.amount == 0


def test_build_invoice_recalculates_with_invoice_tax_type():
    item = InvoiceItem(process="Dyeing", mtr=100, rate=5, subtotal=500, cgst=12.5, sgst=12.5, amount=525)
    invoice = build_invoice("INV-1", date(2024, 4, 30), "Sri Murugan Textiles", [item], tax_type=TaxType.NGST)

    assert invoice.items[0].cgst == 0
    assert invoice.sub_total == 500
    assert invoice.total_amount == 500
    assert invoice.rounded_off == 0


def test_build_invoice_rejects_missing_number_and_date():
    item = InvoiceItem(process="Dyeing", mtr=100, rate=5)
    with pytest.raises(ValidationFailure) as excinfo:
        build_invoice("  ", None, "Sri Murugan Textiles", [item])

    assert set(excinfo.value.errors) == {"invoice_number", "invoice_date"}


def test_build_invoice_rejects_empty_items_and_zero_rate():
    with pytest.raises(ValidationFailure) as excinfo:
        build_invoice("INV-1", date(2024, 4, 30), "Sri Murugan Textiles", [])
    assert "items" in excinfo.value.errors

    zero = InvoiceItem(id="line-1", process="Calendering", mtr=10, rate=0)
    with pytest.raises(ValidationFailure) as excinfo:
        build_invoice("INV-1", date(2024, 4, 30), "Sri Murugan Textiles", [zero])
    assert "rate_line-1" in excinfo.value.errors
