import pytest

from line_items import LineItemStore, coerce_amount
from models import MAX_AMOUNT, ItemKind
from totals import compute_totals


def test_add_appends_blank_item_of_requested_kind():
    store = LineItemStore()
    items = store.add(ItemKind.CHARGE)
    items = store.add(ItemKind.DISCOUNT)

    assert [item.kind for item in items] == [ItemKind.CHARGE, ItemKind.DISCOUNT]
    assert all(item.title == "" and item.amount == 0 for item in items)
    assert items[0].id != items[1].id


def test_add_accepts_kind_string():
    store = LineItemStore()
    assert store.add("discount")[0].kind == ItemKind.DISCOUNT


def test_order_is_insertion_order_minus_removed():
    store = LineItemStore()
    ids = [store.add(ItemKind.CHARGE)[-1].id for _ in range(5)]

    store.remove(ids[1])
    store.update(ids[3], "title", "Water")
    store.add(ItemKind.DISCOUNT)
    store.remove(ids[4])

    remaining = [item.id for item in store.items]
    assert remaining[:3] == [ids[0], ids[2], ids[3]]
    assert len(remaining) == 4


def test_remove_unknown_id_is_noop():
    store = LineItemStore()
    store.add(ItemKind.CHARGE)
    before = [item.model_dump() for item in store.items]

    items = store.remove("does-not-exist")

    assert [item.model_dump() for item in items] == before


def test_update_title_and_amount():
    store = LineItemStore()
    item_id = store.add(ItemKind.CHARGE)[0].id

    store.update(item_id, "title", "Rent")
    items = store.update(item_id, "amount", "15000.50")

    assert items[0].title == "Rent"
    assert items[0].amount == 15000.50


@pytest.mark.parametrize("raw", ["abc", "", None, -5, "-0.01", float("nan"), float("inf")])
def test_update_amount_coerces_bad_input_to_zero(raw):
    store = LineItemStore()
    item_id = store.add(ItemKind.CHARGE)[0].id
    store.update(item_id, "amount", 100)

    items = store.update(item_id, "amount", raw)

    assert items[0].amount == 0


def test_update_unknown_id_is_noop():
    store = LineItemStore()
    store.add(ItemKind.CHARGE)
    items = store.update("missing", "amount", 50)
    assert items[0].amount == 0


def test_update_rejects_fields_that_are_not_editable():
    store = LineItemStore()
    item_id = store.add(ItemKind.CHARGE)[0].id
    with pytest.raises(ValueError):
        store.update(item_id, "kind", "discount")


def test_items_returns_copy_of_collection():
    store = LineItemStore()
    store.add(ItemKind.CHARGE)
    store.items.clear()
    assert len(store) == 1


def test_coerce_amount_keeps_valid_numbers():
    assert coerce_amount("12.5") == 12.5
    assert coerce_amount(0) == 0


def test_amount_above_ceiling_is_coerced_to_zero():
    assert coerce_amount(MAX_AMOUNT) == MAX_AMOUNT
    assert coerce_amount(MAX_AMOUNT * 10) == 0
    assert coerce_amount("1e308") == 0


def test_huge_amounts_keep_totals_computable():
    store = LineItemStore()
    for _ in range(2):
        item_id = store.add(ItemKind.CHARGE)[-1].id
        store.update(item_id, "amount", "1e308")

    totals = compute_totals(store.items)

    assert totals.subtotal == 0
    assert totals.total == 0
