# tests/test_cart.py

import pytest

from storefront.exceptions import OutOfStock
from storefront.services.cart import append_line, remove_line


@pytest.fixture
def product_sm(make_product, inventory):
    """Товар P с вариациями S (0 шт.) и M (3 шт.)."""
    product = make_product(
        product_id="P", name="Mochila", price=2500.0,
        colors=[{"color": "S", "stock": 0}, {"color": "M", "stock": 3}],
    )
    inventory.load([product])
    return product


def test_add_rejects_variant_without_stock(cart, product_sm):
    with pytest.raises(OutOfStock) as exc_info:
        cart.add(product_sm, "S")

    assert exc_info.value.product_id == "P"
    assert exc_info.value.variant_label == "S"
    assert cart.lines == ()


def test_repeated_adds_append_independent_lines(cart, product_sm):
    cart.add(product_sm, "M")
    assert cart.count == 1
    assert cart.lines[0].quantity == 1
    assert cart.lines[0].selected_variant_label == "M"

    cart.add(product_sm, "M")
    cart.add(product_sm, "M")

    assert cart.count == 3
    assert [line.quantity for line in cart.lines] == [1, 1, 1]
    assert cart.units == 3
    assert cart.total == 7500.0


def test_add_checks_live_inventory_not_caller_copy(cart, inventory, product_sm):
    # Вызывающий держит устаревшую копию товара, где у M еще есть остаток
    inventory.set_stock("P", "M", -3)

    with pytest.raises(OutOfStock):
        cart.add(product_sm, "M")
    assert cart.count == 0


def test_unknown_product_or_variant_is_out_of_stock(cart, make_product, product_sm):
    with pytest.raises(OutOfStock):
        cart.add(make_product(product_id="ghost"), "Único")
    with pytest.raises(OutOfStock):
        cart.add(product_sm, "XL")


def test_line_keeps_snapshot_of_product_at_add_time(cart, inventory, product_sm):
    line = cart.add(product_sm, "M")

    inventory.set_stock("P", "M", -100)

    assert line.product.variant("M").stock == 3
    assert cart.lines[0].product.variant("M").stock == 3
    assert inventory.stock_for("P", "M") == 0


def test_remove_by_index_and_out_of_range_is_noop(cart, make_product, inventory):
    a = make_product(product_id="a", price=10.0)
    b = make_product(product_id="b", price=20.0)
    inventory.load([a, b])
    cart.add(a, "Único")
    cart.add(b, "Único")

    assert cart.remove(5) is False
    assert cart.remove(-1) is False
    assert cart.count == 2

    assert cart.remove(0) is True
    assert [line.product.id for line in cart.lines] == ["b"]
    assert cart.total == 20.0


def test_clear_empties_cart(cart, product_sm):
    cart.add(product_sm, "M")
    cart.clear()
    assert cart.count == 0
    assert cart.total == 0


def test_pure_transitions_do_not_mutate_input(cart, product_sm):
    line = cart.add(product_sm, "M")
    lines = (line,)

    assert append_line(lines, line) == (line, line)
    assert remove_line(lines, 3) is lines
    assert remove_line(lines, 0) == ()
    assert lines == (line,)
