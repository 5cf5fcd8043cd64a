import pytest

from app_negocio.errors import InsufficientStock, ValidationError


def _stock(container, product_id):
    return container.products_repo.get_stock(product_id)


def test_reserve_decrements_stock(container, make_product):
    a = make_product('Arroz', stock_quantity=5)

    reserved = container.inventory_service.reserve([(a['id'], 2)])

    assert reserved == [{'product_id': a['id'], 'name': 'Arroz', 'quantity': 2, 'new_stock': 3}]
    assert _stock(container, a['id']) == 3


def test_reserve_can_empty_stock(container, make_product):
    a = make_product('Arroz', stock_quantity=2)
    container.inventory_service.reserve([(a['id'], 2)])
    assert _stock(container, a['id']) == 0


def test_reserve_sums_repeated_lines_before_checking(container, make_product):
    a = make_product('Arroz', stock_quantity=3)

    with pytest.raises(InsufficientStock) as exc:
        container.inventory_service.reserve([(a['id'], 2), (a['id'], 2)])

    assert exc.value.product_names == ['Arroz']
    assert _stock(container, a['id']) == 3


def test_reserve_is_all_or_nothing(container, make_product):
    a = make_product('Arroz', stock_quantity=10)
    b = make_product('Fideos', stock_quantity=1)

    with pytest.raises(InsufficientStock) as exc:
        container.inventory_service.reserve([(a['id'], 4), (b['id'], 5)])

    assert exc.value.product_names == ['Fideos']
    assert 'Fideos' in str(exc.value)
    assert _stock(container, a['id']) == 10
    assert _stock(container, b['id']) == 1


def test_reserve_reports_every_short_product(container, make_product):
    a = make_product('Arroz', stock_quantity=0)
    b = make_product('Fideos', stock_quantity=1)

    with pytest.raises(InsufficientStock) as exc:
        container.inventory_service.reserve([(a['id'], 1), (b['id'], 2)])

    assert sorted(exc.value.product_names) == ['Arroz', 'Fideos']


def test_reserve_unknown_product(container):
    with pytest.raises(ValidationError):
        container.inventory_service.reserve([('no-existe', 1)])


@pytest.mark.parametrize('quantity', [0, -1, 1.5, 'dos', True, None])
def test_reserve_rejects_invalid_quantity(container, make_product, quantity):
    a = make_product('Arroz', stock_quantity=5)

    with pytest.raises(ValidationError):
        container.inventory_service.reserve([(a['id'], quantity)])

    assert _stock(container, a['id']) == 5


def test_reserve_accepts_integral_values(container, make_product):
    a = make_product('Arroz', stock_quantity=5)
    container.inventory_service.reserve([(a['id'], '2'), (a['id'], 1.0)])
    assert _stock(container, a['id']) == 2


def test_release_has_no_upper_bound(container, make_product):
    a = make_product('Arroz', stock_quantity=5)

    released, skipped = container.inventory_service.release([(a['id'], 10)])

    assert released[0]['new_stock'] == 15
    assert skipped == []
    assert _stock(container, a['id']) == 15


def test_release_skips_missing_products(container, make_product):
    a = make_product('Arroz', stock_quantity=1)

    released, skipped = container.inventory_service.release([(a['id'], 2), ('borrado', 3)])

    assert [r['product_id'] for r in released] == [a['id']]
    assert skipped == ['borrado']
    assert _stock(container, a['id']) == 3


def test_create_product_validates_values(container):
    inventory = container.inventory_service

    with pytest.raises(ValidationError):
        inventory.create_product('')
    with pytest.raises(ValidationError):
        inventory.create_product('Arroz', cost=-1)
    with pytest.raises(ValidationError):
        inventory.create_product('Arroz', stock_quantity=-3)
    with pytest.raises(ValidationError):
        inventory.create_product('Arroz', selling_price='caro')


def test_update_product_ignores_unknown_fields(container, make_product):
    a = make_product('Arroz', cost=10, stock_quantity=5)

    updated = container.inventory_service.update_product(
        a['id'], {'cost': '12.5', 'stock_quantity': 7, 'id': 'otro', 'color': 'rojo'}, user='ana@tienda.com'
    )

    assert updated['id'] == a['id']
    assert updated['cost'] == 12.5
    assert updated['stock_quantity'] == 7
    assert 'color' not in updated

    logs = container.audit_service.get_logs_by_type('PRODUCTO')
    assert logs[0]['related_id'] == a['id']


def test_product_text_fields_must_be_text(container, make_product):
    inventory = container.inventory_service

    with pytest.raises(ValidationError):
        inventory.create_product(123)
    with pytest.raises(ValidationError):
        inventory.create_product('Arroz', category=['Abarrotes'])

    p = make_product('Arroz')
    with pytest.raises(ValidationError):
        inventory.update_product(p['id'], {'name': 5})
    assert inventory.get_product(p['id'])['name'] == 'Arroz'
