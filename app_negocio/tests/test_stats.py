import copy
from datetime import datetime, timedelta, timezone

import pytest

from app_negocio.services import stats_service as stats


UTC = timezone.utc
NOW = datetime(2024, 2, 15, 15, 30, tzinfo=UTC)


def _sale(sale_id, amount, cost, status='paid', when=NOW):
    return {
        'id': sale_id,
        'total_amount': amount,
        'total_cost': cost,
        'payment_status': status,
        'sale_date': when.isoformat() if when else None,
    }


def _item(sale_id, product_id, quantity, unit_price, unit_cost):
    return {
        'sale_id': sale_id,
        'product_id': product_id,
        'quantity': quantity,
        'unit_price': unit_price,
        'unit_cost': unit_cost,
    }


PRODUCTS = {
    'p1': {'id': 'p1', 'name': 'Arroz', 'category': 'Abarrotes', 'cost': 2, 'stock_quantity': 10, 'is_active': True},
    'p2': {'id': 'p2', 'name': 'Jabón', 'category': 'Limpieza', 'cost': 1.5, 'stock_quantity': 4, 'is_active': True},
    'p3': {'id': 'p3', 'name': 'Fideos', 'category': '', 'cost': 1, 'stock_quantity': 100, 'is_active': False},
}


# ═══════════════════════════════════════════════════════════════════════════
# ENTRADAS VACÍAS
# ═══════════════════════════════════════════════════════════════════════════

def test_empty_inputs_are_zero():
    assert stats.sales_totals([]) == {
        'revenue': 0,
        'cost': 0,
        'profit': 0,
        'realized_profit': 0,
        'potential_profit': 0,
        'sales_count': 0,
        'average_order_value': 0,
    }
    assert stats.debtor_stats([], NOW) == {
        'total_outstanding': 0,
        'overdue_debtors': 0,
        'total_resolved': 0,
        'active_debtors': 0,
    }
    assert stats.products_sold([], []) == 0
    assert stats.by_category([], [], {}) == []
    assert stats.top_products([]) == []
    assert stats.inventory_value([]) == 0


# ═══════════════════════════════════════════════════════════════════════════
# TOTALES
# ═══════════════════════════════════════════════════════════════════════════

def test_sales_totals_split_realized_and_potential():
    sales = [
        _sale('s1', 100, 60, 'paid'),
        _sale('s2', 50, 20, 'pending'),
        _sale('s3', 10, 5, 'overdue'),
    ]

    totals = stats.sales_totals(sales)

    assert totals['revenue'] == 160
    assert totals['cost'] == 85
    assert totals['profit'] == 75
    assert totals['realized_profit'] == 40
    assert totals['potential_profit'] == 35
    assert totals['sales_count'] == 3
    assert totals['average_order_value'] == pytest.approx(53.33)


def test_missing_numbers_count_as_zero():
    sales = [{'id': 's1', 'payment_status': 'paid'}, _sale('s2', None, 'x')]

    totals = stats.sales_totals(sales)

    assert totals['revenue'] == 0
    assert totals['cost'] == 0
    assert totals['sales_count'] == 2


def test_aggregations_do_not_mutate_input():
    sales = [_sale('s1', 30, 20), _sale('s2', 15, 10, 'pending')]
    items = [_item('s1', 'p1', 2, 15, 10), _item('s2', 'p2', 1, 15, 10)]
    before = copy.deepcopy((sales, items, PRODUCTS))

    first = (stats.sales_totals(sales), stats.by_category(sales, items, PRODUCTS))
    second = (stats.sales_totals(sales), stats.by_category(sales, items, PRODUCTS))

    assert first == second
    assert (sales, items, PRODUCTS) == before


# ═══════════════════════════════════════════════════════════════════════════
# AGRUPACIONES
# ═══════════════════════════════════════════════════════════════════════════

def test_by_category_groups_and_sorts_by_revenue():
    sales = [_sale('s1', 0, 0), _sale('s2', 0, 0)]
    items = [
        _item('s1', 'p1', 2, 5, 2),
        _item('s2', 'p1', 1, 5, 2),
        _item('s1', 'p2', 10, 3, 1.5),
        _item('s2', 'p3', 1, 4, 1),
        _item('s2', 'borrado', 1, 2, 1),
        # Línea de una venta fuera del conjunto
        _item('otra', 'p1', 50, 5, 2),
    ]

    rows = stats.by_category(sales, items, PRODUCTS)

    assert [r['category'] for r in rows] == ['Limpieza', 'Abarrotes', 'Sin categoría']
    abarrotes = rows[1]
    assert abarrotes['quantity'] == 3
    assert abarrotes['revenue'] == 15
    assert abarrotes['cost'] == 6
    assert abarrotes['profit'] == 9
    sin_categoria = rows[2]
    assert sin_categoria['quantity'] == 2
    assert sin_categoria['revenue'] == 6


def test_top_products_by_profit_with_limit():
    sales = [_sale('s1', 0, 0)]
    items = [
        _item('s1', 'p1', 1, 10, 2),    # ganancia 8
        _item('s1', 'p2', 10, 2, 1.5),  # ganancia 5, más ingresos
        _item('s1', 'p3', 1, 4, 1),     # ganancia 3
    ]
    rows = stats.by_product(sales, items, PRODUCTS)

    top = stats.top_products(rows, limit=2)

    assert [r['product_id'] for r in top] == ['p1', 'p2']
    assert top[0]['name'] == 'Arroz'


def test_unknown_product_label():
    rows = stats.by_product([_sale('s1', 0, 0)], [_item('s1', 'borrado', 1, 2, 1)], PRODUCTS)
    assert rows[0]['name'] == 'Producto desconocido'
    assert rows[0]['category'] == 'Sin categoría'


def test_products_sold_counts_units_in_sales():
    sales = [_sale('s1', 0, 0)]
    items = [_item('s1', 'p1', 2, 1, 1), _item('s1', 'p2', 3, 1, 1), _item('s2', 'p1', 9, 1, 1)]
    assert stats.products_sold(sales, items) == 5


def test_inventory_value_only_active_products():
    assert stats.inventory_value(PRODUCTS.values()) == 26
    assert stats.active_products_count(PRODUCTS.values()) == 2


# ═══════════════════════════════════════════════════════════════════════════
# VENTANAS Y TENDENCIA
# ═══════════════════════════════════════════════════════════════════════════

def test_window_is_inclusive():
    start = datetime(2024, 2, 1, tzinfo=UTC)
    end = datetime(2024, 2, 29, 23, 59, 59, tzinfo=UTC)
    sales = [
        _sale('inicio', 1, 0, when=start),
        _sale('fin', 1, 0, when=end),
        _sale('antes', 1, 0, when=start - timedelta(microseconds=1)),
        _sale('sin_fecha', 1, 0, when=None),
    ]

    inside = stats.filter_sales_in_window(sales, start, end)

    assert [s['id'] for s in inside] == ['inicio', 'fin']


def test_resolve_date_range_presets():
    start, end = stats.resolve_date_range('daily', NOW)
    assert start == datetime(2024, 2, 15, tzinfo=UTC)
    assert end.date() == NOW.date() and end.hour == 23

    start, end = stats.resolve_date_range('weekly', NOW)
    assert end - start == timedelta(days=7)

    start, end = stats.resolve_date_range('monthly', NOW)
    assert start == datetime(2024, 2, 1, tzinfo=UTC)
    assert end.date().isoformat() == '2024-02-29'

    start, end = stats.resolve_date_range('yearly', NOW)
    assert start == datetime(2024, 1, 1, tzinfo=UTC)
    assert end.date().isoformat() == '2024-12-31'


def test_resolve_custom_range_and_fallback():
    start, end = stats.resolve_date_range('custom', NOW, '2024-01-10', '2024-01-12')
    assert start == datetime(2024, 1, 10, tzinfo=UTC)
    assert end.date().isoformat() == '2024-01-12'

    # Rango invertido o inválido: se usa el rango por defecto
    start, end = stats.resolve_date_range('custom', NOW, '2024-01-12', '2024-01-10', default='monthly')
    assert start == datetime(2024, 2, 1, tzinfo=UTC)
    start, end = stats.resolve_date_range('custom', NOW, 'ayer', None)
    assert start == datetime(2024, 2, 15, tzinfo=UTC)


def test_trend_daily_buckets():
    start = datetime(2024, 2, 10, tzinfo=UTC)
    end = datetime(2024, 2, 12, 23, 59, 59, tzinfo=UTC)
    sales = [
        _sale('a', 10, 4, when=datetime(2024, 2, 10, 9, tzinfo=UTC)),
        _sale('b', 5, 1, when=datetime(2024, 2, 10, 18, tzinfo=UTC)),
        _sale('c', 7, 2, when=datetime(2024, 2, 12, 23, tzinfo=UTC)),
        _sale('d', 99, 0, when=datetime(2024, 2, 13, tzinfo=UTC)),
    ]

    rows = stats.trend(sales, start, end)

    assert [r['date'] for r in rows] == ['2024-02-10', '2024-02-11', '2024-02-12']
    assert rows[0] == {'date': '2024-02-10', 'revenue': 15, 'cost': 5, 'sales_count': 2, 'profit': 10}
    assert rows[1]['sales_count'] == 0
    assert rows[2]['profit'] == 5


def test_trend_thirty_day_buckets_for_a_year():
    start = datetime(2023, 1, 1, tzinfo=UTC)
    end = datetime(2023, 12, 31, 23, 59, 59, tzinfo=UTC)
    sales = [_sale('a', 10, 0, when=datetime(2023, 1, 31, tzinfo=UTC))]

    rows = stats.trend(sales, start, end, bucket_days=30)

    assert len(rows) == 13
    assert rows[1]['date'] == '2023-01-31'
    assert rows[1]['revenue'] == 10


def test_debtor_stats_overdue_is_strict():
    debtors = [
        {'amount_owed': 10, 'is_resolved': False, 'due_date': NOW.isoformat()},
        {'amount_owed': 5, 'is_resolved': False, 'due_date': (NOW - timedelta(seconds=1)).isoformat()},
        {'amount_owed': 7, 'is_resolved': True, 'due_date': (NOW - timedelta(days=9)).isoformat()},
    ]

    result = stats.debtor_stats(debtors, NOW)

    assert result == {
        'total_outstanding': 15,
        'overdue_debtors': 1,
        'total_resolved': 7,
        'active_debtors': 2,
    }


# ═══════════════════════════════════════════════════════════════════════════
# PANEL Y ANÁLISIS (con almacén)
# ═══════════════════════════════════════════════════════════════════════════

def test_dashboard_reads_store(container, identity, make_product):
    now = datetime.now(UTC)
    p = make_product('Arroz', cost=10, stock_quantity=5)
    make_product('Viejo', cost=3, stock_quantity=2, is_active=False)
    container.sales_service.create_sale(
        identity, 'Ana', [{'product_id': p['id'], 'quantity': 2, 'unit_price': 15}], payment_status='paid'
    )
    container.sales_service.create_sale(
        identity, 'Luis', [{'product_id': p['id'], 'quantity': 1, 'unit_price': 15}],
        payment_status='pending', due_date=now + timedelta(days=3)
    )

    board = container.stats_service.dashboard('monthly', now=now)

    assert board['range'] == 'monthly'
    assert board['totals']['revenue'] == 45
    assert board['totals']['realized_profit'] == 10
    assert board['totals']['potential_profit'] == 5
    assert board['products_sold'] == 3
    assert board['active_debtors'] == 1
    assert board['debts']['total_outstanding'] == 15
    assert board['products_count'] == 1
    assert board['inventory_value'] == 20
    assert {s['customer_name'] for s in board['recent_sales']} == {'Ana', 'Luis'}


def test_dashboard_unknown_range_uses_daily(container):
    board = container.stats_service.dashboard('semestral', now=NOW)
    assert board['range'] == 'daily'
    assert board['totals']['sales_count'] == 0
    assert len(board['trend']) == 1


def test_analysis_groups_store_sales(container, identity, make_product):
    now = datetime.now(UTC)
    a = make_product('Arroz', category='Abarrotes', cost=10, stock_quantity=5)
    b = make_product('Jabón', category='Limpieza', cost=1, stock_quantity=5)
    container.sales_service.create_sale(
        identity, 'Ana',
        [{'product_id': a['id'], 'quantity': 1, 'unit_price': 15},
         {'product_id': b['id'], 'quantity': 3, 'unit_price': 2}],
        payment_status='paid'
    )

    result = container.stats_service.analysis(now=now)

    assert result['range'] == 'monthly'
    assert result['total_quantity'] == 4
    assert [c['category'] for c in result['by_category']] == ['Abarrotes', 'Limpieza']
    assert result['top_products'][0]['name'] == 'Arroz'
