import json

import pytest

from app_negocio.errors import StoreError
from app_negocio.repositories import (
    IAuditRepository,
    IDataStore,
    IDebtorsRepository,
    IProductsRepository,
    ISalesRepository,
    JsonDataStore,
)


def test_store_implements_interface(store):
    assert isinstance(store, IDataStore)
    assert store.supports_transactions is True


def test_insert_assigns_id_and_timestamps(store):
    row = store.insert('customers', {'name': 'Luis'})

    assert row['id']
    assert row['created_at'] == row['updated_at']
    assert store.select('customers') == [row]


def test_select_filters_orders_and_limits(store):
    store.insert('products', {'name': 'B', 'stock_quantity': 1, 'is_active': True})
    store.insert('products', {'name': 'A', 'stock_quantity': 5, 'is_active': True})
    store.insert('products', {'name': 'C', 'stock_quantity': 3, 'is_active': False})

    active = store.select('products', {'is_active': True}, order=[('name', 'asc')])
    assert [p['name'] for p in active] == ['A', 'B']

    by_stock = store.select('products', order=[('stock_quantity', 'desc')], limit=2)
    assert [p['name'] for p in by_stock] == ['A', 'C']


def test_select_with_list_filter_means_in(store):
    a = store.insert('products', {'name': 'A'})
    store.insert('products', {'name': 'B'})
    c = store.insert('products', {'name': 'C'})

    rows = store.select('products', {'id': [a['id'], c['id']]}, order=[('name', 'asc')])
    assert [r['name'] for r in rows] == ['A', 'C']


def test_select_returns_copies(store):
    store.insert('customers', {'name': 'Luis'})
    store.select('customers')[0]['name'] = 'Otro'
    assert store.select('customers')[0]['name'] == 'Luis'


def test_update_and_delete_report_counts(store):
    row = store.insert('products', {'name': 'A', 'stock_quantity': 1, 'updated_at': '2000-01-01T00:00:00+00:00'})

    assert store.update('products', {'stock_quantity': 7}, {'id': row['id']}) == 1
    updated = store.select('products', {'id': row['id']})[0]
    assert updated['stock_quantity'] == 7
    assert updated['updated_at'] != '2000-01-01T00:00:00+00:00'

    assert store.update('products', {'stock_quantity': 9}, {'id': 'missing'}) == 0
    assert store.delete('products', {'id': row['id']}) == 1
    assert store.select('products') == []


def test_update_and_delete_require_filter(store):
    with pytest.raises(StoreError):
        store.update('products', {'stock_quantity': 0}, {})
    with pytest.raises(StoreError):
        store.delete('products', {})


def test_unknown_table_is_store_error(store):
    with pytest.raises(StoreError):
        store.select('nope')


def test_transaction_commits_all_writes(store):
    with store.transaction():
        store.insert('customers', {'name': 'Luis'})
        store.insert('customers', {'name': 'Ana'})
        # Dentro de la transacción se ven las escrituras propias
        assert len(store.select('customers')) == 2

    assert len(store.select('customers')) == 2


def test_transaction_rolls_back_on_error(store):
    store.insert('products', {'name': 'A', 'stock_quantity': 5})

    with pytest.raises(RuntimeError):
        with store.transaction():
            store.update('products', {'stock_quantity': 0}, {'name': 'A'})
            store.insert('customers', {'name': 'Luis'})
            raise RuntimeError('falla a mitad de camino')

    assert store.select('products')[0]['stock_quantity'] == 5
    assert store.select('customers') == []


def test_nested_transaction_joins_outer(store):
    with pytest.raises(RuntimeError):
        with store.transaction():
            with store.transaction():
                store.insert('customers', {'name': 'Luis'})
            raise RuntimeError('falla la exterior')

    assert store.select('customers') == []


def test_data_persists_between_instances(tmp_path):
    JsonDataStore(str(tmp_path)).insert('customers', {'name': 'Luis'})

    reopened = JsonDataStore(str(tmp_path))
    assert [c['name'] for c in reopened.select('customers')] == ['Luis']


def test_corrupt_file_raises_store_error(tmp_path):
    (tmp_path / 'negocio.json').write_text('{ esto no es json', encoding='utf-8')

    store = JsonDataStore(str(tmp_path))
    with pytest.raises(StoreError):
        store.select('products')


def test_file_holds_every_table(tmp_path):
    JsonDataStore(str(tmp_path))
    data = json.loads((tmp_path / 'negocio.json').read_text(encoding='utf-8'))
    assert set(data) == set(JsonDataStore.TABLES)


def test_repositories_implement_interfaces(container):
    assert isinstance(container.products_repo, IProductsRepository)
    assert isinstance(container.sales_repo, ISalesRepository)
    assert isinstance(container.debtors_repo, IDebtorsRepository)
    assert isinstance(container.audit_repo, IAuditRepository)
