import threading
from datetime import datetime, timedelta, timezone

import pytest

from app_negocio.errors import ConsistencyWarning, NotAuthenticated, NotFound, ValidationError
from app_negocio.services import classify


NOW = datetime(2030, 1, 10, 12, 0, tzinfo=timezone.utc)


def _pending_sale(container, identity, product, due_date, customer='Ana', amount=15):
    return container.sales_service.create_sale(
        identity,
        customer,
        [{'product_id': product['id'], 'quantity': 1, 'unit_price': amount}],
        payment_status='pending',
        due_date=due_date,
    )


# ═══════════════════════════════════════════════════════════════════════════
# CLASIFICACIÓN DE VENCIMIENTOS
# ═══════════════════════════════════════════════════════════════════════════

def test_classify_due_exactly_now_is_not_overdue():
    assert classify(NOW, NOW) == ('due_soon', 0)


def test_classify_one_millisecond_late_is_overdue():
    status, days = classify(NOW - timedelta(milliseconds=1), NOW)
    assert status == 'overdue'
    assert days == 0


def test_classify_overdue_days_are_negative():
    assert classify(NOW - timedelta(days=3), NOW) == ('overdue', -3)


def test_classify_rounds_days_up():
    assert classify(NOW + timedelta(seconds=1), NOW) == ('due_soon', 1)
    assert classify(NOW + timedelta(days=7), NOW) == ('due_soon', 7)
    assert classify(NOW + timedelta(days=7, seconds=1), NOW) == ('on_track', 8)


def test_classify_accepts_iso_strings():
    assert classify('2030-01-20T12:00:00+00:00', NOW.isoformat()) == ('on_track', 10)
    # Sin zona horaria se interpreta como UTC
    assert classify('2030-01-10T12:00:00', NOW) == ('due_soon', 0)


def test_classify_invalid_date():
    with pytest.raises(ValidationError):
        classify('no es fecha', NOW)


# ═══════════════════════════════════════════════════════════════════════════
# COBROS
# ═══════════════════════════════════════════════════════════════════════════

def test_mark_paid_resolves_debtor_and_sale(container, identity, make_product):
    p = make_product(stock_quantity=5)
    sale = _pending_sale(container, identity, p, NOW + timedelta(days=5), amount=30)
    debtor = container.debtors_repo.get_by_sale(sale.id)

    result = container.debt_service.mark_paid(identity, debtor['id'])

    assert result['is_resolved'] is True
    assert container.sales_repo.get_by_id(sale.id)['payment_status'] == 'paid'

    pagos = container.audit_service.get_logs_by_type('PAGO')
    assert pagos[0]['related_id'] == debtor['id']
    assert pagos[0]['details']['amount'] == 30


def test_mark_paid_twice_is_rejected(container, identity, make_product):
    p = make_product(stock_quantity=5)
    sale = _pending_sale(container, identity, p, NOW)
    debtor = container.debtors_repo.get_by_sale(sale.id)
    container.debt_service.mark_paid(identity, debtor['id'])

    with pytest.raises(ValidationError):
        container.debt_service.mark_paid(identity, debtor['id'])


def test_mark_paid_unknown_debtor(container, identity):
    with pytest.raises(NotFound):
        container.debt_service.mark_paid(identity, 'no-existe')


def test_mark_paid_requires_identity(container, identity, make_product):
    p = make_product(stock_quantity=5)
    sale = _pending_sale(container, identity, p, NOW)
    debtor = container.debtors_repo.get_by_sale(sale.id)

    with pytest.raises(NotAuthenticated):
        container.debt_service.mark_paid(None, debtor['id'])

    assert container.debtors_repo.get_by_id(debtor['id'])['is_resolved'] is False


def test_mark_paid_without_sale_rolls_back(container, identity, make_product):
    """Si la venta ya no existe, el deudor no queda resuelto."""
    p = make_product(stock_quantity=5)
    sale = _pending_sale(container, identity, p, NOW)
    debtor = container.debtors_repo.get_by_sale(sale.id)
    container.store.delete('sales', {'id': sale.id})

    with pytest.raises(NotFound):
        container.debt_service.mark_paid(identity, debtor['id'])

    assert container.debtors_repo.get_by_id(debtor['id'])['is_resolved'] is False


# ═══════════════════════════════════════════════════════════════════════════
# LISTADO Y RESUMEN
# ═══════════════════════════════════════════════════════════════════════════

def test_list_open_debtors_sorted_and_annotated(container, identity, make_product):
    p = make_product(stock_quantity=10)
    late = _pending_sale(container, identity, p, NOW - timedelta(days=2), customer='Luis')
    later = _pending_sale(container, identity, p, NOW + timedelta(days=30), customer='Ana')
    soon = _pending_sale(container, identity, p, NOW + timedelta(days=3), customer='Eva')
    paid = _pending_sale(container, identity, p, NOW + timedelta(days=1), customer='Sol')
    container.debt_service.mark_paid(identity, container.debtors_repo.get_by_sale(paid.id)['id'])

    rows = container.debt_service.list_open_debtors(NOW)

    assert [r['sale_id'] for r in rows] == [late.id, soon.id, later.id]
    assert [r['due_status'] for r in rows] == ['overdue', 'due_soon', 'on_track']
    assert [r['days_until_due'] for r in rows] == [-2, 3, 30]
    assert rows[0]['customer']['name'] == 'Luis'
    assert rows[0]['sale']['total_amount'] == 15


def test_debt_stats(container, identity, make_product):
    p = make_product(stock_quantity=10)
    _pending_sale(container, identity, p, NOW - timedelta(days=1), amount=10)
    _pending_sale(container, identity, p, NOW, amount=20)
    paid = _pending_sale(container, identity, p, NOW + timedelta(days=9), amount=40)
    container.debt_service.mark_paid(identity, container.debtors_repo.get_by_sale(paid.id)['id'])

    stats = container.debt_service.get_stats(NOW)

    assert stats == {
        'total_outstanding': 30,
        'overdue_debtors': 1,
        'total_resolved': 40,
        'active_debtors': 2,
    }


# ═══════════════════════════════════════════════════════════════════════════
# CONSISTENCIA
# ═══════════════════════════════════════════════════════════════════════════

def test_consistent_data_has_no_issues(container, identity, make_product):
    p = make_product(stock_quantity=5)
    _pending_sale(container, identity, p, NOW)

    assert container.debt_service.check_consistency(identity) == []


def test_paid_sale_with_open_debtor_warns(container, identity, make_product):
    p = make_product(stock_quantity=5)
    sale = _pending_sale(container, identity, p, NOW)
    container.store.update('sales', {'payment_status': 'paid'}, {'id': sale.id})

    with pytest.warns(ConsistencyWarning):
        issues = container.debt_service.check_consistency(identity)

    assert len(issues) == 1
    assert issues[0]['sale_id'] == sale.id
    assert container.audit_service.get_logs_by_type('CONSISTENCIA')[0]['user'] == identity.email


def test_debtor_without_sale_warns(container, identity, make_product):
    p = make_product(stock_quantity=5)
    sale = _pending_sale(container, identity, p, NOW)
    container.store.delete('sales', {'id': sale.id})

    with pytest.warns(ConsistencyWarning):
        issues = container.debt_service.check_consistency()

    assert issues[0]['problem'] == 'Deudor sin venta'


def test_concurrent_mark_paid_resolves_once(container, identity, make_product):
    p = make_product(stock_quantity=5)
    sale = _pending_sale(container, identity, p, NOW)
    debtor = container.debtors_repo.get_by_sale(sale.id)
    service = container.debt_service

    workers = 10
    lock = threading.Lock()
    paid, rejected, unexpected = [], [], []
    barrier = threading.Barrier(workers)

    def pay():
        barrier.wait()
        try:
            result = service.mark_paid(identity, debtor['id'])
        except ValidationError:
            with lock:
                rejected.append(1)
        except Exception as e:
            with lock:
                unexpected.append(e)
        else:
            with lock:
                paid.append(result)

    threads = [threading.Thread(target=pay) for _ in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert unexpected == []
    assert len(paid) == 1
    assert len(rejected) == workers - 1
    assert paid[0]['is_resolved'] is True
    assert container.sales_repo.get_by_id(sale.id)['payment_status'] == 'paid'
    assert len(container.audit_service.get_logs_by_type('PAGO')) == 1


def test_debtor_row_starts_open(container, identity, make_product):
    p = make_product(stock_quantity=5)
    sale = _pending_sale(container, identity, p, NOW, amount=12.5)

    debtor = container.debtors_repo.get_by_sale(sale.id)
    assert debtor['is_resolved'] is False
    assert debtor['amount_owed'] == 12.5
    assert debtor['customer_id'] == sale.customer_id

    container.debt_service.mark_paid(identity, debtor['id'])
    pago = container.audit_service.get_logs_by_type('PAGO')[0]
    assert pago['related_id'] == debtor['id']
    assert pago['details']['amount'] == 12.5
