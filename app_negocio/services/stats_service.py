# ==============================================================================
# SERVICIO DE ESTADÍSTICAS - Agregaciones compartidas
# ==============================================================================
# Funciones PURAS sobre listas de filas (ventas, líneas, productos, deudores).
# El panel principal, la página de deudores y el análisis usan estas mismas
# funciones, así los números siempre coinciden.
#
# REGLAS:
# - Nunca lanzan error con listas vacías (todo en cero, grupos vacíos)
# - Valores numéricos faltantes o nulos cuentan como 0
# - Ventana de fechas [inicio, fin] inclusiva en ambos extremos
# - Ganancia "realizada" = ventas pagadas; "potencial" = pendientes/vencidas
# ==============================================================================

from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Tuple

from app_negocio.models.dates import parse_datetime, utc_now
from app_negocio.models.entities import PaymentStatus
from app_negocio.performance_logger import profile_function


UNCATEGORIZED = 'Sin categoría'
UNKNOWN_PRODUCT = 'Producto desconocido'

TOP_PRODUCTS_LIMIT = 10
RECENT_SALES_LIMIT = 5

DATE_RANGES = ('daily', 'weekly', 'monthly', 'yearly', 'custom')


def _num(value: Any) -> float:
    """Número o 0 si falta / no es numérico."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _money(value: float) -> float:
    return round(value, 2)


# ==============================================================================
# RANGOS DE FECHAS
# ==============================================================================

def _start_of_day(dt: datetime) -> datetime:
    return dt.replace(hour=0, minute=0, second=0, microsecond=0)


def _end_of_day(dt: datetime) -> datetime:
    return dt.replace(hour=23, minute=59, second=59, microsecond=999999)


def resolve_date_range(
    range_name: str,
    now: datetime = None,
    start: Any = None,
    end: Any = None,
    default: str = 'daily'
) -> Tuple[datetime, datetime]:
    """
    Calcula la ventana de fechas de un reporte.

    Args:
        range_name: 'daily', 'weekly', 'monthly', 'yearly' o 'custom'
        now: Momento de referencia (UTC)
        start: Inicio para 'custom' (YYYY-MM-DD o ISO)
        end: Fin para 'custom'
        default: Rango usado si range_name es desconocido o el custom es inválido

    Returns:
        Tupla (inicio, fin) en UTC
    """
    now = parse_datetime(now) or utc_now()

    if range_name == 'daily':
        return _start_of_day(now), _end_of_day(now)

    if range_name == 'weekly':
        return now - timedelta(days=7), now

    if range_name == 'monthly':
        first = _start_of_day(now).replace(day=1)
        next_month = (first + timedelta(days=32)).replace(day=1)
        return first, next_month - timedelta(microseconds=1)

    if range_name == 'yearly':
        first = _start_of_day(now).replace(month=1, day=1)
        return first, _end_of_day(first.replace(month=12, day=31))

    if range_name == 'custom':
        start_dt = parse_datetime(start)
        end_dt = parse_datetime(end)
        if start_dt and end_dt and start_dt <= end_dt:
            return _start_of_day(start_dt), _end_of_day(end_dt)

    if default != range_name and default in DATE_RANGES and default != 'custom':
        return resolve_date_range(default, now)
    return _start_of_day(now), _end_of_day(now)


def filter_sales_in_window(
    sales: Iterable[Dict[str, Any]],
    start: datetime,
    end: datetime
) -> List[Dict[str, Any]]:
    """Ventas con sale_date dentro de [start, end]. Sin fecha = fuera."""
    result = []
    for sale in sales:
        dt = parse_datetime(sale.get('sale_date'))
        if dt is not None and start <= dt <= end:
            result.append(sale)
    return result


# ==============================================================================
# DEUDORES
# ==============================================================================

def debtor_stats(debtors: Iterable[Dict[str, Any]], now: datetime = None) -> Dict[str, Any]:
    """
    Resumen de deudas (global, sin ventana de fechas).

    Returns:
        {total_outstanding, overdue_debtors, total_resolved, active_debtors}
    """
    now = parse_datetime(now) or utc_now()
    outstanding = 0.0
    resolved = 0.0
    overdue = 0
    active = 0

    for debtor in debtors:
        amount = _num(debtor.get('amount_owed'))
        if debtor.get('is_resolved'):
            resolved += amount
            continue
        active += 1
        outstanding += amount
        due = parse_datetime(debtor.get('due_date'))
        if due is not None and due < now:
            overdue += 1

    return {
        'total_outstanding': _money(outstanding),
        'overdue_debtors': overdue,
        'total_resolved': _money(resolved),
        'active_debtors': active,
    }


# ==============================================================================
# VENTAS
# ==============================================================================

def sales_totals(sales: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Totales de un conjunto de ventas (ya filtrado por ventana).

    Returns:
        {revenue, cost, profit, realized_profit, potential_profit,
         sales_count, average_order_value}
    """
    revenue = 0.0
    cost = 0.0
    realized = 0.0
    potential = 0.0
    count = 0

    for sale in sales:
        amount = _num(sale.get('total_amount'))
        sale_cost = _num(sale.get('total_cost'))
        revenue += amount
        cost += sale_cost
        count += 1
        if sale.get('payment_status') == PaymentStatus.PAID.value:
            realized += amount - sale_cost
        else:
            potential += amount - sale_cost

    return {
        'revenue': _money(revenue),
        'cost': _money(cost),
        'profit': _money(revenue - cost),
        'realized_profit': _money(realized),
        'potential_profit': _money(potential),
        'sales_count': count,
        'average_order_value': _money(revenue / count) if count else 0.0,
    }


def _items_in_sales(
    sales: Iterable[Dict[str, Any]],
    items: Iterable[Dict[str, Any]]
) -> List[Dict[str, Any]]:
    sale_ids = {s.get('id') for s in sales}
    return [i for i in items if i.get('sale_id') in sale_ids]


def products_sold(sales: Iterable[Dict[str, Any]], items: Iterable[Dict[str, Any]]) -> int:
    """Unidades vendidas en las ventas dadas."""
    return int(sum(_num(i.get('quantity')) for i in _items_in_sales(sales, items)))


def _group_items(
    sales: Iterable[Dict[str, Any]],
    items: Iterable[Dict[str, Any]],
    products: Dict[str, Dict[str, Any]],
    by: str
) -> Dict[str, Dict[str, Any]]:
    groups: Dict[str, Dict[str, Any]] = {}
    for item in _items_in_sales(sales, items):
        product = products.get(item.get('product_id')) or {}
        category = product.get('category') or UNCATEGORIZED
        if by == 'category':
            key = category
            base = {'category': category}
        else:
            key = item.get('product_id') or ''
            base = {
                'product_id': key,
                'name': product.get('name') or UNKNOWN_PRODUCT,
                'category': category,
            }

        quantity = _num(item.get('quantity'))
        group = groups.setdefault(key, dict(base, quantity=0, revenue=0.0, cost=0.0))
        group['quantity'] += int(quantity)
        group['revenue'] += _num(item.get('unit_price')) * quantity
        group['cost'] += _num(item.get('unit_cost')) * quantity

    for group in groups.values():
        group['profit'] = _money(group['revenue'] - group['cost'])
        group['revenue'] = _money(group['revenue'])
        group['cost'] = _money(group['cost'])
    return groups


def by_category(
    sales: Iterable[Dict[str, Any]],
    items: Iterable[Dict[str, Any]],
    products: Dict[str, Dict[str, Any]]
) -> List[Dict[str, Any]]:
    """
    Agrupa las líneas vendidas por categoría del producto.

    Returns:
        [{category, quantity, revenue, cost, profit}] por ingresos desc
    """
    sales = list(sales)
    groups = _group_items(sales, items, products, 'category')
    return sorted(groups.values(), key=lambda g: (-g['revenue'], g['category']))


def by_product(
    sales: Iterable[Dict[str, Any]],
    items: Iterable[Dict[str, Any]],
    products: Dict[str, Dict[str, Any]]
) -> List[Dict[str, Any]]:
    """
    Agrupa las líneas vendidas por producto.

    Returns:
        [{product_id, name, category, quantity, revenue, cost, profit}]
    """
    sales = list(sales)
    groups = _group_items(sales, items, products, 'product')
    return sorted(groups.values(), key=lambda g: (-g['revenue'], g['name'], g['product_id']))


def top_products(product_rows: Iterable[Dict[str, Any]], limit: int = TOP_PRODUCTS_LIMIT) -> List[Dict[str, Any]]:
    """Los productos con más ganancia (resultado de by_product)."""
    ranked = sorted(product_rows, key=lambda g: (-g['profit'], g['name'], g['product_id']))
    return ranked[:limit]


def trend(
    sales: Iterable[Dict[str, Any]],
    start: datetime,
    end: datetime,
    bucket_days: int = 1
) -> List[Dict[str, Any]]:
    """
    Ingresos/costos/ganancia por intervalo dentro de la ventana.

    Cada intervalo dura bucket_days días a partir del inicio de la ventana
    (1 = por día, 30 = aproximación mensual para el rango anual).

    Returns:
        [{date, revenue, cost, profit, sales_count}] del más antiguo al más reciente
    """
    bucket_days = max(1, int(bucket_days))
    first_day = start.date()
    total_days = (end.date() - first_day).days + 1
    if total_days <= 0:
        return []
    bucket_count = (total_days + bucket_days - 1) // bucket_days

    buckets = []
    for index in range(bucket_count):
        label = first_day + timedelta(days=index * bucket_days)
        buckets.append({
            'date': label.isoformat(),
            'revenue': 0.0,
            'cost': 0.0,
            'sales_count': 0,
        })

    for sale in filter_sales_in_window(sales, start, end):
        dt = parse_datetime(sale.get('sale_date')).astimezone(start.tzinfo)
        index = (dt.date() - first_day).days // bucket_days
        if 0 <= index < bucket_count:
            bucket = buckets[index]
            bucket['revenue'] += _num(sale.get('total_amount'))
            bucket['cost'] += _num(sale.get('total_cost'))
            bucket['sales_count'] += 1

    for bucket in buckets:
        bucket['profit'] = _money(bucket['revenue'] - bucket['cost'])
        bucket['revenue'] = _money(bucket['revenue'])
        bucket['cost'] = _money(bucket['cost'])
    return buckets


# ==============================================================================
# INVENTARIO
# ==============================================================================

def inventory_value(products: Iterable[Dict[str, Any]]) -> float:
    """Σ costo × stock de los productos activos."""
    total = 0.0
    for product in products:
        if product.get('is_active', True):
            total += _num(product.get('cost')) * _num(product.get('stock_quantity'))
    return _money(total)


def active_products_count(products: Iterable[Dict[str, Any]]) -> int:
    return sum(1 for p in products if p.get('is_active', True))


# ==============================================================================
# SERVICIO (carga datos y compone reportes)
# ==============================================================================

class StatsService:
    """
    Servicio de reportes.

    Responsabilidades:
    - Leer una foto del almacén (ventas, líneas, productos, deudores)
    - Componer el panel principal y el análisis con las funciones puras
    """

    def __init__(self, sales_repo, products_repo, debtors_repo, customers_repo=None):
        """
        Args:
            sales_repo: Repositorio de ventas (y líneas)
            products_repo: Repositorio de productos
            debtors_repo: Repositorio de deudores
            customers_repo: Repositorio de clientes (nombres en ventas recientes)
        """
        self.sales_repo = sales_repo
        self.products_repo = products_repo
        self.debtors_repo = debtors_repo
        self.customers_repo = customers_repo

    def _snapshot(self, start: datetime, end: datetime):
        with self.sales_repo.store.transaction():
            sales = self.sales_repo.get_sales_by_date_range(start, end)
            items = self.sales_repo.get_items_for_sales(s['id'] for s in sales)
            products = {p['id']: p for p in self.products_repo.get_all()}
            debtors = self.debtors_repo.get_all()
        return sales, items, products, debtors

    def _window(self, range_name: Optional[str], start, end, now, default: str):
        if range_name not in DATE_RANGES:
            range_name = default
        window_start, window_end = resolve_date_range(range_name, now, start, end, default)
        bucket_days = 30 if range_name == 'yearly' else 1
        return range_name, window_start, window_end, bucket_days

    @profile_function(name="Calcular panel principal")
    def dashboard(
        self,
        range_name: str = None,
        start: Any = None,
        end: Any = None,
        now: datetime = None
    ) -> Dict[str, Any]:
        """
        Panel principal: totales de la ventana, deudas, inventario,
        ventas recientes y tendencia.
        """
        now = now or utc_now()
        range_name, window_start, window_end, bucket_days = self._window(
            range_name, start, end, now, 'daily'
        )
        sales, items, products, debtors = self._snapshot(window_start, window_end)

        debts = debtor_stats(debtors, now)
        recent = sorted(sales, key=lambda s: s.get('sale_date') or '', reverse=True)[:RECENT_SALES_LIMIT]
        customers = {}
        if self.customers_repo is not None and recent:
            customers = {c['id']: c for c in self.customers_repo.get_all()}

        return {
            'range': range_name,
            'start': window_start.isoformat(),
            'end': window_end.isoformat(),
            'totals': sales_totals(sales),
            'products_sold': products_sold(sales, items),
            'active_debtors': debts['active_debtors'],
            'debts': debts,
            'products_count': active_products_count(products.values()),
            'inventory_value': inventory_value(products.values()),
            'recent_sales': [
                {
                    'id': s['id'],
                    'customer_name': (customers.get(s.get('customer_id')) or {}).get('name', ''),
                    'total_amount': _num(s.get('total_amount')),
                    'payment_status': s.get('payment_status'),
                    'sale_date': s.get('sale_date'),
                }
                for s in recent
            ],
            'trend': trend(sales, window_start, window_end, bucket_days),
        }

    @profile_function(name="Calcular análisis de ventas")
    def analysis(
        self,
        range_name: str = None,
        start: Any = None,
        end: Any = None,
        now: datetime = None
    ) -> Dict[str, Any]:
        """Análisis: totales, categorías, productos más rentables y tendencia."""
        now = now or utc_now()
        range_name, window_start, window_end, bucket_days = self._window(
            range_name, start, end, now, 'monthly'
        )
        sales, items, products, _ = self._snapshot(window_start, window_end)
        product_rows = by_product(sales, items, products)

        return {
            'range': range_name,
            'start': window_start.isoformat(),
            'end': window_end.isoformat(),
            'totals': sales_totals(sales),
            'total_quantity': products_sold(sales, items),
            'by_category': by_category(sales, items, products),
            'top_products': top_products(product_rows),
            'trend': trend(sales, window_start, window_end, bucket_days),
        }

    def debtor_stats(self, now: datetime = None) -> Dict[str, Any]:
        return debtor_stats(self.debtors_repo.get_all(), now)
