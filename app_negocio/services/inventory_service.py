# ==============================================================================
# SERVICIO DE INVENTARIO
# ==============================================================================
# Centraliza toda la lógica de negocio relacionada con productos y stock.
# Incluye el libro de stock: reserve() descuenta al vender y release()
# devuelve al eliminar una venta.
# ==============================================================================

import math
from typing import Any, Dict, Iterable, List, Optional, Tuple

from app_negocio.errors import InsufficientStock, NotFound, ValidationError
from app_negocio.models.entities import Product
from app_negocio.repositories.products_repository import ProductsRepository
from app_negocio.services.audit_service import AuditService


# ==============================================================================
# VALIDACIÓN DE VALORES NUMÉRICOS
# ==============================================================================

def parse_quantity(value: Any, label: str = 'Cantidad') -> int:
    """
    Convierte una cantidad a entero positivo.

    Acepta 2, 2.0 o "2". Rechaza 0, negativos, decimales y booleanos.

    Raises:
        ValidationError: Si no es un entero mayor a 0
    """
    if isinstance(value, bool):
        raise ValidationError(f'{label} inválida: {value!r}')
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{label} inválida: {value!r}')
    if not number.is_integer() or number <= 0:
        raise ValidationError(f'{label} debe ser un entero mayor a 0')
    return int(number)


def parse_amount(value: Any, label: str = 'Monto') -> float:
    """
    Convierte un monto a float no negativo.

    Raises:
        ValidationError: Si no es numérico, es negativo o no es finito
    """
    if isinstance(value, bool) or value is None or value == '':
        raise ValidationError(f'{label} inválido: {value!r}')
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{label} inválido: {value!r}')
    if not math.isfinite(number) or number < 0:
        raise ValidationError(f'{label} debe ser un número mayor o igual a 0')
    return number


def parse_text(value: Any, label: str = 'Texto') -> str:
    """
    Texto sin espacios en los extremos. None = ''.

    Raises:
        ValidationError: Si el valor no es texto (número, lista, dict...)
    """
    if value is None:
        return ''
    if not isinstance(value, str):
        raise ValidationError(f'{label} debe ser texto')
    return value.strip()


def _parse_stock(value: Any) -> int:
    if isinstance(value, bool):
        raise ValidationError('Stock inválido')
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f'Stock inválido: {value!r}')
    if not number.is_integer() or number < 0:
        raise ValidationError('El stock debe ser un entero mayor o igual a 0')
    return int(number)


class InventoryService:
    """
    Servicio para gestión de inventario.

    Responsabilidades:
    - CRUD de productos
    - Control de stock (reserva al vender, devolución al eliminar venta)
    - Valor del inventario
    """

    # Campos que se pueden modificar desde update_product
    UPDATABLE_FIELDS = ('name', 'category', 'cost', 'selling_price', 'stock_quantity', 'is_active')

    def __init__(
        self,
        products_repo: ProductsRepository,
        audit_service: AuditService = None
    ):
        """
        Inicializa el servicio de inventario.

        Args:
            products_repo: Repositorio de productos
            audit_service: Servicio de auditoría (opcional)
        """
        self.products_repo = products_repo
        self.audit_service = audit_service

    @property
    def store(self):
        return self.products_repo.store

    # =========================================================================
    # OPERACIONES DE PRODUCTOS
    # =========================================================================

    def get_product(self, product_id: str) -> Optional[Dict[str, Any]]:
        """
        Obtiene un producto por su ID.

        Args:
            product_id: ID del producto

        Returns:
            Datos del producto o None
        """
        if not product_id:
            return None
        return self.products_repo.get_by_id(product_id)

    def require_product(self, product_id: str) -> Dict[str, Any]:
        """Igual que get_product pero lanza NotFound si no existe."""
        product = self.get_product(product_id)
        if product is None:
            raise NotFound(f'Producto no encontrado: {product_id}')
        return product

    def get_products(self, product_ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
        """Varios productos de una sola lectura: {id: producto}."""
        return self.products_repo.get_many(product_ids)

    def list_products(self) -> List[Dict[str, Any]]:
        """Todos los productos (activos e inactivos), ordenados por nombre."""
        return self.products_repo.get_all(order=[('name', 'asc')])

    def list_active_products(self) -> List[Dict[str, Any]]:
        """Productos ofrecidos para la venta."""
        return self.products_repo.list_active()

    def create_product(
        self,
        name: str,
        category: str = '',
        cost: Any = 0,
        selling_price: Any = 0,
        stock_quantity: Any = 0,
        is_active: bool = True,
        user: str = None
    ) -> Dict[str, Any]:
        """
        Crea un nuevo producto.

        Args:
            name: Nombre del producto (obligatorio)
            category: Categoría
            cost: Costo unitario (>= 0)
            selling_price: Precio sugerido (>= 0)
            stock_quantity: Stock inicial (entero >= 0)
            is_active: Si se ofrece para la venta
            user: Usuario que crea (para auditoría)

        Returns:
            Producto creado (con id)

        Raises:
            ValidationError: Si algún dato es inválido
        """
        name = parse_text(name, 'Nombre del producto')
        if not name:
            raise ValidationError('El nombre del producto es obligatorio.')

        product = Product(
            id=None,
            name=name,
            category=parse_text(category, 'Categoría'),
            cost=parse_amount(cost, 'Costo'),
            selling_price=parse_amount(selling_price, 'Precio de venta'),
            stock_quantity=_parse_stock(stock_quantity),
            is_active=bool(is_active),
        )
        created = self.products_repo.insert(product.to_dict())

        if self.audit_service and user:
            self.audit_service.log_product_created(user, created['id'], name)

        return created

    def update_product(
        self,
        product_id: str,
        updates: Dict[str, Any],
        user: str = None
    ) -> Dict[str, Any]:
        """
        Actualiza datos de un producto.

        Args:
            product_id: ID del producto
            updates: Campos a actualizar (se ignoran los no permitidos)
            user: Usuario que actualiza (para auditoría)

        Returns:
            Producto actualizado

        Raises:
            NotFound: Si el producto no existe
            ValidationError: Si algún valor es inválido
        """
        product = self.require_product(product_id)

        filtered = {k: v for k, v in (updates or {}).items() if k in self.UPDATABLE_FIELDS}

        if 'name' in filtered:
            filtered['name'] = parse_text(filtered['name'], 'Nombre del producto')
            if not filtered['name']:
                raise ValidationError('El nombre del producto es obligatorio.')
        if 'category' in filtered:
            filtered['category'] = parse_text(filtered['category'], 'Categoría')
        if 'cost' in filtered:
            filtered['cost'] = round(parse_amount(filtered['cost'], 'Costo'), 2)
        if 'selling_price' in filtered:
            filtered['selling_price'] = round(parse_amount(filtered['selling_price'], 'Precio de venta'), 2)
        if 'stock_quantity' in filtered:
            filtered['stock_quantity'] = _parse_stock(filtered['stock_quantity'])
        if 'is_active' in filtered:
            filtered['is_active'] = bool(filtered['is_active'])

        if filtered:
            self.products_repo.update_by_id(product_id, filtered)
            product = self.require_product(product_id)

            if self.audit_service and user:
                self.audit_service.log_product_updated(user, product_id, product.get('name', ''), filtered)

        return product

    # =========================================================================
    # LIBRO DE STOCK
    # =========================================================================

    @staticmethod
    def _sum_by_product(items: Iterable[Tuple[str, Any]]) -> Dict[str, int]:
        """Suma las cantidades de líneas repetidas del mismo producto."""
        totals: Dict[str, int] = {}
        for product_id, quantity in items:
            if not product_id:
                raise ValidationError('Línea sin producto')
            totals[product_id] = totals.get(product_id, 0) + parse_quantity(quantity)
        return totals

    def reserve(self, items: Iterable[Tuple[str, Any]]) -> List[Dict[str, Any]]:
        """
        Descuenta stock para una venta.

        Primero valida TODAS las líneas; si alguna supera el stock no se
        descuenta nada. Las cantidades del mismo producto se suman antes
        de validar.

        Args:
            items: [(product_id, quantity), ...]

        Returns:
            [{product_id, name, quantity, new_stock}, ...]

        Raises:
            ValidationError: Producto inexistente o cantidad inválida
            InsufficientStock: Con los nombres de los productos sin stock
        """
        totals = self._sum_by_product(items)
        if not totals:
            return []

        with self.store.transaction():
            products = self.products_repo.get_many(totals.keys())

            missing = [pid for pid in totals if pid not in products]
            if missing:
                raise ValidationError('Producto no encontrado: ' + ', '.join(missing))

            short_names = []
            details = []
            for pid, quantity in totals.items():
                product = products[pid]
                available = int(product.get('stock_quantity', 0) or 0)
                if quantity > available:
                    short_names.append(product.get('name', pid))
                    details.append(
                        f"{product.get('name', pid)}: solicitado {quantity}, disponible {available}"
                    )
            if short_names:
                raise InsufficientStock(short_names, details)

            reserved = []
            for pid, quantity in totals.items():
                product = products[pid]
                new_stock = int(product.get('stock_quantity', 0) or 0) - quantity
                self.products_repo.set_stock(pid, new_stock)
                reserved.append({
                    'product_id': pid,
                    'name': product.get('name', ''),
                    'quantity': quantity,
                    'new_stock': new_stock,
                })
            return reserved

    def release(self, items: Iterable[Tuple[str, Any]]) -> Tuple[List[Dict[str, Any]], List[str]]:
        """
        Devuelve stock (al eliminar una venta). Sin límite superior.

        Las líneas cuyo producto ya no existe se omiten.

        Args:
            items: [(product_id, quantity), ...]

        Returns:
            Tupla (devueltos, ids_omitidos)
        """
        totals = self._sum_by_product(items)
        released = []
        skipped = []
        if not totals:
            return released, skipped

        with self.store.transaction():
            products = self.products_repo.get_many(totals.keys())
            for pid, quantity in totals.items():
                product = products.get(pid)
                if product is None:
                    skipped.append(pid)
                    continue
                new_stock = int(product.get('stock_quantity', 0) or 0) + quantity
                self.products_repo.set_stock(pid, new_stock)
                released.append({
                    'product_id': pid,
                    'name': product.get('name', ''),
                    'quantity': quantity,
                    'new_stock': new_stock,
                })
        return released, skipped
