# ==============================================================================
# SERVICIO DE VENTAS
# ==============================================================================
# Centraliza toda la lógica de negocio relacionada con ventas.
# Registrar y eliminar una venta son operaciones de varios pasos
# (cliente, cabecera, líneas, stock, deudor) que se ejecutan dentro de UNA
# transacción del almacén: o se guarda todo o no se guarda nada.
# ==============================================================================

from typing import Any, Dict, Iterable, List, Optional

from app_negocio.errors import NotAuthenticated, NotFound, ValidationError
from app_negocio.models.dates import to_iso, utc_now
from app_negocio.models.entities import (
    CartLine,
    Customer,
    Identity,
    PAYMENT_STATUSES,
    PaymentStatus,
    Sale,
    SaleItem,
)
from app_negocio.performance_logger import profile_function
from app_negocio.repositories.customers_repository import CustomersRepository
from app_negocio.repositories.debtors_repository import DebtorsRepository
from app_negocio.repositories.sales_repository import SalesRepository
from app_negocio.services.audit_service import AuditService
from app_negocio.services.inventory_service import InventoryService, parse_amount, parse_quantity, parse_text


def _require_identity(identity: Optional[Identity]) -> Identity:
    if identity is None or not identity.id:
        raise NotAuthenticated()
    return identity


def _audit_user(identity: Identity) -> str:
    return identity.email or identity.id


class SalesService:
    """
    Servicio para gestión de ventas.

    Responsabilidades:
    - Registrar ventas desde un carrito (cliente, totales, líneas, stock, deudor)
    - Eliminar ventas devolviendo el stock
    - Listar ventas con cliente y nombres de productos
    """

    def __init__(
        self,
        sales_repo: SalesRepository,
        customers_repo: CustomersRepository,
        debtors_repo: DebtorsRepository,
        inventory_service: InventoryService,
        audit_service: AuditService = None
    ):
        """
        Inicializa el servicio de ventas.

        Args:
            sales_repo: Repositorio de ventas
            customers_repo: Repositorio de clientes
            debtors_repo: Repositorio de deudores
            inventory_service: Servicio de inventario (libro de stock)
            audit_service: Servicio de auditoría (opcional)
        """
        self.sales_repo = sales_repo
        self.customers_repo = customers_repo
        self.debtors_repo = debtors_repo
        self.inventory_service = inventory_service
        self.audit_service = audit_service

    @property
    def store(self):
        return self.sales_repo.store

    # =========================================================================
    # VALIDACIÓN
    # =========================================================================

    @staticmethod
    def _parse_cart(cart: Iterable[Any]) -> List[CartLine]:
        """
        Convierte y valida las líneas del carrito.

        Raises:
            ValidationError: Carrito vacío o línea inválida
        """
        lines = []
        for index, raw in enumerate(cart or [], start=1):
            line = raw if isinstance(raw, CartLine) else CartLine.from_dict(raw or {})
            if not line.product_id:
                raise ValidationError(f'Línea {index}: falta el producto')
            line.quantity = parse_quantity(line.quantity, f'Línea {index}: cantidad')
            line.unit_price = parse_amount(line.unit_price, f'Línea {index}: precio unitario')
            if line.unit_cost is not None:
                line.unit_cost = parse_amount(line.unit_cost, f'Línea {index}: costo unitario')
            lines.append(line)

        if not lines:
            raise ValidationError('El carrito está vacío')
        return lines

    @staticmethod
    def _parse_payment_status(payment_status: Any) -> str:
        status = str(payment_status or '').strip().lower()
        if status not in PAYMENT_STATUSES:
            raise ValidationError(
                f"Estado de pago inválido: {payment_status!r}. "
                f"Válidos: {', '.join(sorted(PAYMENT_STATUSES))}"
            )
        return status

    @staticmethod
    def _parse_date(value: Any, label: str) -> Optional[str]:
        if value is None or value == '':
            return None
        iso = to_iso(value)
        if iso is None:
            raise ValidationError(f'{label} inválida: {value!r}')
        return iso

    # =========================================================================
    # CREACIÓN DE VENTAS
    # =========================================================================

    @profile_function(name="Registrar venta")
    def create_sale(
        self,
        identity: Identity,
        customer_name: str,
        cart: Iterable[Any],
        payment_status: str = PaymentStatus.PENDING.value,
        due_date: Any = None,
        contact_info: Dict[str, Any] = None,
        sale_date: Any = None,
        notes: str = None
    ) -> Sale:
        """
        Registra una venta.
        Esta es la ÚNICA función que crea ventas - centralizada.

        Pasos (en una sola transacción):
        1. Buscar cliente por nombre exacto o crearlo (con email/teléfono)
        2. Calcular totales
        3. Insertar cabecera
        4. Insertar una línea por cada línea del carrito
        5. Descontar stock
        6. Si no está pagada, crear el deudor

        Args:
            identity: Usuario que registra la venta
            customer_name: Nombre del cliente
            cart: Líneas [{product_id, quantity, unit_price, unit_cost?}]
            payment_status: 'paid', 'pending' u 'overdue'
            due_date: Vencimiento (obligatorio si no está pagada)
            contact_info: {'email', 'phone'} para un cliente nuevo
            sale_date: Fecha de venta (por defecto: ahora)
            notes: Observaciones

        Returns:
            Venta guardada con sus líneas

        Raises:
            NotAuthenticated: Sin usuario
            ValidationError: Datos inválidos o producto inexistente
            InsufficientStock: Alguna cantidad supera el stock
            StoreError: Fallo del almacén
        """
        identity = _require_identity(identity)

        # Solo se quitan los espacios de los extremos; la búsqueda es exacta
        name = parse_text(customer_name, 'Nombre del cliente')
        if not name:
            raise ValidationError('El nombre del cliente es obligatorio')

        lines = self._parse_cart(cart)
        status = self._parse_payment_status(payment_status)
        due_iso = self._parse_date(due_date, 'Fecha de vencimiento')
        if status != PaymentStatus.PAID.value and not due_iso:
            raise ValidationError('Una venta no pagada requiere fecha de vencimiento')
        sale_date_iso = self._parse_date(sale_date, 'Fecha de venta') or utc_now().isoformat()
        contact = contact_info or {}
        if not isinstance(contact, dict):
            raise ValidationError('Datos de contacto inválidos')

        with self.store.transaction():
            products = self.inventory_service.get_products(line.product_id for line in lines)
            missing = sorted({line.product_id for line in lines if line.product_id not in products})
            if missing:
                raise ValidationError('Producto no encontrado: ' + ', '.join(missing))

            for line in lines:
                product = products[line.product_id]
                if line.unit_cost is None:
                    line.unit_cost = float(product.get('cost', 0) or 0)
                line.name = product.get('name', '')

            customer = self.customers_repo.find_by_name(name)
            if customer is None:
                customer = self.customers_repo.create(
                    name,
                    email=parse_text(contact.get('email'), 'Email'),
                    phone=parse_text(contact.get('phone'), 'Teléfono'),
                )

            total_amount = sum(line.line_total for line in lines)
            total_cost = sum(line.line_cost for line in lines)

            sale = Sale(
                id=None,
                customer_id=customer['id'],
                user_id=identity.id,
                total_amount=total_amount,
                total_cost=total_cost,
                payment_status=status,
                sale_date=sale_date_iso,
                due_date=due_iso,
                notes=parse_text(notes, 'Notas') or None,
            )
            header = self.sales_repo.create_sale(sale.to_dict())

            item_rows = self.sales_repo.create_items(header['id'], [
                SaleItem(
                    id=None,
                    sale_id=header['id'],
                    product_id=line.product_id,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    unit_cost=line.unit_cost,
                ).to_dict()
                for line in lines
            ])

            reserved = self.inventory_service.reserve(
                (line.product_id, line.quantity) for line in lines
            )

            if status != PaymentStatus.PAID.value:
                self.debtors_repo.create_debtor(
                    header['id'], customer['id'], total_amount, due_iso
                )

        names = {line.product_id: line.name for line in lines}
        for row in item_rows:
            row['product_name'] = names.get(row['product_id'], '')

        if self.audit_service:
            user = _audit_user(identity)
            self.audit_service.log_sale_created(
                user, header['id'], name, total_amount, status, len(item_rows)
            )
            self.audit_service.log_stock_reserved(user, header['id'], reserved)

        return Sale.from_dict(header, item_rows)

    # =========================================================================
    # ELIMINACIÓN
    # =========================================================================

    @profile_function(name="Eliminar venta")
    def delete_sale(self, identity: Identity, sale_id: str) -> Dict[str, Any]:
        """
        Elimina una venta, devuelve su stock y elimina su deudor.

        Las líneas cuyo producto ya no existe se omiten (sin error).

        Args:
            identity: Usuario que elimina
            sale_id: ID de la venta

        Returns:
            Dict con sale_id, restored, skipped, debtors_removed

        Raises:
            NotAuthenticated: Sin usuario
            NotFound: Si la venta no existe
        """
        identity = _require_identity(identity)

        with self.store.transaction():
            sale = self.sales_repo.get_by_id(sale_id) if sale_id else None
            if sale is None:
                raise NotFound('Venta no encontrada')

            items = self.sales_repo.get_items(sale_id)
            restored, skipped = self.inventory_service.release(
                (item['product_id'], item['quantity']) for item in items
            )
            debtors_removed = self.debtors_repo.delete_by_sale(sale_id)
            self.sales_repo.delete_sale(sale_id)

        if self.audit_service:
            user = _audit_user(identity)
            self.audit_service.log_sale_deleted(
                user, sale_id, float(sale.get('total_amount', 0) or 0), debtors_removed
            )
            self.audit_service.log_stock_released(user, sale_id, restored, skipped)

        return {
            'sale_id': sale_id,
            'restored': restored,
            'skipped': skipped,
            'debtors_removed': debtors_removed,
        }

    # =========================================================================
    # CONSULTAS
    # =========================================================================

    def _with_details(self, sales: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Agrega cliente, líneas y nombres de producto a cada venta."""
        if not sales:
            return []

        items = self.sales_repo.get_items_for_sales(s['id'] for s in sales)
        products = self.inventory_service.get_products({i.get('product_id') for i in items})
        customers = {c['id']: c for c in self.customers_repo.get_all()}

        items_by_sale: Dict[str, List[Dict[str, Any]]] = {}
        for item in items:
            product = products.get(item.get('product_id')) or {}
            item['product_name'] = product.get('name', '')
            items_by_sale.setdefault(item['sale_id'], []).append(item)

        result = []
        for row in sales:
            sale = Sale.from_dict(row, items_by_sale.get(row['id'], []))
            data = sale.to_dict(with_items=True)
            customer = customers.get(row.get('customer_id')) or {}
            data['customer'] = Customer.from_dict(customer).to_dict()
            data['created_at'] = row.get('created_at')
            result.append(data)
        return result

    @profile_function(name="Cargar ventas")
    def list_sales(self) -> List[Dict[str, Any]]:
        """
        Todas las ventas, más recientes primero, con cliente y líneas.

        Returns:
            Lista de ventas como diccionarios
        """
        with self.store.transaction():
            return self._with_details(self.sales_repo.list_sales())

    def get_sale(self, sale_id: str) -> Dict[str, Any]:
        """
        Obtiene una venta con cliente y líneas.

        Raises:
            NotFound: Si la venta no existe
        """
        with self.store.transaction():
            sale = self.sales_repo.get_by_id(sale_id) if sale_id else None
            if sale is None:
                raise NotFound('Venta no encontrada')
            return self._with_details([sale])[0]
