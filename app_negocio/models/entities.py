# ==============================================================================
# ENTIDADES DEL DOMINIO - Definiciones de dataclasses
# ==============================================================================
# Cada entidad representa un concepto del negocio.
# Diseñadas para ser independientes del mecanismo de persistencia:
# las filas del almacén son diccionarios planos con los nombres de campo
# de cada tabla (products, customers, sales, sale_items, debtors, notes).
# ==============================================================================

from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any
from enum import Enum


# ==============================================================================
# ENUMERACIONES - Estados y tipos válidos
# ==============================================================================

class PaymentStatus(str, Enum):
    """Estados de pago de una venta."""
    PAID = "paid"          # Pagada (ganancia realizada)
    PENDING = "pending"    # Pendiente de pago (genera deudor)
    OVERDUE = "overdue"    # Vencida (genera deudor)


class DueStatus(str, Enum):
    """Urgencia de una deuda. Se calcula, nunca se almacena."""
    OVERDUE = "overdue"
    DUE_SOON = "due_soon"
    ON_TRACK = "on_track"


class NoteCategory(str, Enum):
    """Categorías fijas de notas."""
    GENERAL = "general"
    SALES = "sales"
    PRODUCTS = "products"
    CUSTOMERS = "customers"
    TASKS = "tasks"
    MEETINGS = "meetings"


class AuditType(str, Enum):
    """Tipos de eventos de auditoría."""
    VENTA = "VENTA"
    PAGO = "PAGO"
    STOCK = "STOCK"
    PRODUCTO = "PRODUCTO"
    NOTA = "NOTA"
    SISTEMA = "SISTEMA"
    CONSISTENCIA = "CONSISTENCIA"


PAYMENT_STATUSES = frozenset(s.value for s in PaymentStatus)
NOTE_CATEGORIES = frozenset(c.value for c in NoteCategory)


# ==============================================================================
# IDENTIDAD
# ==============================================================================

@dataclass(frozen=True)
class Identity:
    """
    Usuario autenticado que ejecuta una operación.

    Se pasa explícitamente a cada servicio que necesita registrar un dueño
    (ventas, notas). Los servicios nunca leen la sesión de Flask.
    """
    id: str
    email: Optional[str] = None


# ==============================================================================
# ENTIDADES DE INVENTARIO Y CLIENTES
# ==============================================================================

@dataclass
class Product:
    """
    Producto del inventario.

    Attributes:
        id: Identificador opaco
        name: Nombre del producto
        category: Categoría para reportes
        cost: Costo unitario
        selling_price: Precio sugerido de venta
        stock_quantity: Stock disponible (nunca negativo)
        is_active: Si se ofrece para la venta
    """
    id: Optional[str]
    name: str
    category: str = ''
    cost: float = 0.0
    selling_price: float = 0.0
    stock_quantity: int = 0
    is_active: bool = True

    @property
    def default_price(self) -> float:
        """Precio por defecto en el carrito: precio de venta o costo + 50%."""
        if self.selling_price:
            return round(self.selling_price, 2)
        return round(self.cost * 1.5, 2)

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a diccionario para persistencia."""
        return {
            'name': self.name,
            'category': self.category,
            'cost': round(self.cost, 2),
            'selling_price': round(self.selling_price, 2),
            'stock_quantity': self.stock_quantity,
            'is_active': self.is_active,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Product':
        """Crea instancia desde diccionario."""
        return cls(
            id=data.get('id'),
            name=data.get('name', ''),
            category=data.get('category') or '',
            cost=float(data.get('cost', 0) or 0),
            selling_price=float(data.get('selling_price', 0) or 0),
            stock_quantity=int(data.get('stock_quantity', 0) or 0),
            is_active=bool(data.get('is_active', True)),
        )


@dataclass
class Customer:
    """Cliente. El nombre es la clave de búsqueda para deduplicar."""
    id: Optional[str]
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Campos de contacto (sin id). Vacío = None."""
        return {
            'name': self.name,
            'email': self.email or None,
            'phone': self.phone or None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Customer':
        return cls(
            id=data.get('id'),
            name=data.get('name', ''),
            email=data.get('email'),
            phone=data.get('phone'),
        )


# ==============================================================================
# ENTIDADES DE VENTAS
# ==============================================================================

@dataclass
class CartLine:
    """
    Línea del carrito enviada al registrar una venta.

    Attributes:
        product_id: Producto vendido
        quantity: Cantidad (> 0)
        unit_price: Precio unitario acordado (>= 0)
        unit_cost: Costo unitario; None = copiar del producto
        name: Nombre del producto (solo informativo)
    """
    product_id: str
    quantity: int
    unit_price: float
    unit_cost: Optional[float] = None
    name: str = ''

    @property
    def line_total(self) -> float:
        return self.unit_price * self.quantity

    @property
    def line_cost(self) -> float:
        return (self.unit_cost or 0) * self.quantity

    def to_dict(self) -> Dict[str, Any]:
        return {
            'product_id': self.product_id,
            'quantity': self.quantity,
            'unit_price': self.unit_price,
            'unit_cost': self.unit_cost,
            'name': self.name,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CartLine':
        """
        Crea instancia desde diccionario (JSON del request o sesión).

        No valida rangos ni completa faltantes; eso lo hace SalesService
        para poder reportar todos los errores con un mensaje claro.
        """
        unit_cost = data.get('unit_cost')
        return cls(
            product_id=data.get('product_id'),
            quantity=data.get('quantity'),
            unit_price=data.get('unit_price'),
            unit_cost=unit_cost,
            name=data.get('name', ''),
        )


@dataclass
class SaleItem:
    """Línea de una venta. Precio y costo son copias al momento de vender."""
    id: Optional[str]
    sale_id: Optional[str]
    product_id: str
    quantity: int
    unit_price: float
    unit_cost: float
    product_name: str = ''

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a diccionario para persistencia."""
        return {
            'sale_id': self.sale_id,
            'product_id': self.product_id,
            'quantity': self.quantity,
            'unit_price': self.unit_price,
            'unit_cost': self.unit_cost,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SaleItem':
        return cls(
            id=data.get('id'),
            sale_id=data.get('sale_id'),
            product_id=data.get('product_id'),
            quantity=int(data.get('quantity', 0) or 0),
            unit_price=float(data.get('unit_price', 0) or 0),
            unit_cost=float(data.get('unit_cost', 0) or 0),
            product_name=data.get('product_name', ''),
        )


@dataclass
class Sale:
    """
    Cabecera de venta.

    Siempre se cumple: total_amount = Σ unit_price × quantity de sus items,
    total_cost = Σ unit_cost × quantity.
    """
    id: Optional[str]
    customer_id: str
    user_id: str
    total_amount: float
    total_cost: float
    payment_status: str = PaymentStatus.PENDING.value
    sale_date: Optional[str] = None
    due_date: Optional[str] = None
    notes: Optional[str] = None
    items: List[SaleItem] = field(default_factory=list)

    @property
    def profit(self) -> float:
        return round(self.total_amount - self.total_cost, 2)

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PaymentStatus.PAID.value

    def to_dict(self, with_items: bool = False) -> Dict[str, Any]:
        """Convierte a diccionario (sin id, para persistencia)."""
        d = {
            'customer_id': self.customer_id,
            'user_id': self.user_id,
            'total_amount': self.total_amount,
            'total_cost': self.total_cost,
            'payment_status': self.payment_status,
            'sale_date': self.sale_date,
            'due_date': self.due_date,
            'notes': self.notes,
        }
        if with_items:
            d['id'] = self.id
            d['profit'] = self.profit
            d['items'] = [dict(i.to_dict(), id=i.id, product_name=i.product_name) for i in self.items]
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any], items: List[Dict[str, Any]] = None) -> 'Sale':
        return cls(
            id=data.get('id'),
            customer_id=data.get('customer_id'),
            user_id=data.get('user_id'),
            total_amount=float(data.get('total_amount', 0) or 0),
            total_cost=float(data.get('total_cost', 0) or 0),
            payment_status=data.get('payment_status', PaymentStatus.PENDING.value),
            sale_date=data.get('sale_date'),
            due_date=data.get('due_date'),
            notes=data.get('notes'),
            items=[SaleItem.from_dict(i) for i in (items or [])],
        )


@dataclass
class Debtor:
    """
    Obligación de pago derivada de una venta no pagada.

    Un deudor resuelto implica venta pagada, y viceversa.
    """
    id: Optional[str]
    sale_id: str
    customer_id: str
    amount_owed: float
    due_date: str
    is_resolved: bool = False
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'sale_id': self.sale_id,
            'customer_id': self.customer_id,
            'amount_owed': self.amount_owed,
            'due_date': self.due_date,
            'is_resolved': self.is_resolved,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Debtor':
        return cls(
            id=data.get('id'),
            sale_id=data.get('sale_id'),
            customer_id=data.get('customer_id'),
            amount_owed=float(data.get('amount_owed', 0) or 0),
            due_date=data.get('due_date'),
            is_resolved=bool(data.get('is_resolved', False)),
            created_at=data.get('created_at'),
            updated_at=data.get('updated_at'),
        )


# ==============================================================================
# NOTAS
# ==============================================================================

@dataclass
class Note:
    """Nota libre del usuario. Independiente del flujo de ventas."""
    id: Optional[str]
    title: str
    user_id: str
    content: Optional[str] = None
    category: str = NoteCategory.GENERAL.value
    is_pinned: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'title': self.title,
            'content': self.content,
            'category': self.category,
            'is_pinned': self.is_pinned,
            'user_id': self.user_id,
        }
