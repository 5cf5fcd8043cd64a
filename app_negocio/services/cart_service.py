# ==============================================================================
# SERVICIO DE CARRITO
# ==============================================================================
# Centraliza toda la lógica de negocio relacionada con el carrito de ventas.
# El carrito se almacena en la sesión de Flask (session['cart']).
# Al confirmarlo se registra la venta con SalesService y se vacía.
# ==============================================================================

from typing import Any, Dict, List

from flask import session

from app_negocio.errors import InsufficientStock, NotFound, ValidationError
from app_negocio.models.entities import CartLine, Identity, Product, Sale
from app_negocio.services.inventory_service import InventoryService, parse_amount, parse_quantity
from app_negocio.services.sales_service import SalesService


class CartService:
    """
    Servicio para gestión del carrito.

    Responsabilidades:
    - Agregar/eliminar líneas (agregar de nuevo suma cantidad)
    - Validar stock disponible
    - Calcular totales
    - Confirmar el carrito como venta

    El precio por defecto es el precio de venta del producto,
    o costo + 50% si no tiene precio de venta.
    """

    SESSION_KEY = 'cart'

    def __init__(self, inventory_service: InventoryService, sales_service: SalesService):
        """
        Inicializa el servicio de carrito.

        Args:
            inventory_service: Servicio de inventario
            sales_service: Servicio de ventas (para confirmar)
        """
        self.inventory_service = inventory_service
        self.sales_service = sales_service

    def _get_cart(self) -> List[Dict[str, Any]]:
        """
        Obtiene el carrito actual de la sesión.

        Returns:
            Lista de líneas en el carrito
        """
        return list(session.get(self.SESSION_KEY, []))

    def _save_cart(self, cart: List[Dict[str, Any]]) -> None:
        session[self.SESSION_KEY] = cart
        session.modified = True

    @staticmethod
    def _summary(cart: List[Dict[str, Any]]) -> Dict[str, Any]:
        lines = [CartLine.from_dict(item) for item in cart]
        return {
            'items': cart,
            'total_items': sum(line.quantity for line in lines),
            'total_amount': round(sum(line.line_total for line in lines), 2),
            'total_cost': round(sum(line.line_cost for line in lines), 2),
            'items_count': len(cart),
        }

    def _find(self, cart: List[Dict[str, Any]], product_id: str) -> Dict[str, Any]:
        for item in cart:
            if item.get('product_id') == product_id:
                return item
        return None

    def _check_stock(self, product: Dict[str, Any], quantity: int) -> None:
        available = int(product.get('stock_quantity', 0) or 0)
        if quantity > available:
            raise InsufficientStock(
                [product.get('name', '')],
                [f"solicitado {quantity}, disponible {available}"]
            )

    # =========================================================================
    # OPERACIONES
    # =========================================================================

    def get_cart(self) -> Dict[str, Any]:
        """
        Obtiene el carrito con totales calculados.

        Returns:
            Dict con items, total_items, total_amount, total_cost, items_count
        """
        return self._summary(self._get_cart())

    def add_item(self, product_id: str, quantity: Any = 1, unit_price: Any = None) -> Dict[str, Any]:
        """
        Agrega un producto al carrito. Si ya está, suma la cantidad.

        Args:
            product_id: ID del producto
            quantity: Cantidad a agregar (por defecto 1)
            unit_price: Precio unitario (por defecto: precio del producto)

        Returns:
            Carrito actualizado

        Raises:
            NotFound: Producto inexistente
            ValidationError: Producto inactivo o valores inválidos
            InsufficientStock: Si la cantidad total supera el stock
        """
        product = self.inventory_service.get_product(product_id)
        if product is None:
            raise NotFound('Producto no encontrado')
        if not product.get('is_active', True):
            raise ValidationError(f"El producto {product.get('name', '')} no está activo")

        quantity = parse_quantity(quantity)
        info = Product.from_dict(product)
        price = info.default_price if unit_price is None else parse_amount(unit_price, 'Precio unitario')

        cart = self._get_cart()
        existing = self._find(cart, product_id)
        new_quantity = quantity + (existing['quantity'] if existing else 0)
        self._check_stock(product, new_quantity)

        if existing:
            existing['quantity'] = new_quantity
            if unit_price is not None:
                existing['unit_price'] = price
        else:
            cart.append(CartLine(
                product_id=product_id,
                quantity=quantity,
                unit_price=price,
                unit_cost=info.cost,
                name=info.name,
            ).to_dict())

        self._save_cart(cart)
        return self._summary(cart)

    def update_item(self, product_id: str, quantity: Any = None, unit_price: Any = None) -> Dict[str, Any]:
        """
        Cambia cantidad y/o precio de una línea. Cantidad <= 0 la elimina.

        Raises:
            NotFound: Si el producto no está en el carrito
        """
        cart = self._get_cart()
        item = self._find(cart, product_id)
        if item is None:
            raise NotFound('El producto no está en el carrito')

        if quantity is not None:
            try:
                wanted = float(quantity)
            except (TypeError, ValueError):
                raise ValidationError(f'Cantidad inválida: {quantity!r}')
            if wanted <= 0:
                return self.remove_item(product_id)
            wanted = parse_quantity(quantity)
            product = self.inventory_service.require_product(product_id)
            self._check_stock(product, wanted)
            item['quantity'] = wanted

        if unit_price is not None:
            item['unit_price'] = parse_amount(unit_price, 'Precio unitario')

        self._save_cart(cart)
        return self._summary(cart)

    def remove_item(self, product_id: str) -> Dict[str, Any]:
        """Elimina una línea del carrito (si no está, no hace nada)."""
        cart = [item for item in self._get_cart() if item.get('product_id') != product_id]
        self._save_cart(cart)
        return self._summary(cart)

    def clear_cart(self) -> Dict[str, Any]:
        """Vacía el carrito completamente."""
        self._save_cart([])
        return self._summary([])

    def confirm(
        self,
        identity: Identity,
        customer_name: str,
        payment_status: str,
        due_date: Any = None,
        contact_info: Dict[str, Any] = None,
        notes: str = None
    ) -> Sale:
        """
        Registra el carrito como venta y lo vacía.

        Si la venta falla el carrito queda intacto.

        Returns:
            Venta registrada
        """
        sale = self.sales_service.create_sale(
            identity,
            customer_name,
            self._get_cart(),
            payment_status=payment_status,
            due_date=due_date,
            contact_info=contact_info,
            notes=notes,
        )
        self.clear_cart()
        return sale
