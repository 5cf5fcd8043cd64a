# ==============================================================================
# SERVICIO DE DEUDAS
# ==============================================================================
# Deudores = ventas no pagadas. Un deudor resuelto implica venta pagada
# y viceversa: mark_paid cambia ambos en la misma transacción.
#
# Clasificación de vencimientos (se calcula, nunca se guarda):
# - overdue:  vencimiento anterior a "ahora"
# - due_soon: vence en 7 días o menos
# - on_track: el resto
# ==============================================================================

import math
import warnings
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from app_negocio.errors import ConsistencyWarning, NotAuthenticated, NotFound, ValidationError
from app_negocio.models.dates import parse_datetime, utc_now
from app_negocio.models.entities import Customer, Debtor, DueStatus, Identity, PaymentStatus
from app_negocio.performance_logger import profile_function
from app_negocio.repositories.customers_repository import CustomersRepository
from app_negocio.repositories.debtors_repository import DebtorsRepository
from app_negocio.repositories.sales_repository import SalesRepository
from app_negocio.services.audit_service import AuditService
from app_negocio.services.stats_service import debtor_stats


DUE_SOON_DAYS = 7
SECONDS_PER_DAY = 86400


def classify(due_date: Any, now: Any) -> Tuple[str, int]:
    """
    Clasifica un vencimiento respecto de "ahora".

    days_until_due se redondea hacia arriba: vence en 1 segundo = 1 día,
    vence exactamente ahora = 0 días (no vencido).

    Args:
        due_date: Fecha de vencimiento (datetime o ISO)
        now: Momento de referencia (datetime o ISO)

    Returns:
        Tupla (due_status, days_until_due)

    Raises:
        ValidationError: Si alguna fecha es inválida
    """
    due = parse_datetime(due_date)
    reference = parse_datetime(now)
    if due is None or reference is None:
        raise ValidationError(f'Fecha de vencimiento inválida: {due_date!r}')

    days = math.ceil((due - reference).total_seconds() / SECONDS_PER_DAY)

    if due < reference:
        return DueStatus.OVERDUE.value, days
    if days <= DUE_SOON_DAYS:
        return DueStatus.DUE_SOON.value, days
    return DueStatus.ON_TRACK.value, days


class DebtService:
    """
    Servicio para gestión de deudores.

    Responsabilidades:
    - Marcar deudas como pagadas (deudor + venta juntos)
    - Listar deudores abiertos con su urgencia
    - Resumen de deudas
    - Detectar inconsistencias deudor/venta
    """

    def __init__(
        self,
        debtors_repo: DebtorsRepository,
        sales_repo: SalesRepository,
        customers_repo: CustomersRepository,
        audit_service: AuditService = None
    ):
        """
        Inicializa el servicio de deudas.

        Args:
            debtors_repo: Repositorio de deudores
            sales_repo: Repositorio de ventas
            customers_repo: Repositorio de clientes
            audit_service: Servicio de auditoría (opcional)
        """
        self.debtors_repo = debtors_repo
        self.sales_repo = sales_repo
        self.customers_repo = customers_repo
        self.audit_service = audit_service

    @property
    def store(self):
        return self.debtors_repo.store

    # =========================================================================
    # PAGOS
    # =========================================================================

    @profile_function(name="Marcar deuda pagada")
    def mark_paid(self, identity: Identity, debtor_id: str) -> Dict[str, Any]:
        """
        Marca una deuda como pagada.

        En una sola transacción:
        - debtor.is_resolved = True (y updated_at)
        - sale.payment_status = 'paid'

        Args:
            identity: Usuario que registra el cobro
            debtor_id: ID del deudor

        Returns:
            Deudor actualizado

        Raises:
            NotAuthenticated: Sin usuario
            NotFound: Deudor (o su venta) inexistente
            ValidationError: Si la deuda ya estaba pagada
        """
        if identity is None or not identity.id:
            raise NotAuthenticated()

        with self.store.transaction():
            debtor = self.debtors_repo.get_by_id(debtor_id) if debtor_id else None
            if debtor is None:
                raise NotFound('Deudor no encontrado')
            if debtor.get('is_resolved'):
                raise ValidationError('Esta deuda ya fue pagada')

            self.debtors_repo.resolve(debtor_id)
            if not self.sales_repo.set_payment_status(debtor['sale_id'], PaymentStatus.PAID.value):
                raise NotFound('La venta de esta deuda ya no existe')

            debtor = self.debtors_repo.get_by_id(debtor_id)

        if self.audit_service:
            self.audit_service.log_payment(
                identity.email or identity.id,
                debtor_id,
                debtor['sale_id'],
                Debtor.from_dict(debtor).amount_owed
            )

        return debtor

    # =========================================================================
    # CONSULTAS
    # =========================================================================

    def list_open_debtors(self, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """
        Deudores sin resolver, el vencimiento más cercano primero.

        Cada fila incluye customer, sale, days_until_due y due_status.

        Args:
            now: Momento de referencia (por defecto: ahora)
        """
        now = parse_datetime(now) or utc_now()

        with self.store.transaction():
            debtors = self.debtors_repo.get_open()
            customers = {c['id']: c for c in self.customers_repo.get_all()}
            sales = {s['id']: s for s in self.sales_repo.get_all()}

        result = []
        for debtor in debtors:
            due_status, days = classify(debtor.get('due_date'), now)
            customer = customers.get(debtor.get('customer_id')) or {}
            sale = sales.get(debtor.get('sale_id')) or {}
            row = dict(debtor)
            row['customer'] = Customer.from_dict(customer).to_dict()
            row['sale'] = {
                'total_amount': sale.get('total_amount'),
                'sale_date': sale.get('sale_date'),
                'payment_status': sale.get('payment_status'),
            }
            row['days_until_due'] = days
            row['due_status'] = due_status
            result.append(row)

        result.sort(key=lambda r: parse_datetime(r.get('due_date')))
        return result

    def get_stats(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Resumen global de deudas (ver stats_service.debtor_stats)."""
        return debtor_stats(self.debtors_repo.get_all(), now)

    # =========================================================================
    # CONSISTENCIA
    # =========================================================================

    def check_consistency(self, identity: Optional[Identity] = None) -> List[Dict[str, Any]]:
        """
        Busca deudores y ventas en estados contradictorios.

        Casos:
        - deudor resuelto con venta no pagada
        - venta pagada con deudor abierto
        - deudor cuya venta ya no existe

        Cada problema se emite como ConsistencyWarning y se registra
        en la auditoría. No corrige nada.

        Returns:
            Lista de problemas [{debtor_id, sale_id, problem}]
        """
        with self.store.transaction():
            debtors = self.debtors_repo.get_all()
            sales = {s['id']: s for s in self.sales_repo.get_all()}

        issues = []
        for debtor in debtors:
            sale = sales.get(debtor.get('sale_id'))
            if sale is None:
                problem = 'Deudor sin venta'
            elif debtor.get('is_resolved') and sale.get('payment_status') != PaymentStatus.PAID.value:
                problem = 'Deudor resuelto con venta no pagada'
            elif not debtor.get('is_resolved') and sale.get('payment_status') == PaymentStatus.PAID.value:
                problem = 'Venta pagada con deudor abierto'
            else:
                continue
            issues.append({
                'debtor_id': debtor.get('id'),
                'sale_id': debtor.get('sale_id'),
                'problem': problem,
            })

        user = (identity.email or identity.id) if identity else 'sistema'
        for issue in issues:
            message = f"{issue['problem']}: deudor {issue['debtor_id']}, venta {issue['sale_id']}"
            warnings.warn(message, ConsistencyWarning, stacklevel=2)
            if self.audit_service:
                self.audit_service.log_consistency_issue(user, message, issue['debtor_id'], issue)

        return issues
