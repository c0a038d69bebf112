# SPDX-License-Identifier: Apache-2.0

"""
License issuance validation.

Decides whether a new license may be created for a (contract, order) pair
given every license of the contract, the order's invoices and the order's
license links. The checks run in four stages:

0. existence and consistency of the contract and order
1. active licenses of the contract (fail-fast on other orders)
2. order activity and containment inside the contract
3. payment mode x order type preconditions
4. dates the new license would get

Stage 0 and the cross-order conflict of stage 1 return a single message
immediately. Every other failure is appended and evaluation continues, so
callers see all problems at once. A subscription whose dates do not
span a whole number of billing periods also gets an advisory warning.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from residencia_api.models.entities import Contract, Invoice, License, LicenseLink, Order, TimezonedValue, zero_invoice_id
from residencia_api.models.enums import ComparisonResult, OrderType, PaymentMode
from residencia_api.domain.licenses import (
    RENEWAL_WINDOW,
    active_licenses,
    is_invoice_consumed,
    latest_license_by_end,
    licenses_for_order,
    perpetual_term_dates
)
from residencia_api.domain.orders import subscription_period_warning
from residencia_api.domain.results import ValidationResult
from residencia_api.domain.temporal import add_duration, compare, compare_date_only

logger = logging.getLogger(__name__)

# Stage 0
CONTRACT_NOT_FOUND = 'Contrato no encontrado.'
ORDER_NOT_FOUND = 'Pedido no encontrado.'
ORDER_NOT_IN_CONTRACT = 'El pedido no pertenece al contrato especificado.'

# Stage 1
ACTIVE_LICENSE_OTHER_ORDER = 'Ya hay una licencia activa de otra orden, corrija esta orden para proceder'
ACTIVE_LICENSE_THIS_ORDER = 'Ya se tiene una licencia activa'

# Stage 2
ORDER_INACTIVE = 'El pedido no está activo, no se pueden generar licencias'
CONTRACT_MUST_BE_EXTENDED = 'El contrato debe ser extendido para este pedido'

# Stage 3
FREE_SUBSCRIPTION = (
    'Las suscripciones no pueden ser gratuitas, se deben configurar como licencias '
    'limitadas en tiempo o perpetuas'
)
FREE_TEMPORARY_NO_INVOICE = 'Es necesario crear una factura (FacturaCero) primero'
FREE_TEMPORARY_ALREADY_LINKED = 'Ya hay una licencia creada para la factura gratuita, no se puede crear otra'
FREE_PERPETUAL_EXISTS = 'Ya existe una licencia perpetua gratuita (sin fecha de fin definida).'
FREE_PERPETUAL_STILL_ACTIVE = 'Ya hay una licencia activa (perpetua gratuita con más de un mes restante)'
RENEWAL_HORIZON_ERROR = 'Error interno: No se pudo calcular la fecha futura para validación.'
RENEWAL_COMPARISON_ERROR = 'Error interno: No se pudo comparar la fecha de fin de la última licencia.'
TEMPORARY_NO_INVOICE = 'No hay licencias para generar, debe crear una factura para este tipo de pedido'
TEMPORARY_MULTIPLE_INVOICES = (
    'Hay información errónea en esta orden (múltiples facturas para licencia temporal), '
    'no se puede generar una licencia'
)
TEMPORARY_ALREADY_LINKED = 'Ya existe una licencia para esta factura, no se puede crear una nueva'
TEMPORARY_PREPAID_NOT_PAID = (
    'Debe pagar la factura para poder crear una licencia con este tipo de pedido (temporal prepagado)'
)
SUBSCRIPTION_NO_INVOICE = (
    'No hay licencias para generar, debe crear una factura para este tipo de pedido (suscripción)'
)
SUBSCRIPTION_MULTIPLE_UNLINKED = (
    'Error en la creación de facturas y asignación de licencias '
    '(múltiples facturas de suscripción sin licencia)'
)
SUBSCRIPTION_PREPAID_NOT_PAID = (
    'La última factura no ha sido pagada, no se puede crear la licencia (suscripción prepagada)'
)
SUBSCRIPTION_NO_AVAILABLE_INVOICE = 'No hay facturas disponibles para generar una nueva licencia de suscripción'

# Stage 4
PERPETUAL_START_ERROR = 'Error al calcular la fecha de inicio para la nueva licencia perpetua.'
PERPETUAL_DATES_ERROR = 'Error en el cálculo de las fechas para la licencia perpetua.'
PERPETUAL_BEFORE_CONTRACT = (
    'El contrato debe ser extendido para esta licencia perpetua ya pagada (inicio antes de contrato)'
)
PERPETUAL_AFTER_CONTRACT = (
    'El contrato debe ser extendido para esta licencia perpetua ya pagada (fin después de contrato)'
)
PERPETUAL_START_AFTER_END = 'Error en cálculo de fechas de licencia perpetua (inicio después de fin).'
ORDER_NOT_STARTED = (
    'La orden aún no ha iniciado, no puede crearse la licencia pagada. '
    'Extender el pedido o generar una nota de crédito'
)
ORDER_EXPIRED = (
    'La orden está vencida, no puede crearse la licencia pagada. '
    'Extender el pedido o generar una nota de crédito'
)

_NOT_AFTER = (ComparisonResult.LESS, ComparisonResult.EQUAL)
_NOT_BEFORE = (ComparisonResult.GREATER, ComparisonResult.EQUAL)


@dataclass
class LicensingSnapshot:
    """Data the validator reads; fetched by the caller from the repository."""
    contract: Optional[Contract]
    order: Optional[Order]
    # Every license of the contract, any order
    licenses: List[License] = field(default_factory=list)
    # Invoices of the order
    invoices: List[Invoice] = field(default_factory=list)
    # License links of the order
    links: List[LicenseLink] = field(default_factory=list)


def validate_license_creation(
    contract_id: str,
    order_id: str,
    snapshot: LicensingSnapshot,
    now: TimezonedValue
) -> ValidationResult:
    """
    Decide whether a new license may be issued for the order.

    Pure function over ``snapshot``: it performs no I/O and no writes, so
    it is safe to call repeatedly and concurrently.

    Args:
        contract_id: Contract the license would belong to
        order_id: Order the license would be issued under
        snapshot: Contract, order, contract licenses, order invoices and links
        now: Current wall-clock time

    Returns:
        ValidationResult with messages in the order the rules fail
    """
    contract = snapshot.contract
    order = snapshot.order

    if contract is None:
        return ValidationResult.failure(CONTRACT_NOT_FOUND)
    if order is None:
        return ValidationResult.failure(ORDER_NOT_FOUND)
    if order.contract_id != contract_id:
        return ValidationResult.failure(ORDER_NOT_IN_CONTRACT)

    errors: List[str] = []

    # Stage 1. An active license under another order is a hard conflict:
    # return it alone instead of accumulating unrelated messages.
    active = active_licenses(snapshot.licenses, now)
    if any(lic.order_id != order_id for lic in active):
        logger.info(
            "License creation blocked by active license of another order",
            extra={"contract_id": contract_id, "order_id": order_id}
        )
        return ValidationResult.failure(ACTIVE_LICENSE_OTHER_ORDER)
    if active and order.type != OrderType.SUBSCRIPTION:
        errors.append(ACTIVE_LICENSE_THIS_ORDER)

    # Stage 2
    if not order.active:
        errors.append(ORDER_INACTIVE)
    if not order_within_contract(order, contract):
        errors.append(CONTRACT_MUST_BE_EXTENDED)

    # Stage 3
    order_licenses = licenses_for_order(snapshot.licenses, order_id)
    errors.extend(_check_payment_rules(order, order_licenses, snapshot.invoices, snapshot.links, now))

    # Stage 4
    errors.extend(_check_prospective_dates(order, contract, order_licenses, now))

    # Advisory only: a subscription off its period grid is still issuable
    period_warning = subscription_period_warning(order)
    warnings = [period_warning] if period_warning else []

    result = ValidationResult.from_errors(errors, warnings)
    logger.debug(
        f"License validation for order {order_id}: valid={result.is_valid}",
        extra={"contract_id": contract_id, "order_id": order_id, "error_count": len(errors)}
    )
    return result


def order_within_contract(order: Order, contract: Contract) -> bool:
    """
    Whether the order's interval nests inside the contract's, by calendar day.

    A contract without ``end`` is unbounded above. A bounded contract
    requires the order to have an ``end`` too. Any unresolvable date
    counts as a violation.
    """
    if compare_date_only(order.start, contract.start) not in _NOT_BEFORE:
        return False
    if order.end is not None and compare_date_only(order.end, contract.start) not in _NOT_BEFORE:
        return False
    if contract.end is None:
        return True
    if order.end is None:
        return False
    return (
        compare_date_only(order.start, contract.end) in _NOT_AFTER
        and compare_date_only(order.end, contract.end) in _NOT_AFTER
    )


def _check_payment_rules(
    order: Order,
    order_licenses: List[License],
    invoices: List[Invoice],
    links: List[LicenseLink],
    now: TimezonedValue
) -> List[str]:
    if order.payment_mode == PaymentMode.FREE:
        if order.type == OrderType.SUBSCRIPTION:
            return [FREE_SUBSCRIPTION]
        if order.type == OrderType.TEMPORARY_LICENSE:
            return _check_free_temporary(order, invoices, links)
        return _check_free_perpetual(order_licenses, now)

    if order.type == OrderType.TEMPORARY_LICENSE:
        return _check_paid_temporary(order, invoices, links)
    if order.type == OrderType.SUBSCRIPTION:
        return _check_paid_subscription(order, invoices, links)
    # Paid perpetual licenses are only checked on their dates
    return []


def _check_free_temporary(order: Order, invoices: List[Invoice], links: List[LicenseLink]) -> List[str]:
    if not invoices:
        return [FREE_TEMPORARY_NO_INVOICE]
    # Links may name the zero invoice itself or the order's sentinel id
    funding_ids = [invoice.id for invoice in invoices] + [zero_invoice_id(order.id)]
    if any(is_invoice_consumed(invoice_id, links) for invoice_id in funding_ids):
        return [FREE_TEMPORARY_ALREADY_LINKED]
    return []


def _check_free_perpetual(order_licenses: List[License], now: TimezonedValue) -> List[str]:
    if any(lic.end is None for lic in order_licenses):
        return [FREE_PERPETUAL_EXISTS]

    latest = latest_license_by_end(order_licenses)
    if latest is None:
        return []

    horizon = add_duration(now, RENEWAL_WINDOW)
    if horizon is None:
        return [RENEWAL_HORIZON_ERROR]

    # Renewal is allowed once the last term ends within the window
    comparison = compare(latest.end, horizon)
    if comparison == ComparisonResult.GREATER:
        return [FREE_PERPETUAL_STILL_ACTIVE]
    if comparison == ComparisonResult.INVALID:
        return [RENEWAL_COMPARISON_ERROR]
    return []


def _check_paid_temporary(order: Order, invoices: List[Invoice], links: List[LicenseLink]) -> List[str]:
    if not invoices:
        return [TEMPORARY_NO_INVOICE]
    if len(invoices) > 1:
        return [TEMPORARY_MULTIPLE_INVOICES]

    invoice = invoices[0]
    if is_invoice_consumed(invoice.id, links):
        return [TEMPORARY_ALREADY_LINKED]
    if order.payment_mode == PaymentMode.PREPAID and not invoice.is_paid():
        return [TEMPORARY_PREPAID_NOT_PAID]
    return []


def _check_paid_subscription(order: Order, invoices: List[Invoice], links: List[LicenseLink]) -> List[str]:
    if not invoices:
        return [SUBSCRIPTION_NO_INVOICE]

    unlinked = [invoice for invoice in invoices if not is_invoice_consumed(invoice.id, links)]
    if len(unlinked) > 1:
        return [SUBSCRIPTION_MULTIPLE_UNLINKED]
    if not unlinked:
        return [SUBSCRIPTION_NO_AVAILABLE_INVOICE]
    if order.payment_mode == PaymentMode.PREPAID and not unlinked[0].is_paid():
        return [SUBSCRIPTION_PREPAID_NOT_PAID]
    return []


def _check_prospective_dates(
    order: Order,
    contract: Contract,
    order_licenses: List[License],
    now: TimezonedValue
) -> List[str]:
    if order.type == OrderType.PERPETUAL_LICENSE:
        return _check_perpetual_dates(contract, order_licenses, now)

    errors = []
    # A new non-perpetual license starts now
    if compare(now, order.start) == ComparisonResult.LESS:
        errors.append(ORDER_NOT_STARTED)
    if order.end is not None and compare(now, order.end) == ComparisonResult.GREATER:
        errors.append(ORDER_EXPIRED)
    return errors


def _check_perpetual_dates(contract: Contract, order_licenses: List[License], now: TimezonedValue) -> List[str]:
    start, end = perpetual_term_dates(order_licenses, now)
    if start is None:
        return [PERPETUAL_START_ERROR]
    if end is None:
        return [PERPETUAL_DATES_ERROR]

    errors = []
    if compare(start, contract.start) == ComparisonResult.LESS:
        errors.append(PERPETUAL_BEFORE_CONTRACT)
    if contract.end is not None and compare(end, contract.end) == ComparisonResult.GREATER:
        errors.append(PERPETUAL_AFTER_CONTRACT)
    if compare(start, end) == ComparisonResult.GREATER:
        errors.append(PERPETUAL_START_AFTER_END)
    return errors
