# SPDX-License-Identifier: Apache-2.0

"""
Business rules for invoice data entered against an order.
"""

from decimal import Decimal
from typing import List, Optional

from residencia_api.models.entities import Invoice, Order
from residencia_api.models.enums import ComparisonResult, OrderType, PaymentMode
from residencia_api.domain.results import ValidationResult
from residencia_api.domain.temporal import compare, compare_date_only, to_instant

ORDER_REQUIRED = 'No se ha seleccionado un pedido válido.'
ISSUE_DATE_REQUIRED = 'La fecha de la factura es obligatoria.'
PAID_DATE_REQUIRED = 'La fecha de pago de la factura es obligatoria.'
DUE_DATE_REQUIRED = 'La fecha de vencimiento de la factura es obligatoria.'
CURRENCY_REQUIRED = 'La moneda de la factura es obligatoria.'
TOTAL_REQUIRED = 'El monto total de la factura es obligatorio.'
PAID_AMOUNT_REQUIRED = 'El monto pagado de la factura es obligatorio.'
ISSUED_BEFORE_ORDER = 'La fecha de la factura no puede ser anterior al día de inicio del pedido.'
ISSUED_BEFORE_ORDER_INVALID = (
    'Error al comparar la fecha de factura con la fecha de inicio del pedido '
    '(formato inválido o datos faltantes).'
)
ISSUED_AFTER_ORDER = 'La fecha de la factura no puede ser posterior al día de fin del pedido.'
ISSUED_AFTER_ORDER_INVALID = (
    'Error al comparar la fecha de factura con la fecha de fin del pedido '
    '(formato inválido o datos faltantes).'
)
SUBSCRIPTION_NOT_AFTER_LAST = (
    'Para suscripciones, la fecha (y hora) de la nueva factura debe ser estrictamente '
    'posterior a la última factura existente.'
)
SUBSCRIPTION_LAST_INVALID = (
    'Error al comparar la fecha de la nueva factura con la última factura '
    '(formato inválido o datos faltantes).'
)
ORDER_INACTIVE = 'No se pueden crear o modificar facturas para un pedido inactivo.'
NEGATIVE_TOTAL = 'El monto total no puede ser negativo.'
NEGATIVE_PAID = 'El monto pagado no puede ser negativo.'
PAID_EXCEEDS_TOTAL = 'El monto pagado no puede ser mayor que el monto total.'
PREPAID_DIFFERENT_DAYS = (
    'Para pedidos prepagados, la fecha de factura y la fecha de pago deben corresponder al mismo día.'
)
PREPAID_DAYS_INVALID = (
    'Error al comparar la fecha de factura y fecha de pago para pedido prepagado '
    '(formato inválido o datos faltantes).'
)
FREE_TOTAL_NOT_ZERO = "Para pedidos 'libre de costo', el monto total debe ser 0."
FREE_PAID_NOT_ZERO = "Para pedidos 'libre de costo', el monto pagado debe ser 0."
DUE_BEFORE_ISSUE = 'La fecha de vencimiento no puede ser anterior a la fecha de la factura.'
DUE_BEFORE_ISSUE_INVALID = (
    'Error al comparar la fecha de vencimiento con la fecha de factura '
    '(formato inválido o datos faltantes).'
)


def single_invoice_only(order_type: str) -> str:
    return f"Los pedidos de tipo '{order_type}' solo pueden tener una factura asociada."


def _last_issued(invoices: List[Invoice]) -> Optional[Invoice]:
    last = None
    for invoice in invoices:
        if to_instant(invoice.issue_date) is None:
            continue
        if last is None or compare(invoice.issue_date, last.issue_date) == ComparisonResult.GREATER:
            last = invoice
    return last


def validate_invoice_data(
    invoice: Invoice,
    order: Optional[Order],
    existing_invoices: List[Invoice],
    is_creating: bool
) -> ValidationResult:
    """
    Validate an invoice against its order and the order's other invoices.

    Args:
        invoice: Invoice being created or updated
        order: Order the invoice belongs to
        existing_invoices: Other invoices of the order
        is_creating: True for a new invoice, False for an update

    Returns:
        ValidationResult with every rule violation
    """
    if order is None:
        return ValidationResult.failure(ORDER_REQUIRED)

    errors: List[str] = []

    if invoice.issue_date is None:
        errors.append(ISSUE_DATE_REQUIRED)
    if invoice.paid_date is None:
        errors.append(PAID_DATE_REQUIRED)
    if invoice.due_date is None:
        errors.append(DUE_DATE_REQUIRED)
    if not invoice.currency:
        errors.append(CURRENCY_REQUIRED)
    if invoice.amount_total is None:
        errors.append(TOTAL_REQUIRED)
    if invoice.amount_paid is None:
        errors.append(PAID_AMOUNT_REQUIRED)

    # The remaining rules need these fields
    if invoice.issue_date is None or invoice.paid_date is None \
            or invoice.amount_total is None or invoice.amount_paid is None:
        return ValidationResult.from_errors(errors)

    # Issue date within the order's days
    vs_start = compare_date_only(invoice.issue_date, order.start)
    if vs_start == ComparisonResult.LESS:
        errors.append(ISSUED_BEFORE_ORDER)
    elif vs_start == ComparisonResult.INVALID:
        errors.append(ISSUED_BEFORE_ORDER_INVALID)
    if order.end is not None:
        vs_end = compare_date_only(invoice.issue_date, order.end)
        if vs_end == ComparisonResult.GREATER:
            errors.append(ISSUED_AFTER_ORDER)
        elif vs_end == ComparisonResult.INVALID:
            errors.append(ISSUED_AFTER_ORDER_INVALID)

    if is_creating and order.type == OrderType.SUBSCRIPTION:
        last = _last_issued(existing_invoices)
        if last is not None:
            vs_last = compare(invoice.issue_date, last.issue_date)
            if vs_last in (ComparisonResult.LESS, ComparisonResult.EQUAL):
                errors.append(SUBSCRIPTION_NOT_AFTER_LAST)
            elif vs_last == ComparisonResult.INVALID:
                errors.append(SUBSCRIPTION_LAST_INVALID)

    if is_creating and order.type != OrderType.SUBSCRIPTION and existing_invoices:
        errors.append(single_invoice_only(order.type))

    if not order.active:
        errors.append(ORDER_INACTIVE)

    if invoice.amount_total < 0:
        errors.append(NEGATIVE_TOTAL)
    if invoice.amount_paid < 0:
        errors.append(NEGATIVE_PAID)
    if invoice.amount_total >= 0 and invoice.amount_paid >= 0 and invoice.amount_paid > invoice.amount_total:
        errors.append(PAID_EXCEEDS_TOTAL)

    if order.payment_mode == PaymentMode.PREPAID:
        same_day = compare_date_only(invoice.issue_date, invoice.paid_date)
        if same_day == ComparisonResult.INVALID:
            errors.append(PREPAID_DAYS_INVALID)
        elif same_day != ComparisonResult.EQUAL:
            errors.append(PREPAID_DIFFERENT_DAYS)

    if order.payment_mode == PaymentMode.FREE:
        if invoice.amount_total != Decimal(0):
            errors.append(FREE_TOTAL_NOT_ZERO)
        if invoice.amount_paid != Decimal(0):
            errors.append(FREE_PAID_NOT_ZERO)

    if invoice.due_date is not None:
        vs_issue = compare_date_only(invoice.due_date, invoice.issue_date)
        if vs_issue == ComparisonResult.LESS:
            errors.append(DUE_BEFORE_ISSUE)
        elif vs_issue == ComparisonResult.INVALID:
            errors.append(DUE_BEFORE_ISSUE_INVALID)

    return ValidationResult.from_errors(errors)
