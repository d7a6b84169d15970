"""
Billing engine.

Turns work logs into invoice amounts and guards the per-contract
non-overlap invariant on invoice periods.

Amounts are integer minor units: ``round_half_up(minutes * rate / 60)``
computed without floating point. Every write path that can place an invoice
period on a contract first takes a row lock on that contract
(``SELECT ... FOR UPDATE``), so the overlap check and the insert/update are
serialized per contract for the rest of the transaction. SQLite has no row
locks; there the invoices table carries overlap triggers, and a write they
abort surfaces as the same ConflictError.
"""
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..database.models import Contract, Invoice, InvoiceStatus, WorkLog
from ..errors import AppError, ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

MAX_AMOUNT_CENTS = 1_000_000_000
MAX_HOURLY_RATE_CENTS = 1_000_000_000
DEFAULT_CURRENCY = "USD"

CONTRACT_NOT_FOUND = "Contract not found in your workspace."


@dataclass(frozen=True)
class InvoiceBreakdown:
    contract_id: UUID
    period_start: date
    period_end: date
    total_minutes: int
    hourly_rate_cents: int
    amount_cents: int
    currency: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "contractId": str(self.contract_id),
            "periodStart": self.period_start.isoformat(),
            "periodEnd": self.period_end.isoformat(),
            "totalMinutes": self.total_minutes,
            "hourlyRateCents": self.hourly_rate_cents,
            "amountCents": self.amount_cents,
            "currency": self.currency,
        }


@dataclass(frozen=True)
class InvoiceGeneration:
    breakdown: InvoiceBreakdown
    invoice: Optional[Invoice] = None

    @property
    def is_preview(self) -> bool:
        return self.invoice is None


def compute_amount_cents(total_minutes: int, hourly_rate_cents: int) -> int:
    """Half-up rounded ``total_minutes * hourly_rate_cents / 60``, clamped to MAX_AMOUNT_CENTS."""
    amount = (total_minutes * hourly_rate_cents + 30) // 60
    return min(amount, MAX_AMOUNT_CENTS)


def normalize_currency(value: str) -> str:
    currency = (value or "").strip().upper()
    if len(currency) != 3 or not (currency.isascii() and currency.isalpha()):
        raise ValidationError("Currency must be a 3-letter code (e.g., USD).")
    return currency


def validate_period(period_start: date, period_end: date):
    if period_start > period_end:
        raise ValidationError("periodStart must be <= periodEnd.")


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def resolve_hourly_rate(override: Optional[int], contract_rate: Optional[int]) -> int:
    rate = override if override is not None else contract_rate
    if rate is None:
        raise ValidationError(
            "No hourly rate is set for this contract. Set the contract's hourly rate or provide an override."
        )
    if not _is_int(rate) or rate <= 0 or rate > MAX_HOURLY_RATE_CENTS:
        raise ValidationError("hourlyRateCents must be a positive integer.")
    return rate


def load_contract(db: Session, workspace_id: UUID, contract_id: UUID, lock: bool = False) -> Contract:
    """Fetch a contract inside the workspace, optionally taking its row lock."""
    query = select(Contract).where(Contract.id == contract_id, Contract.workspace_id == workspace_id)
    if lock:
        query = query.with_for_update()
    contract = db.scalars(query).first()
    if contract is None:
        raise NotFoundError(CONTRACT_NOT_FOUND)
    return contract


def total_minutes_for_period(
    db: Session, workspace_id: UUID, contract_id: UUID, period_start: date, period_end: date
) -> int:
    """Sum of work log minutes with ``period_start <= work_date <= period_end``; 0 when none."""
    total = db.scalar(
        select(func.coalesce(func.sum(WorkLog.minutes), 0)).where(
            WorkLog.workspace_id == workspace_id,
            WorkLog.contract_id == contract_id,
            WorkLog.work_date >= period_start,
            WorkLog.work_date <= period_end,
        )
    )
    return int(total or 0)


def find_overlapping_invoice(
    db: Session,
    workspace_id: UUID,
    contract_id: UUID,
    period_start: date,
    period_end: date,
    exclude_invoice_id: Optional[UUID] = None,
) -> Optional[Invoice]:
    """First invoice on the contract whose inclusive period is not disjoint from the given one."""
    query = (
        select(Invoice)
        .where(
            Invoice.workspace_id == workspace_id,
            Invoice.contract_id == contract_id,
            ~((Invoice.period_end < period_start) | (Invoice.period_start > period_end)),
        )
        .order_by(Invoice.period_start.asc())
    )
    if exclude_invoice_id is not None:
        query = query.where(Invoice.id != exclude_invoice_id)
    return db.scalars(query.limit(1)).first()


def _overlap_conflict(existing: Invoice) -> ConflictError:
    return ConflictError(
        f"Overlapping invoice exists ({existing.period_start.isoformat()} to {existing.period_end.isoformat()})."
    )


def _ensure_no_overlap(db, workspace_id, contract_id, period_start, period_end, exclude_invoice_id=None):
    existing = find_overlapping_invoice(
        db, workspace_id, contract_id, period_start, period_end, exclude_invoice_id
    )
    if existing is not None:
        raise _overlap_conflict(existing)


def _commit_invoice_write(db, workspace_id, contract_id, period_start, period_end, exclude_invoice_id=None):
    """
    Commit a pending invoice write.

    A write rejected by the store's overlap guard, after another writer
    committed between our check and our insert, becomes a ConflictError
    naming the invoice that won.
    """
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        existing = find_overlapping_invoice(
            db, workspace_id, contract_id, period_start, period_end, exclude_invoice_id
        )
        if existing is None:
            raise
        logger.warning(f"Concurrent invoice write on contract {contract_id} rejected as overlapping")
        raise _overlap_conflict(existing)


def compute_breakdown(
    db: Session,
    contract: Contract,
    period_start: date,
    period_end: date,
    hourly_rate_cents_override: Optional[int] = None,
    currency_override: Optional[str] = None,
) -> InvoiceBreakdown:
    """Shared by preview and persisting generation."""
    hourly_rate_cents = resolve_hourly_rate(hourly_rate_cents_override, contract.hourly_rate_cents)
    currency = normalize_currency(
        currency_override if currency_override is not None else (contract.currency or DEFAULT_CURRENCY)
    )
    total_minutes = total_minutes_for_period(db, contract.workspace_id, contract.id, period_start, period_end)
    return InvoiceBreakdown(
        contract_id=contract.id,
        period_start=period_start,
        period_end=period_end,
        total_minutes=total_minutes,
        hourly_rate_cents=hourly_rate_cents,
        amount_cents=compute_amount_cents(total_minutes, hourly_rate_cents),
        currency=currency,
    )


# PUBLIC_INTERFACE
def generate_invoice(
    db: Session,
    workspace_id: UUID,
    contract_id: UUID,
    period_start: date,
    period_end: date,
    hourly_rate_cents_override: Optional[int] = None,
    currency_override: Optional[str] = None,
    preview: bool = False,
    created_by_user_id: Optional[UUID] = None,
) -> InvoiceGeneration:
    """
    Compute an invoice from the contract's work logs and, unless previewing, store it.

    Args:
        db: Database session
        workspace_id: Caller's active workspace
        contract_id: Contract to bill
        period_start: First billed day (inclusive)
        period_end: Last billed day (inclusive)
        hourly_rate_cents_override: Rate replacing the contract's stored rate
        currency_override: Currency replacing the contract's currency
        preview: Compute only; nothing is written
        created_by_user_id: Recorded on the stored invoice

    Returns:
        InvoiceGeneration: Breakdown, plus the stored draft invoice when not previewing

    Raises:
        ValidationError: Bad period, missing/invalid rate or currency
        NotFoundError: Contract absent from the workspace
        ConflictError: Another invoice on the contract overlaps the period
    """
    validate_period(period_start, period_end)

    if preview:
        contract = load_contract(db, workspace_id, contract_id)
        breakdown = compute_breakdown(
            db, contract, period_start, period_end, hourly_rate_cents_override, currency_override
        )
        # release the read transaction
        db.rollback()
        return InvoiceGeneration(breakdown=breakdown)

    try:
        contract = load_contract(db, workspace_id, contract_id, lock=True)
        breakdown = compute_breakdown(
            db, contract, period_start, period_end, hourly_rate_cents_override, currency_override
        )
        _ensure_no_overlap(db, workspace_id, contract_id, period_start, period_end)

        invoice = Invoice(
            workspace_id=workspace_id,
            contract_id=contract_id,
            period_start=period_start,
            period_end=period_end,
            amount_cents=breakdown.amount_cents,
            currency=breakdown.currency,
            status=InvoiceStatus.DRAFT,
            created_by_user_id=created_by_user_id,
        )
        db.add(invoice)
        _commit_invoice_write(db, workspace_id, contract_id, period_start, period_end)
    except (AppError, SQLAlchemyError):
        db.rollback()
        raise

    db.refresh(invoice)
    logger.info(
        f"Generated invoice {invoice.id} for contract {contract_id}: "
        f"{breakdown.total_minutes} min, {breakdown.amount_cents} {breakdown.currency}"
    )
    return InvoiceGeneration(breakdown=breakdown, invoice=invoice)


# PUBLIC_INTERFACE
def create_invoice(
    db: Session,
    workspace_id: UUID,
    contract_id: UUID,
    period_start: date,
    period_end: date,
    amount_cents: int,
    currency: str = DEFAULT_CURRENCY,
    status: InvoiceStatus = InvoiceStatus.DRAFT,
    created_by_user_id: Optional[UUID] = None,
) -> Invoice:
    """Store a manually priced invoice under the same overlap guarantee as generation."""
    validate_period(period_start, period_end)
    if not _is_int(amount_cents) or amount_cents < 0 or amount_cents > MAX_AMOUNT_CENTS:
        raise ValidationError("amountCents must be a non-negative integer.")
    currency = normalize_currency(currency)

    try:
        load_contract(db, workspace_id, contract_id, lock=True)
        _ensure_no_overlap(db, workspace_id, contract_id, period_start, period_end)
        invoice = Invoice(
            workspace_id=workspace_id,
            contract_id=contract_id,
            period_start=period_start,
            period_end=period_end,
            amount_cents=amount_cents,
            currency=currency,
            status=status,
            created_by_user_id=created_by_user_id,
        )
        db.add(invoice)
        _commit_invoice_write(db, workspace_id, contract_id, period_start, period_end)
    except (AppError, SQLAlchemyError):
        db.rollback()
        raise

    db.refresh(invoice)
    return invoice


# PUBLIC_INTERFACE
def update_invoice(db: Session, workspace_id: UUID, invoice_id: UUID, changes: Dict[str, Any]) -> Invoice:
    """
    Apply a partial update to an invoice in the workspace.

    ``changes`` may hold contract_id, period_start, period_end, amount_cents,
    currency and status. A moved period or contract is re-checked for overlap
    against the target contract, excluding the invoice itself.
    """
    if not changes:
        raise ValidationError("No updates provided.")

    try:
        invoice = db.scalars(
            select(Invoice).where(Invoice.id == invoice_id, Invoice.workspace_id == workspace_id)
        ).first()
        if invoice is None:
            raise NotFoundError()

        if "amount_cents" in changes:
            amount = changes["amount_cents"]
            if not _is_int(amount) or amount < 0 or amount > MAX_AMOUNT_CENTS:
                raise ValidationError("amountCents must be a non-negative integer.")
            invoice.amount_cents = amount
        if "currency" in changes:
            invoice.currency = normalize_currency(changes["currency"])
        if "status" in changes:
            invoice.status = InvoiceStatus(changes["status"])

        contract_id = changes.get("contract_id", invoice.contract_id)
        period_start = changes.get("period_start", invoice.period_start)
        period_end = changes.get("period_end", invoice.period_end)

        if {"contract_id", "period_start", "period_end"} & changes.keys():
            validate_period(period_start, period_end)
            load_contract(db, workspace_id, contract_id, lock=True)
            _ensure_no_overlap(db, workspace_id, contract_id, period_start, period_end, invoice.id)
            invoice.contract_id = contract_id
            invoice.period_start = period_start
            invoice.period_end = period_end

        _commit_invoice_write(db, workspace_id, contract_id, period_start, period_end, invoice_id)
    except (AppError, SQLAlchemyError):
        db.rollback()
        raise

    db.refresh(invoice)
    return invoice
