"""
Fee Management Helper Functions
Contains the concession allocation and payment reconciliation logic behind
the student fee overview, admit card fee table and defaulter views
"""

import logging
from typing import Dict, Iterable, Optional, Tuple

from fee_models import (
    TERMS, FeeStructure, StudentFeeProfile, PaymentRecord, TermAllocation,
    FeeOverview, FeeStatusEnum, normalize_term, to_amount
)

logger = logging.getLogger(__name__)

FEE_STRUCTURE_MISSING_MESSAGE = (
    "Fee structure not configured for this academic year and category. "
    "Please contact the administrator."
)


# ===== CONCESSION ALLOCATION =====

def compute_term_fees(fee_structure: Optional[FeeStructure], concession: float) -> Dict[int, float]:
    """
    Apply a total concession to the term fees, front-loaded.

    Whatever concession term 1 cannot absorb moves on to term 2, and then to
    term 3. No term goes below zero.

    A missing fee structure gives zero for every term; use
    build_fee_overview when the caller needs to tell that apart from a zero fee.
    """
    if fee_structure is None:
        return {term: 0.0 for term in TERMS}
    remaining = max(0.0, to_amount(concession))
    fees = {}
    for term in TERMS:
        term_fee = fee_structure.term_fee(term)
        fees[term] = max(0.0, term_fee - remaining)
        remaining = max(0.0, remaining - term_fee)
    return fees


def resolve_term_fees(fee_structure: Optional[FeeStructure],
                      profile: Optional[StudentFeeProfile] = None) -> Dict[int, float]:
    """Term fees after concession, preferring values the backend already computed."""
    profile = profile or StudentFeeProfile()
    computed = compute_term_fees(fee_structure, profile.concession)
    resolved = {}
    for term in TERMS:
        precomputed = profile.precomputed(term)
        resolved[term] = max(0.0, precomputed) if precomputed is not None else computed[term]
    return resolved


# ===== PAYMENT RECONCILIATION =====

def collect_term_payments(payments: Iterable[PaymentRecord]) -> Dict[int, float]:
    """Sum successful hostel-fee payments per canonical term"""
    paid = {term: 0.0 for term in TERMS}
    for payment in payments:
        if not payment.is_successful_hostel_fee:
            continue
        term = payment.term if payment.term in TERMS else normalize_term(payment.raw_term)
        if term is None:
            logger.debug(f"Ignoring hostel fee payment {payment.payment_id} with unknown term {payment.raw_term!r}")
            continue
        paid[term] += payment.amount
    return paid


def determine_term_status(required: float, applied: float) -> FeeStatusEnum:
    """Determine term status from required and applied amounts"""
    if applied >= required:
        return FeeStatusEnum.PAID
    elif applied > 0:
        return FeeStatusEnum.PARTIALLY_PAID
    else:
        return FeeStatusEnum.UNPAID


def allocate_payments(required_by_term: Dict[int, float],
                      payments_by_term: Dict[int, float]) -> Tuple[Dict[int, float], Dict[int, FeeStatusEnum]]:
    """
    Apply payments to terms, carrying any excess forward to the next term.

    Excess never flows backwards: an overpaid term 3 does not settle term 1.

    Returns:
        tuple: (applied_by_term, status_by_term)
    """
    applied = {}
    statuses = {}
    excess = 0.0
    for term in TERMS:
        required = max(0.0, required_by_term.get(term, 0.0))
        effective = max(0.0, payments_by_term.get(term, 0.0)) + excess
        applied[term] = min(effective, required)
        excess = max(0.0, effective - required)
        statuses[term] = determine_term_status(required, applied[term])
    return applied, statuses


def total_summary(required_by_term: Dict[int, float], applied_by_term: Dict[int, float]) -> Dict[str, float]:
    """Totals across all terms; pending never goes negative on overpayment"""
    total_fee = sum(required_by_term.get(term, 0.0) for term in TERMS)
    paid_amount = sum(applied_by_term.get(term, 0.0) for term in TERMS)
    return {
        'total_fee': total_fee,
        'paid_amount': paid_amount,
        'pending_amount': max(0.0, total_fee - paid_amount),
    }


# ===== STUDENT-SPECIFIC HELPERS =====

def build_fee_overview(fee_structure: Optional[FeeStructure],
                       profile: Optional[StudentFeeProfile],
                       payments: Iterable[PaymentRecord]) -> FeeOverview:
    """
    Get the complete per-term fee picture for a student.

    A missing fee structure is not a zero fee: the overview comes back with
    `structure_configured=False` and callers must block fee-dependent UI.
    """
    if fee_structure is None:
        return FeeOverview(
            terms=[TermAllocation(term, 0.0, 0.0, 0.0, FeeStatusEnum.UNPAID) for term in TERMS],
            total_fee=0.0,
            paid_amount=0.0,
            pending_amount=0.0,
            structure_configured=False,
        )

    required = resolve_term_fees(fee_structure, profile)
    applied, statuses = allocate_payments(required, collect_term_payments(payments))
    totals = total_summary(required, applied)

    terms = [
        TermAllocation(
            term=term,
            required=required[term],
            paid=applied[term],
            remaining=max(0.0, required[term] - applied[term]),
            status=statuses[term],
        )
        for term in TERMS
    ]
    return FeeOverview(terms=terms, structure_configured=True, **totals)
