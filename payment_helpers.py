"""
Helper functions for the admin payment records view
Client-side filtering and summary statistics over payment lists fetched from the backend
"""

from datetime import date, datetime, time
from typing import Dict, Iterable, List, Optional, Union

from fee_models import PaymentRecord, PaymentStatusEnum, PaymentTypeEnum, StudentRecord

DateLike = Union[date, datetime, str, None]


def _as_date(value: DateLike) -> Optional[date]:
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.strptime(str(value), '%Y-%m-%d').date()


def _matches_search(payment: PaymentRecord, needle: str) -> bool:
    haystack = (
        payment.student_name,
        payment.student_roll_number,
        payment.receipt_number,
        payment.transaction_id,
    )
    return any(value and needle in value.lower() for value in haystack)


def filter_payments(payments: Iterable[PaymentRecord], payment_type: str = None,
                    payment_method: str = None, status: str = None,
                    from_date: DateLike = None, to_date: DateLike = None,
                    academic_year: str = None, search: str = None) -> List[PaymentRecord]:
    """
    Filter a payment list the way the payment records screen does

    Args:
        payments: PaymentRecord objects
        payment_type: exact payment type (hostel_fee, electricity, additional_fee)
        payment_method: case-insensitive payment method (Cash, Online, ...)
        status: case-insensitive payment status
        from_date / to_date: inclusive date range, date or 'YYYY-MM-DD'
        academic_year: exact academic year ('2024-2025')
        search: substring of student name, roll number, receipt number or transaction id

    Returns:
        list of matching payments, original order preserved

    Raises:
        ValueError if a date string is not 'YYYY-MM-DD'
    """
    start = _as_date(from_date)
    end = _as_date(to_date)
    # to_date covers the whole day
    end_dt = datetime.combine(end, time.max) if end else None
    start_dt = datetime.combine(start, time.min) if start else None
    needle = search.strip().lower() if search else None

    result = []
    for p in payments:
        if payment_type and p.payment_type != payment_type:
            continue
        if payment_method and (p.payment_method or '').lower() != payment_method.lower():
            continue
        if status and (p.status or '').lower() != status.lower():
            continue
        if start_dt or end_dt:
            if p.payment_date is None:
                continue
            paid_at = p.payment_date.replace(tzinfo=None)
            if start_dt and paid_at < start_dt:
                continue
            if end_dt and paid_at > end_dt:
                continue
        if academic_year and p.academic_year != academic_year:
            continue
        if needle and not _matches_search(p, needle):
            continue
        result.append(p)
    return result


def payments_for_student(payments: Iterable[PaymentRecord], student: StudentRecord) -> List[PaymentRecord]:
    """
    Keep only the payments that belong to this student.

    Matched on the student id; a payment without one is matched on roll number.
    Payments that identify neither are dropped.
    """
    result = []
    for p in payments:
        if p.student_id:
            if p.student_id == student.student_id:
                result.append(p)
        elif student.roll_number and p.student_roll_number == student.roll_number:
            result.append(p)
    return result


def payment_stats(payments: Iterable[PaymentRecord]) -> Dict[str, float]:
    """Summary cards shown above the payment records table"""
    payments = list(payments)
    return {
        'total_amount': sum(p.amount for p in payments),
        'total_count': len(payments),
        'success_count': sum(1 for p in payments if p.status == PaymentStatusEnum.SUCCESS.value),
        'hostel_fee_count': sum(1 for p in payments if p.payment_type == PaymentTypeEnum.HOSTEL_FEE.value),
        'electricity_count': sum(1 for p in payments if p.payment_type == PaymentTypeEnum.ELECTRICITY.value),
        'additional_fee_count': sum(1 for p in payments if p.payment_type == PaymentTypeEnum.ADDITIONAL_FEE.value),
    }
