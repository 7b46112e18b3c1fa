"""
Fee Models for the Hostel Fee Documents portal
Typed views over the records served by the hostel backend API: fee structures,
student fee profiles, payments and the derived per-term allocations.

Every optional field is resolved once here, with its fallback, so the allocator
and the document composers never have to dig through raw API dicts.
"""

import re
import enum
import math
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from dateutil import parser as date_parser

logger = logging.getLogger(__name__)

TERMS = (1, 2, 3)


# ===== ENUMS =====

class FeeStatusEnum(enum.Enum):
    UNPAID = "Unpaid"
    PARTIALLY_PAID = "Partially Paid"
    PAID = "Paid"


class PaymentTypeEnum(enum.Enum):
    HOSTEL_FEE = "hostel_fee"
    ELECTRICITY = "electricity"
    ADDITIONAL_FEE = "additional_fee"


class PaymentStatusEnum(enum.Enum):
    SUCCESS = "success"
    PENDING = "pending"
    FAILED = "failed"
    CANCELLED = "cancelled"


# ===== COERCION HELPERS =====

def to_amount(value: Any, default: float = 0.0) -> float:
    """Coerce an API amount (number, numeric string, None) to a float."""
    if value is None or isinstance(value, bool):
        return default
    try:
        amount = float(str(value).replace(',', '').strip())
    except (TypeError, ValueError):
        return default
    if not math.isfinite(amount):
        return default
    return amount


def to_optional_amount(value: Any) -> Optional[float]:
    if value is None or value == '':
        return None
    amount = to_amount(value, default=None)
    return amount


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse an ISO-ish timestamp from the API, None when absent or malformed."""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value
    try:
        return date_parser.parse(str(value))
    except (ValueError, OverflowError, TypeError):
        logger.debug(f"Unparseable date value: {value!r}")
        return None


_TERM_WORDS = {
    'first': 1, 'second': 2, 'third': 3,
    '1st': 1, '2nd': 2, '3rd': 3,
}


def normalize_term(value: Any) -> Optional[int]:
    """
    Normalize a term identifier to its canonical integer form.

    Accepts 1, "1", "term1", "Term 1", "1st Term", "first term".
    Returns None for anything that does not name term 1, 2 or 3.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value in TERMS else None
    if isinstance(value, float):
        return int(value) if value.is_integer() and int(value) in TERMS else None

    text = str(value).strip().lower()
    if not text:
        return None
    for word, term in _TERM_WORDS.items():
        if text.startswith(word):
            return term
    match = re.fullmatch(r'(?:term)?[\s_-]*([0-9]+)(?:[\s_-]*term)?', text)
    if match:
        term = int(match.group(1))
        return term if term in TERMS else None
    return None


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _ref_id(value: Any) -> Optional[str]:
    """Id of a referenced document, populated (dict with _id) or not"""
    if isinstance(value, Mapping):
        value = value.get('_id') or value.get('id')
    return _text(value)


# ===== REFERENCE DATA =====

@dataclass(frozen=True)
class FeeStructure:
    """Per (academic year, category) hostel fee split into three terms"""
    academic_year: Optional[str]
    category: Optional[str]
    term1_fee: float = 0.0
    term2_fee: float = 0.0
    term3_fee: float = 0.0
    total_fee: float = 0.0

    def term_fee(self, term: int) -> float:
        return {1: self.term1_fee, 2: self.term2_fee, 3: self.term3_fee}[term]

    @classmethod
    def from_api(cls, data: Mapping) -> 'FeeStructure':
        # Some endpoints wrap the record once more in a `data` key
        if isinstance(data.get('data'), Mapping):
            data = data['data']
        term1 = max(0.0, to_amount(data.get('term1Fee')))
        term2 = max(0.0, to_amount(data.get('term2Fee')))
        term3 = max(0.0, to_amount(data.get('term3Fee')))
        total = max(0.0, to_amount(data.get('totalFee'))) or (term1 + term2 + term3)
        return cls(
            academic_year=_text(data.get('academicYear')),
            category=_text(data.get('category')),
            term1_fee=term1,
            term2_fee=term2,
            term3_fee=term3,
            total_fee=total,
        )


@dataclass(frozen=True)
class StudentFeeProfile:
    """Concession and optional backend-precomputed term fees for one student"""
    concession: float = 0.0
    calculated_term1_fee: Optional[float] = None
    calculated_term2_fee: Optional[float] = None
    calculated_term3_fee: Optional[float] = None

    def precomputed(self, term: int) -> Optional[float]:
        return {
            1: self.calculated_term1_fee,
            2: self.calculated_term2_fee,
            3: self.calculated_term3_fee,
        }[term]

    @classmethod
    def from_api(cls, data: Mapping) -> 'StudentFeeProfile':
        return cls(
            concession=max(0.0, to_amount(data.get('concession'))),
            calculated_term1_fee=to_optional_amount(data.get('calculatedTerm1Fee')),
            calculated_term2_fee=to_optional_amount(data.get('calculatedTerm2Fee')),
            calculated_term3_fee=to_optional_amount(data.get('calculatedTerm3Fee')),
        )


@dataclass(frozen=True)
class BillDetails:
    """Electricity bill breakdown; each field is None when the backend omits it"""
    consumption: Optional[float] = None
    rate: Optional[float] = None
    total: Optional[float] = None

    @classmethod
    def from_api(cls, data: Optional[Mapping], consumption: Any = None) -> 'BillDetails':
        data = data or {}
        if consumption is None:
            consumption = data.get('consumption')
        return cls(
            consumption=to_optional_amount(consumption),
            rate=to_optional_amount(data.get('rate')),
            total=to_optional_amount(data.get('total')),
        )


@dataclass(frozen=True)
class PaymentRecord:
    """A payment as recorded by the backend. Read-only on this side."""
    payment_id: Optional[str] = None
    student_id: Optional[str] = None
    amount: float = 0.0
    term: Optional[int] = None
    raw_term: Optional[str] = None
    payment_type: str = PaymentTypeEnum.HOSTEL_FEE.value
    status: Optional[str] = None
    payment_method: Optional[str] = None
    payment_date: Optional[datetime] = None
    receipt_number: Optional[str] = None
    transaction_id: Optional[str] = None
    utr_number: Optional[str] = None
    bill_month: Optional[str] = None
    bill_details: Optional[BillDetails] = None
    notes: Optional[str] = None
    collected_by_name: Optional[str] = None
    student_name: Optional[str] = None
    student_roll_number: Optional[str] = None
    academic_year: Optional[str] = None
    category: Optional[str] = None
    room_number: Optional[str] = None

    @property
    def is_electricity(self) -> bool:
        return self.payment_type == PaymentTypeEnum.ELECTRICITY.value

    @property
    def is_successful_hostel_fee(self) -> bool:
        return (self.payment_type == PaymentTypeEnum.HOSTEL_FEE.value
                and self.status == PaymentStatusEnum.SUCCESS.value)

    @classmethod
    def from_api(cls, data: Mapping) -> 'PaymentRecord':
        room = data.get('roomId')
        room_number = data.get('roomNumber')
        if room_number is None and isinstance(room, Mapping):
            room_number = room.get('roomNumber')

        payment_type = _text(data.get('paymentType')) or PaymentTypeEnum.HOSTEL_FEE.value
        bill_details = None
        if payment_type == PaymentTypeEnum.ELECTRICITY.value:
            bill_details = BillDetails.from_api(data.get('billDetails'), data.get('consumption'))

        status = _text(data.get('status'))
        return cls(
            payment_id=_text(data.get('_id') or data.get('id') or data.get('paymentId')),
            student_id=_ref_id(data.get('studentId') or data.get('student')),
            amount=to_amount(data.get('amount')),
            term=normalize_term(data.get('term')),
            raw_term=_text(data.get('term')),
            payment_type=payment_type,
            status=status.lower() if status else None,
            payment_method=_text(data.get('paymentMethod')),
            payment_date=parse_datetime(data.get('paymentDate') or data.get('createdAt')),
            receipt_number=_text(data.get('receiptNumber')),
            transaction_id=_text(data.get('transactionId') or data.get('cashfreeOrderId')),
            utr_number=_text(data.get('utrNumber')),
            bill_month=_text(data.get('billMonth')),
            bill_details=bill_details,
            notes=_text(data.get('notes')),
            collected_by_name=_text(data.get('collectedByName')),
            student_name=_text(data.get('studentName')),
            student_roll_number=_text(data.get('studentRollNumber')),
            academic_year=_text(data.get('academicYear')),
            category=_text(data.get('category')),
            room_number=_text(room_number),
        )


@dataclass(frozen=True)
class StudentRecord:
    """Student profile fields used on receipts and admit cards"""
    student_id: Optional[str] = None
    name: Optional[str] = None
    roll_number: Optional[str] = None
    course: Optional[str] = None
    course_id: Optional[str] = None
    year: Optional[str] = None
    gender: Optional[str] = None
    student_phone: Optional[str] = None
    parent_phone: Optional[str] = None
    address: Optional[str] = None
    hostel_id: Optional[str] = None
    category: Optional[str] = None
    room_number: Optional[str] = None
    academic_year: Optional[str] = None
    photo: Optional[str] = None
    fee_profile: StudentFeeProfile = field(default_factory=StudentFeeProfile)

    @classmethod
    def from_api(cls, data: Mapping) -> 'StudentRecord':
        course = data.get('course')
        course_id = data.get('courseId')
        if isinstance(course, Mapping):
            course_id = course_id or course.get('_id')
            course = course.get('name')
        return cls(
            student_id=_text(data.get('_id') or data.get('id')),
            name=_text(data.get('name') or data.get('fullName')),
            roll_number=_text(data.get('rollNumber') or data.get('rollNo') or data.get('studentId')),
            course=_text(course),
            course_id=_text(course_id),
            year=_text(data.get('year')),
            gender=_text(data.get('gender')),
            student_phone=_text(data.get('studentPhone')),
            parent_phone=_text(data.get('parentPhone')),
            address=_text(data.get('address')),
            hostel_id=_text(data.get('hostelId')),
            category=_text(data.get('category')),
            room_number=_text(data.get('roomNumber')),
            academic_year=_text(data.get('academicYear')),
            photo=_text(data.get('studentPhoto')),
            fee_profile=StudentFeeProfile.from_api(data),
        )


# ===== DERIVED =====

@dataclass(frozen=True)
class TermAllocation:
    """Required vs applied amount for one term after excess carry-forward"""
    term: int
    required: float
    paid: float
    remaining: float
    status: FeeStatusEnum

    def to_dict(self) -> Dict[str, Any]:
        return {
            'term': self.term,
            'required': self.required,
            'paid': self.paid,
            'remaining': self.remaining,
            'status': self.status.value,
        }


@dataclass(frozen=True)
class FeeOverview:
    terms: List[TermAllocation]
    total_fee: float
    paid_amount: float
    pending_amount: float
    structure_configured: bool = True

    @property
    def all_terms_paid(self) -> bool:
        return self.structure_configured and all(t.status == FeeStatusEnum.PAID for t in self.terms)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'structure_configured': self.structure_configured,
            'terms': [t.to_dict() for t in self.terms],
            'total_fee': self.total_fee,
            'paid_amount': self.paid_amount,
            'pending_amount': self.pending_amount,
            'all_terms_paid': self.all_terms_paid,
        }
