"""
Payment Receipt Generator
Lays out a single-page payment receipt for a hostel fee or electricity payment
"""

import time
import logging
from collections.abc import Mapping
from datetime import datetime
from typing import Optional, Union

from fee_models import PaymentRecord, StudentRecord
from document_models import Document, Text, Rect, Line, A4_WIDTH_MM, A4_HEIGHT_MM
from document_helpers import (
    NOT_AVAILABLE, DEFAULT_CURRENCY_SYMBOL, DEFAULT_DISPLAY_TIMEZONE, format_currency, format_datetime,
    display, as_text, short_id
)

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_NAME = 'PYDAH SOFT HOSTEL MANAGEMENT SYSTEM'

MARGIN = 20
HEADING_SIZE = 14
BODY_SIZE = 10
LINE_STEP = 10
SECTION_STEP = 15

TITLE_COLOR = (30, 64, 175)
FRAME_COLOR = (209, 213, 219)
FOOTER_COLOR = (107, 114, 128)


def receipt_filename(payment: PaymentRecord) -> str:
    """payment_receipt_<receipt number | payment id | epoch millis>.pdf"""
    key = payment.receipt_number or payment.payment_id or str(int(time.time() * 1000))
    return f"payment_receipt_{key}.pdf"


def _coerce_payment(payment) -> PaymentRecord:
    if isinstance(payment, PaymentRecord):
        return payment
    if isinstance(payment, Mapping):
        return PaymentRecord.from_api(payment)
    raise TypeError(f"Cannot build a receipt from {type(payment).__name__}")


def _coerce_student(student) -> StudentRecord:
    if student is None:
        return StudentRecord()
    if isinstance(student, StudentRecord):
        return student
    if isinstance(student, Mapping):
        return StudentRecord.from_api(student)
    logger.warning(f"Ignoring student data of type {type(student).__name__} on receipt")
    return StudentRecord()


def compose_receipt(payment: Union[PaymentRecord, Mapping],
                    student: Union[StudentRecord, Mapping, None] = None,
                    generated_at: datetime = None,
                    system_name: str = DEFAULT_SYSTEM_NAME,
                    currency_symbol: str = DEFAULT_CURRENCY_SYMBOL,
                    display_timezone: str = DEFAULT_DISPLAY_TIMEZONE) -> Optional[Document]:
    """
    Compose a payment receipt

    Args:
        payment: PaymentRecord or the raw payment dict from the backend
        student: optional student record, used where the payment lacks a snapshot
        generated_at: timestamp printed in the footer (defaults to now)
        display_timezone: timezone the payment date is shown in

    Returns:
        Document, or None if the payment data is unusable (the error is logged)
    """
    try:
        return _layout_receipt(_coerce_payment(payment), _coerce_student(student),
                               generated_at, system_name, currency_symbol, display_timezone)
    except Exception as e:
        logger.error(f"Error generating receipt: {e}")
        return None


def _layout_receipt(payment: PaymentRecord, student: StudentRecord, generated_at: Optional[datetime],
                    system_name: str, currency_symbol: str, display_timezone: str) -> Document:
    def money(amount):
        return format_currency(amount, currency_symbol)

    doc = Document(filename=receipt_filename(payment))
    page_width, page_height = A4_WIDTH_MM, A4_HEIGHT_MM
    centre = page_width / 2

    title = doc.section('title')
    title.add(Text('PAYMENT RECEIPT', centre, 35, size=24, bold=True, align='center', color=TITLE_COLOR))
    title.add(Text(system_name, centre, 45, size=12, align='center'))
    title.add(Line(MARGIN, 55, page_width - MARGIN, 55, line_width=0.5, stroke=TITLE_COLOR))

    y = 70

    def heading(section, label):
        nonlocal y
        section.add(Text(label, MARGIN, y, size=HEADING_SIZE, bold=True))
        y += SECTION_STEP

    def field(section, label, value, step=LINE_STEP):
        nonlocal y
        section.add(Text(f"{label}: {value}", MARGIN, y, size=BODY_SIZE))
        y += step

    # Receipt metadata
    details = doc.section('receipt_details')
    heading(details, 'Receipt Details')
    field(details, 'Receipt No', payment.receipt_number or short_id(payment.payment_id) or NOT_AVAILABLE)
    field(details, 'Transaction ID', payment.transaction_id or short_id(payment.payment_id) or NOT_AVAILABLE)
    field(details, 'Date', format_datetime(payment.payment_date, display_timezone))
    field(details, 'Payment Type', 'Electricity Bill' if payment.is_electricity else 'Hostel Fee',
          step=SECTION_STEP)

    # Student, the payment's own snapshot wins over the current profile
    student_section = doc.section('student_details')
    heading(student_section, 'Student Details')
    field(student_section, 'Name', display(payment.student_name or student.name))
    field(student_section, 'Roll Number', display(payment.student_roll_number or student.roll_number))
    field(student_section, 'Room Number', display(student.room_number or payment.room_number))
    field(student_section, 'Academic Year', display(payment.academic_year or student.academic_year))
    field(student_section, 'Category', display(payment.category or student.category), step=SECTION_STEP)

    # Payment
    payment_section = doc.section('payment_details')
    heading(payment_section, 'Payment Details')
    field(payment_section, 'Amount', money(payment.amount))
    if payment.is_electricity:
        field(payment_section, 'Bill Month', display(payment.bill_month))
    else:
        field(payment_section, 'Term', display(payment.raw_term))
    method = payment.payment_method or 'Cash'
    field(payment_section, 'Payment Method', method)
    if method == 'Online' and payment.utr_number:
        field(payment_section, 'UTR Number', payment.utr_number)
    field(payment_section, 'Status', (payment.status or 'success').upper())
    field(payment_section, 'Collected By', payment.collected_by_name or 'Admin', step=SECTION_STEP)

    if payment.is_electricity:
        bill = doc.section('bill_details')
        heading(bill, 'Bill Details')
        bill_details = payment.bill_details
        if bill_details is not None:
            # Absent fields are left out, never printed as zero
            if bill_details.consumption is not None:
                field(bill, 'Consumption', f"{as_text(bill_details.consumption)} units")
            if bill_details.rate is not None:
                field(bill, 'Rate', f"{money(bill_details.rate)} per unit")
            if bill_details.total is not None:
                field(bill, 'Total Room Bill', money(bill_details.total))
        field(bill, 'Your Share', money(payment.amount), step=SECTION_STEP)

    if payment.notes:
        notes = doc.section('notes')
        field(notes, 'Notes', payment.notes, step=SECTION_STEP)

    frame = doc.section('frame')
    frame.add(Rect(MARGIN - 5, MARGIN - 5, page_width - 2 * MARGIN + 10, page_height - 2 * MARGIN + 10,
                   line_width=0.5, stroke=FRAME_COLOR))

    footer = doc.section('footer')
    footer.add(Text('This is a computer generated receipt and does not require a signature.',
                    centre, page_height - 20, size=8, align='center', color=FOOTER_COLOR))
    footer.add(Text(f"Generated on: {format_datetime(generated_at or datetime.now(), display_timezone)}",
                    centre, page_height - 15, size=8, align='center', color=FOOTER_COLOR))
    return doc
