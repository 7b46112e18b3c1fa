"""
Hostel Admit Card Generator
Builds the single-page admit card holding a student copy and a warden copy,
and runs bulk generation for a selection of students
"""

import time
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple, Union

from fee_models import TERMS, FeeStructure, StudentRecord
from fee_helpers import resolve_term_fees
from document_models import (
    Document, Text, Rect, Line, Image, TableBlock, InvalidDocumentData,
    A4_WIDTH_MM, A4_HEIGHT_MM
)
from document_helpers import DEFAULT_CURRENCY_SYMBOL, decode_inline_image, format_currency, as_text
from hostel_api import HostelApiClient, FeeStructureCache
from pdf_renderer import GeneratedPdf, render_document

logger = logging.getLogger(__name__)

STUDENT_COPY = 'STUDENT COPY'
WARDEN_COPY = 'WARDEN COPY'

MARGIN = 10
CONTENT_WIDTH = A4_WIDTH_MM - 2 * MARGIN
HALF_PAGE = A4_HEIGHT_MM / 2
COPY_HEIGHT = HALF_PAGE - 2 * MARGIN
DIVIDER_COLOR = (100, 100, 100)

# Offsets inside one copy, measured from the copy's top edge
HEADER_TOP = 8
HEADER_RULE = 24
DETAILS_TOP = 30
DETAILS_STEP = 3.5
DETAILS_VALUE_X = MARGIN + 30
PHOTO_X = 160
PHOTO_TOP = 31
PHOTO_WIDTH = 30
PHOTO_HEIGHT = 35
SIGNATURE_TOP = 68
SIGNATURE_HEIGHT = 12
TABLE_X = 40
TABLE_TITLE_TOP = 76
TABLE_TOP = 78
NOTES_OFFSET = 5

FEE_TABLE_HEADER = ('Term', 'Original Amount', 'After Concession', 'Remarks')
FEE_TABLE_COL_WIDTHS = (20.0, 24.0, 24.0, 20.0)
TERM_LABELS = {1: '1st Term', 2: '2nd Term', 3: '3rd Term'}
TERM_REMARKS = {1: '', 2: 'Before 2nd MID Term', 3: 'Before 2nd Sem Start'}


def _setting(config, key, default=None):
    if isinstance(config, Mapping):
        return config.get(key, default)
    return getattr(config, key, default)


@dataclass(frozen=True)
class AdmitCardSettings:
    institution_name: str = 'Pydah Group Of Institutions'
    logo_path: Optional[str] = None
    logo_fallback_text: str = 'PYDAH GROUP'
    late_fee_amount: int = 500
    currency_symbol: str = DEFAULT_CURRENCY_SYMBOL
    default_academic_year: str = '2024-2025'
    default_category: str = 'A'
    bulk_delay: float = 0.5

    @classmethod
    def from_config(cls, config) -> 'AdmitCardSettings':
        defaults = cls()
        return cls(
            institution_name=_setting(config, 'INSTITUTION_NAME', defaults.institution_name),
            logo_path=_setting(config, 'LOGO_PATH') or None,
            logo_fallback_text=_setting(config, 'LOGO_FALLBACK_TEXT', defaults.logo_fallback_text),
            late_fee_amount=_setting(config, 'LATE_FEE_AMOUNT', defaults.late_fee_amount),
            currency_symbol=_setting(config, 'CURRENCY_SYMBOL', defaults.currency_symbol),
            default_academic_year=_setting(config, 'DEFAULT_ACADEMIC_YEAR', defaults.default_academic_year),
            default_category=_setting(config, 'DEFAULT_CATEGORY', defaults.default_category),
            bulk_delay=float(_setting(config, 'ADMIT_CARD_BULK_DELAY', defaults.bulk_delay)),
        )


@dataclass
class BulkGenerationResult:
    generated: List[GeneratedPdf] = field(default_factory=list)
    failed: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return len(self.generated)


def admit_card_filename(student: StudentRecord) -> str:
    return f"AdmitCard_{student.name or 'Student'}_{student.roll_number or 'Unknown'}.pdf"


def academic_year_for(student: StudentRecord, settings: AdmitCardSettings) -> str:
    return student.academic_year or settings.default_academic_year


def category_for(student: StudentRecord, settings: AdmitCardSettings) -> str:
    return student.category or settings.default_category


def _coerce_student(student) -> StudentRecord:
    if isinstance(student, StudentRecord):
        return student
    if isinstance(student, Mapping):
        return StudentRecord.from_api(student)
    raise InvalidDocumentData(f"Invalid student object provided: {type(student).__name__}")


def _coerce_fee_structure(fee_structure) -> Optional[FeeStructure]:
    if fee_structure is None or isinstance(fee_structure, FeeStructure):
        return fee_structure
    if isinstance(fee_structure, Mapping):
        return FeeStructure.from_api(fee_structure)
    raise InvalidDocumentData(f"Invalid fee structure provided: {type(fee_structure).__name__}")


# ===== LAYOUT =====

def _fee_table(student: StudentRecord, fee_structure: Optional[FeeStructure],
               top: float, money) -> TableBlock:
    structure = fee_structure or FeeStructure(academic_year=None, category=None)
    after_concession = resolve_term_fees(structure, student.fee_profile)

    rows = tuple(
        (TERM_LABELS[term], money(structure.term_fee(term)), money(after_concession[term]), TERM_REMARKS[term])
        for term in TERMS
    )
    total_original = sum(structure.term_fee(term) for term in TERMS)
    total_after = sum(after_concession[term] for term in TERMS)
    return TableBlock(
        x=TABLE_X,
        y=top,
        col_widths=FEE_TABLE_COL_WIDTHS,
        header=FEE_TABLE_HEADER,
        rows=rows,
        total_row=('TOTAL', money(total_original), money(total_after), ''),
    )


def _details_rows(student: StudentRecord, password: Optional[str]) -> List[Tuple[str, str]]:
    rows = [
        ('Name:', as_text(student.name)),
        ('Roll No:', as_text(student.roll_number)),
        ('Course:', as_text(student.course)),
        ('Year:', as_text(student.year)),
        ('Mobile No:', as_text(student.student_phone)),
        ('Parent No:', as_text(student.parent_phone)),
        ('Address:', as_text(student.address)),
        ('Hostel ID:', as_text(student.hostel_id)),
        ('Category:', as_text(student.category)),
        ('Room:', as_text(student.room_number)),
    ]
    if password:
        rows.append(('Password:', as_text(password)))
    return rows


def _draw_copy(doc: Document, start_y: float, copy_label: str, password: Optional[str],
               student: StudentRecord, fee_structure: Optional[FeeStructure],
               photo: Optional[bytes], settings: AdmitCardSettings) -> None:
    """One copy of the admit card inside the half-page band starting at start_y"""
    page_width = doc.page_width
    centre = page_width / 2
    right = page_width - MARGIN - 5
    prefix = copy_label.lower().replace(' ', '_')

    def money(amount):
        return format_currency(amount, settings.currency_symbol)

    header = doc.section(f'{prefix}.header')
    header.add(Rect(MARGIN, start_y, CONTENT_WIDTH, COPY_HEIGHT, line_width=0.5))
    header.add(Text(copy_label, MARGIN + 5, start_y + 5, size=8, bold=True))

    y = start_y + HEADER_TOP
    logo_lines = (settings.logo_fallback_text or '').split()[:2]
    logo_fallback = [Rect(MARGIN + 4, y, 22, 12, line_width=0.3, fill=(240, 240, 240))]
    for i, word in enumerate(logo_lines):
        logo_fallback.append(Text(word, MARGIN + 15, y + 6 + 3 * i, size=6, bold=True, align='center'))
    header.add(Image(MARGIN + 4, y, 22, 12, source=settings.logo_path, fallback=tuple(logo_fallback)))
    header.add(Text(settings.institution_name, centre, y + 8, size=11, bold=True, align='center'))
    header.add(Text('HOSTEL ADMIT CARD', right, y + 4, size=8, bold=True, align='right'))
    header.add(Text(f"{academic_year_for(student, settings)} AY", right, y + 8, size=6, bold=True, align='right'))
    header.add(Line(MARGIN + 5, start_y + HEADER_RULE, right, start_y + HEADER_RULE, stroke=DIVIDER_COLOR))

    details = doc.section(f'{prefix}.details')
    y = start_y + DETAILS_TOP
    details.add(Text('STUDENT DETAILS', MARGIN + 5, y, size=8, bold=True))
    y += 4
    for label, value in _details_rows(student, password):
        details.add(Text(label, MARGIN + 5, y, size=7, bold=True))
        details.add(Text(value, DETAILS_VALUE_X, y, size=7))
        y += DETAILS_STEP

    photo_section = doc.section(f'{prefix}.photo')
    photo_top = start_y + PHOTO_TOP
    photo_centre = PHOTO_X + PHOTO_WIDTH / 2
    photo_section.add(Text('STUDENT PHOTO', photo_centre, photo_top - 2, size=6, bold=True, align='center'))
    photo_section.add(Rect(PHOTO_X, photo_top, PHOTO_WIDTH, PHOTO_HEIGHT, line_width=0.4))
    photo_section.add(Image(
        PHOTO_X, photo_top, PHOTO_WIDTH, PHOTO_HEIGHT, source=photo,
        fallback=(Text('Photo', photo_centre, photo_top + PHOTO_HEIGHT / 2, size=8, align='center'),),
    ))
    signature_top = start_y + SIGNATURE_TOP
    photo_section.add(Rect(PHOTO_X, signature_top, PHOTO_WIDTH, SIGNATURE_HEIGHT, line_width=0.3))
    photo_section.add(Text('Authorised Signature', photo_centre, signature_top + 5, size=6, align='center'))
    photo_section.add(Text('with Stamp', photo_centre, signature_top + 9, size=6, align='center'))

    fee_section = doc.section(f'{prefix}.fee_table')
    fee_section.add(Text('FEE STRUCTURE', TABLE_X, start_y + TABLE_TITLE_TOP, size=8, bold=True))
    table = fee_section.add(_fee_table(student, fee_structure, start_y + TABLE_TOP, money))

    notes = doc.section(f'{prefix}.notes')
    y = table.bottom + NOTES_OFFSET
    notes.add(Text('IMPORTANT NOTES:', TABLE_X, y, size=6, bold=True))
    y += 3
    for notice in (
        f"1. Late fee Rs.{settings.late_fee_amount}/- per term if not paid on time",
        "2. Electricity bill extra monthly as per room sharing",
        "3. Present this card at hostel entrance for verification",
    ):
        notes.add(Text(notice, TABLE_X, y, size=5))
        y += 2.5


def compose_admit_card(student: Union[StudentRecord, Mapping],
                       fee_structure: Union[FeeStructure, Mapping, None],
                       password: str = None,
                       fetched_password: str = None,
                       settings: AdmitCardSettings = None) -> Optional[Document]:
    """
    Compose the two-copy admit card for one student

    Args:
        student: StudentRecord or raw student dict
        fee_structure: FeeStructure or raw dict, None renders zero fees
        password: password supplied with the request, wins over fetched_password
        fetched_password: temporary password looked up from the backend

    Returns:
        Document, or None when the data is unusable (the error is logged)
    """
    try:
        return _layout_admit_card(_coerce_student(student), _coerce_fee_structure(fee_structure),
                                  password or fetched_password, settings or AdmitCardSettings())
    except Exception as e:
        logger.error(f"Error generating admit card: {e}")
        return None


def _layout_admit_card(student: StudentRecord, fee_structure: Optional[FeeStructure],
                       final_password: Optional[str], settings: AdmitCardSettings) -> Document:
    if fee_structure is None:
        logger.warning(f"No fee structure for student {student.student_id}, admit card shows zero fees")

    photo = decode_inline_image(student.photo) if student.photo else None
    if student.photo and photo is None:
        logger.warning(f"Photo for student {student.student_id} is not an inline JPEG/PNG, using placeholder")

    doc = Document(filename=admit_card_filename(student))

    _draw_copy(doc, MARGIN, STUDENT_COPY, final_password, student, fee_structure, photo, settings)

    divider = doc.section('divider')
    divider.add(Line(MARGIN + 5, HALF_PAGE, doc.page_width - MARGIN - 5, HALF_PAGE, stroke=DIVIDER_COLOR))

    _draw_copy(doc, HALF_PAGE + 2, WARDEN_COPY, None, student, fee_structure, photo, settings)
    return doc


# ===== GENERATION =====

def generate_admit_card(student: Union[str, StudentRecord], api: HostelApiClient,
                        cache: FeeStructureCache, settings: AdmitCardSettings = None,
                        password: str = None, table_renderer=None,
                        font_path: str = None) -> GeneratedPdf:
    """
    Fetch everything an admit card needs and render it

    Raises:
        HostelApiError if the student cannot be fetched
        InvalidDocumentData if the card cannot be composed
    """
    settings = settings or AdmitCardSettings()
    if not isinstance(student, StudentRecord):
        student = api.get_student(student)

    fee_structure = cache.get(
        academic_year_for(student, settings),
        category_for(student, settings),
        api.get_fee_structure,
    )
    fetched_password = api.get_student_password(student.student_id) if student.student_id else None

    doc = compose_admit_card(student, fee_structure, password=password,
                             fetched_password=fetched_password, settings=settings)
    if doc is None:
        raise InvalidDocumentData(f"Failed to compose admit card for {student.student_id}")
    return GeneratedPdf(doc.filename, render_document(doc, table_renderer=table_renderer, font_path=font_path))


def generate_bulk_admit_cards(students: Sequence[Union[str, StudentRecord]], api: HostelApiClient,
                              cache: FeeStructureCache, settings: AdmitCardSettings = None,
                              table_renderer=None, font_path: str = None,
                              sleep=time.sleep) -> BulkGenerationResult:
    """
    Generate admit cards one after another, in selection order

    A failure for one student is logged and recorded; the rest of the batch
    still runs.
    """
    settings = settings or AdmitCardSettings()
    result = BulkGenerationResult()

    for index, student in enumerate(students):
        if index and settings.bulk_delay > 0:
            sleep(settings.bulk_delay)

        student_id = student.student_id if isinstance(student, StudentRecord) else str(student)
        try:
            pdf = generate_admit_card(student, api, cache, settings,
                                      table_renderer=table_renderer, font_path=font_path)
            result.generated.append(pdf)
            logger.info(f"Admit card generated for student {student_id}: {pdf.filename}")
        except Exception as e:
            logger.error(f"Error generating admit card for student {student_id}: {e}")
            result.failed.append((student_id, str(e)))

    logger.info(f"Bulk admit cards: {result.success_count} generated, {len(result.failed)} failed")
    return result
