"""
PDF rendering for composed documents
Draws a Document layout tree onto a reportlab canvas and returns the PDF bytes.
"""

import io
import os
import logging
from collections import namedtuple
from typing import Optional

from reportlab.lib import colors
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.pdfgen import canvas
from reportlab.platypus import Table, TableStyle

from document_models import Document, Text, Rect, Line, Image, TableBlock, BLACK

logger = logging.getLogger(__name__)

GeneratedPdf = namedtuple('GeneratedPdf', ['filename', 'content'])

PT_TO_MM = 25.4 / 72
REGULAR_FONT = 'Helvetica'
BOLD_FONT = 'Helvetica-Bold'

_registered_fonts = {}


def _rgb(color):
    return tuple(c / 255.0 for c in color)


def register_font(font_path: str) -> Optional[str]:
    """Register a TTF font for text the standard fonts cannot show. None if unusable."""
    if not font_path:
        return None
    if font_path in _registered_fonts:
        return _registered_fonts[font_path]
    if not os.path.isfile(font_path):
        logger.warning(f"PDF font not found at {font_path}, using {REGULAR_FONT}")
        return None
    name = 'DocFont-' + os.path.splitext(os.path.basename(font_path))[0]
    try:
        pdfmetrics.registerFont(TTFont(name, font_path))
    except Exception as e:
        logger.warning(f"Could not register PDF font {font_path}: {e}")
        return None
    _registered_fonts[font_path] = name
    return name


class PdfPainter:
    """Draws layout primitives given in top-down millimetres"""

    def __init__(self, pdf: canvas.Canvas, page_height_mm: float, table_renderer: 'TableRenderer',
                 unicode_font: str = None):
        self.pdf = pdf
        self.page_height_mm = page_height_mm
        self.table_renderer = table_renderer
        self.regular_font = unicode_font or REGULAR_FONT
        self.bold_font = unicode_font or BOLD_FONT
        self.unicode = unicode_font is not None

    def y(self, y_mm: float) -> float:
        return (self.page_height_mm - y_mm) * mm

    def text_value(self, value: str) -> str:
        if self.unicode:
            return value
        # Helvetica has no rupee glyph
        return value.replace('₹', 'Rs.')

    def font(self, bold: bool) -> str:
        return self.bold_font if bold else self.regular_font

    def draw(self, item) -> None:
        if isinstance(item, Text):
            self.draw_text(item)
        elif isinstance(item, Rect):
            self.draw_rect(item)
        elif isinstance(item, Line):
            self.draw_line(item)
        elif isinstance(item, Image):
            self.draw_image(item)
        elif isinstance(item, TableBlock):
            self.draw_table(item)
        else:
            raise TypeError(f"Unknown layout primitive: {type(item).__name__}")

    def draw_text(self, item: Text) -> None:
        self.pdf.setFont(self.font(item.bold), item.size)
        self.pdf.setFillColorRGB(*_rgb(item.color))
        value = self.text_value(item.text)
        x, y = item.x * mm, self.y(item.y)
        if item.align == 'center':
            self.pdf.drawCentredString(x, y, value)
        elif item.align == 'right':
            self.pdf.drawRightString(x, y, value)
        else:
            self.pdf.drawString(x, y, value)

    def draw_rect(self, item: Rect) -> None:
        self.pdf.setLineWidth(item.line_width * mm)
        self.pdf.setStrokeColorRGB(*_rgb(item.stroke))
        if item.fill is not None:
            self.pdf.setFillColorRGB(*_rgb(item.fill))
        self.pdf.rect(item.x * mm, self.y(item.y + item.height), item.width * mm, item.height * mm,
                      stroke=1, fill=1 if item.fill is not None else 0)

    def draw_line(self, item: Line) -> None:
        self.pdf.setLineWidth(item.line_width * mm)
        self.pdf.setStrokeColorRGB(*_rgb(item.stroke))
        self.pdf.line(item.x1 * mm, self.y(item.y1), item.x2 * mm, self.y(item.y2))

    def draw_image(self, item: Image) -> None:
        if item.source is None:
            self.draw_fallback(item)
            return
        try:
            source = io.BytesIO(item.source) if isinstance(item.source, bytes) else item.source
            self.pdf.drawImage(ImageReader(source), item.x * mm, self.y(item.y + item.height),
                               item.width * mm, item.height * mm)
        except Exception as e:
            logger.warning(f"Error adding image, drawing placeholder: {e}")
            self.draw_fallback(item)

    def draw_fallback(self, item: Image) -> None:
        for fallback in item.fallback:
            self.draw(fallback)

    def draw_table(self, block: TableBlock) -> None:
        try:
            self.table_renderer.draw(self, block)
        except Exception as e:
            if isinstance(self.table_renderer, ManualGridTableRenderer):
                raise
            logger.warning(f"{self.table_renderer.name} table failed, drawing grid manually: {e}")
            ManualGridTableRenderer().draw(self, block)


# ===== TABLE RENDERERS =====

class TableRenderer:
    """
    Draws a TableBlock. Implementations must keep the block's column widths and
    fixed row height so the table ends at block.bottom either way.
    """
    name = 'base'

    def draw(self, painter: PdfPainter, block: TableBlock) -> None:
        raise NotImplementedError


class PlatypusTableRenderer(TableRenderer):
    """Delegates to reportlab's platypus Table"""
    name = 'platypus'

    def draw(self, painter: PdfPainter, block: TableBlock) -> None:
        rows = [[painter.text_value(cell) for cell in row] for row in block.all_rows]
        last = len(rows) - 1
        table = Table(
            rows,
            colWidths=[w * mm for w in block.col_widths],
            rowHeights=[block.row_height * mm] * len(rows),
        )
        style = [
            ('GRID', (0, 0), (-1, -1), block.line_width * mm, colors.black),
            ('FONTNAME', (0, 0), (-1, -1), painter.regular_font),
            ('FONTSIZE', (0, 0), (-1, -1), block.font_size),
            ('ALIGN', (0, 0), (-1, -1), 'CENTER'),
            ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
            ('TOPPADDING', (0, 0), (-1, -1), 0),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 0),
            ('LEFTPADDING', (0, 0), (-1, -1), 1),
            ('RIGHTPADDING', (0, 0), (-1, -1), 1),
            ('FONTNAME', (0, 0), (-1, 0), painter.bold_font),
            ('FONTSIZE', (0, 0), (-1, 0), block.header_font_size),
            ('BACKGROUND', (0, 0), (-1, 0), colors.Color(*_rgb(block.header_fill))),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.Color(*_rgb(block.header_text_color))),
        ]
        if block.total_row is not None:
            style += [
                ('FONTNAME', (0, last), (-1, last), painter.bold_font),
                ('FONTSIZE', (0, last), (-1, last), block.header_font_size),
            ]
        table.setStyle(TableStyle(style))
        table.wrapOn(painter.pdf, block.width * mm, block.height * mm)
        table.drawOn(painter.pdf, block.x * mm, painter.y(block.bottom))


class ManualGridTableRenderer(TableRenderer):
    """Grid lines and centred cell text drawn straight on the canvas"""
    name = 'manual'

    def draw(self, painter: PdfPainter, block: TableBlock) -> None:
        pdf = painter.pdf
        rows = block.all_rows

        # Header band first so the grid lines sit on top of it
        pdf.setFillColorRGB(*_rgb(block.header_fill))
        pdf.rect(block.x * mm, painter.y(block.y + block.row_height), block.width * mm,
                 block.row_height * mm, stroke=0, fill=1)

        pdf.setLineWidth(block.line_width * mm)
        pdf.setStrokeColorRGB(0, 0, 0)
        pdf.rect(block.x * mm, painter.y(block.bottom), block.width * mm, block.height * mm, stroke=1, fill=0)
        for i in range(1, len(rows)):
            row_y = painter.y(block.y + i * block.row_height)
            pdf.line(block.x * mm, row_y, (block.x + block.width) * mm, row_y)

        col_starts = []
        x = block.x
        for width in block.col_widths:
            col_starts.append(x)
            x += width
        for col_x in col_starts[1:]:
            pdf.line(col_x * mm, painter.y(block.y), col_x * mm, painter.y(block.bottom))

        for i, row in enumerate(rows):
            bold = block.is_bold_row(i)
            size = block.header_font_size if bold else block.font_size
            color = block.header_text_color if i == 0 else BLACK
            middle = block.y + (i + 0.5) * block.row_height
            baseline = middle + size * PT_TO_MM * 0.35
            pdf.setFont(painter.font(bold), size)
            pdf.setFillColorRGB(*_rgb(color))
            for col_x, width, cell in zip(col_starts, block.col_widths, row):
                pdf.drawCentredString((col_x + width / 2) * mm, painter.y(baseline), painter.text_value(cell))


TABLE_RENDERERS = {
    PlatypusTableRenderer.name: PlatypusTableRenderer,
    ManualGridTableRenderer.name: ManualGridTableRenderer,
}


def select_table_renderer(preferred: str = None) -> TableRenderer:
    """Table renderer by name, the platypus one unless 'manual' is asked for"""
    renderer_class = TABLE_RENDERERS.get((preferred or PlatypusTableRenderer.name).lower())
    if renderer_class is None:
        logger.warning(f"Unknown table renderer {preferred!r}, using {PlatypusTableRenderer.name}")
        renderer_class = PlatypusTableRenderer
    return renderer_class()


def render_document(document: Document, table_renderer: TableRenderer = None,
                    font_path: str = None) -> bytes:
    """Render a composed document to PDF bytes"""
    buffer = io.BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=(document.page_width * mm, document.page_height * mm))
    pdf.setTitle(document.filename)

    painter = PdfPainter(pdf, document.page_height, table_renderer or select_table_renderer(),
                         unicode_font=register_font(font_path))
    for section in document.sections:
        for item in section.items:
            painter.draw(item)

    pdf.showPage()
    pdf.save()
    return buffer.getvalue()
