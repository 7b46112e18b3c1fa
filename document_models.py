"""
Document layout models
A composed receipt or admit card is a page-sized tree of named sections, each
holding drawing primitives positioned in millimetres from the top-left corner.
Composers build these; pdf_renderer turns them into PDF bytes.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union

A4_WIDTH_MM = 210.0
A4_HEIGHT_MM = 297.0

Color = Tuple[int, int, int]
BLACK: Color = (0, 0, 0)
WHITE: Color = (255, 255, 255)


class InvalidDocumentData(ValueError):
    """Raised when a composer is handed data it cannot build a document from"""
    pass


@dataclass(frozen=True)
class Text:
    text: str
    x: float
    y: float
    size: float = 10
    bold: bool = False
    align: str = 'left'  # left | center | right
    color: Color = BLACK


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float
    line_width: float = 0.5
    stroke: Color = BLACK
    fill: Optional[Color] = None


@dataclass(frozen=True)
class Line:
    x1: float
    y1: float
    x2: float
    y2: float
    line_width: float = 0.3
    stroke: Color = BLACK


@dataclass(frozen=True)
class Image:
    """An image with the primitives drawn instead when it cannot be loaded"""
    x: float
    y: float
    width: float
    height: float
    source: Union[str, bytes, None] = None
    fallback: Tuple['Primitive', ...] = ()


@dataclass(frozen=True)
class TableBlock:
    """
    Grid table with fixed geometry: the bottom edge is known before drawing,
    whichever renderer ends up drawing it.
    """
    x: float
    y: float
    col_widths: Tuple[float, ...]
    header: Tuple[str, ...]
    rows: Tuple[Tuple[str, ...], ...]
    total_row: Optional[Tuple[str, ...]] = None
    row_height: float = 5.0
    font_size: float = 5.0
    header_font_size: float = 6.0
    header_fill: Color = (70, 70, 70)
    header_text_color: Color = WHITE
    line_width: float = 0.2

    @property
    def all_rows(self) -> List[Tuple[str, ...]]:
        rows = [self.header] + list(self.rows)
        if self.total_row is not None:
            rows.append(self.total_row)
        return rows

    @property
    def width(self) -> float:
        return sum(self.col_widths)

    @property
    def height(self) -> float:
        return self.row_height * len(self.all_rows)

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def is_bold_row(self, index: int) -> bool:
        return index == 0 or (self.total_row is not None and index == len(self.all_rows) - 1)


Primitive = Union[Text, Rect, Line, Image, TableBlock]


@dataclass
class Section:
    name: str
    items: List[Primitive] = field(default_factory=list)

    def add(self, item: Primitive) -> Primitive:
        self.items.append(item)
        return item

    def texts(self) -> List[str]:
        result = []
        for item in self.items:
            if isinstance(item, Text):
                result.append(item.text)
            elif isinstance(item, TableBlock):
                for row in item.all_rows:
                    result.extend(row)
            elif isinstance(item, Image) and item.source is None:
                result.extend(f.text for f in item.fallback if isinstance(f, Text))
        return result


@dataclass
class Document:
    filename: str
    sections: List[Section] = field(default_factory=list)
    page_width: float = A4_WIDTH_MM
    page_height: float = A4_HEIGHT_MM

    def section(self, name: str) -> Section:
        section = Section(name)
        self.sections.append(section)
        return section

    def find(self, name: str) -> List[Section]:
        return [s for s in self.sections if s.name == name]

    def section_names(self) -> List[str]:
        return [s.name for s in self.sections]

    def texts(self) -> List[str]:
        """Every piece of text in drawing order"""
        result = []
        for section in self.sections:
            result.extend(section.texts())
        return result
