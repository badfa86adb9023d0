"""Single-page invoice layout.

Turns an invoice snapshot into an ordered list of absolute-positioned draw
instructions. Coordinates are in points measured from the top-left corner
of the page; the renderer flips them for reportlab's bottom-left origin.
Nothing here touches the filesystem, so a layout can be checked by
inspecting the instruction list.
"""
import logging
from typing import Callable, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict
from reportlab.lib.pagesizes import A4
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfbase.ttfonts import TTFont, TTFError

from config import config
from models import InvoiceSnapshot, ItemKind, LineItem, Totals
from totals import compute_totals, format_currency, format_discount

logger = logging.getLogger(__name__)

PAGE_WIDTH, PAGE_HEIGHT = A4
MARGIN = 40
CONTENT_WIDTH = PAGE_WIDTH - 2 * MARGIN
RIGHT_EDGE = PAGE_WIDTH - MARGIN

def _register_font(name: str, path: str, fallback: str) -> str:
    """Register a TTF font (needed for glyphs like ₹), else keep the built-in one"""
    if not path:
        return fallback
    try:
        pdfmetrics.registerFont(TTFont(name, path))
        return name
    except (OSError, TTFError) as e:
        logger.warning(f"Could not load font {path}, using {fallback}: {str(e)}")
        return fallback

FONT_REGULAR = _register_font("InvoiceSans", config.PDF_FONT_PATH, "Helvetica")
FONT_BOLD = _register_font("InvoiceSans-Bold", config.PDF_BOLD_FONT_PATH, "Helvetica-Bold")

# Header band
HEADER_HEIGHT = 100
TITLE_SIZE = 26
TITLE_BASELINE = 58
INVOICE_ID_BASELINE = 44
ISSUE_DATE_BASELINE = 62

# FROM / BILL TO block
SECTION_GAP = 32
COLUMN_GAP = 30
COLUMN_WIDTH = (CONTENT_WIDTH - COLUMN_GAP) / 2
PARTY_LABEL_HEIGHT = 20
LABEL_SIZE = 9
BODY_SIZE = 10
NAME_SIZE = 12
LINE_HEIGHT = 15

# Item table
ROW_HEIGHT = 24
ROW_BASELINE = 16
CELL_PADDING = 8
TABLE_GAP = 16

# Totals block
TOTALS_WIDTH = 220
TOTALS_HEIGHT = 76
TOTAL_SIZE = 14

# Footer
FOOTER_RULE_Y = PAGE_HEIGHT - 60
FOOTER_BASELINE = PAGE_HEIGHT - 40

BRAND_COLOR = "#4F46E5"
HEADER_TEXT_COLOR = "#FFFFFF"
TEXT_COLOR = "#111827"
MUTED_COLOR = "#6B7280"
DISCOUNT_COLOR = "#DC2626"
RULE_COLOR = "#E5E7EB"
TABLE_HEADER_FILL = "#F3F4F6"

DEFAULT_TITLES = {
    ItemKind.CHARGE: "Item",
    ItemKind.DISCOUNT: "Discount",
}
EMPTY_TABLE_TEXT = "No items added"

class FillRect(BaseModel):
    model_config = ConfigDict(frozen=True)

    op: Literal["rect"] = "rect"
    x: float
    y: float
    width: float
    height: float
    color: str

class DrawText(BaseModel):
    model_config = ConfigDict(frozen=True)

    op: Literal["text"] = "text"
    x: float
    y: float
    content: str
    font_size: float
    bold: bool = False
    color: str = TEXT_COLOR
    align: Literal["left", "right", "center"] = "left"

    @property
    def font_name(self) -> str:
        return FONT_BOLD if self.bold else FONT_REGULAR

class RuleLine(BaseModel):
    model_config = ConfigDict(frozen=True)

    op: Literal["line"] = "line"
    x1: float
    y: float
    x2: float
    color: str = RULE_COLOR
    thickness: float = 0.75

DrawInstruction = Union[FillRect, DrawText, RuleLine]

class LayoutCursor:
    """Vertical position on the page; only ever moves down"""

    def __init__(self, y: float = 0):
        self.y = y

    def advance(self, dy: float) -> float:
        if dy < 0:
            raise ValueError(f"Layout cursor cannot move up (dy={dy})")
        self.y += dy
        return self.y

def text_width(text: str, font_size: float = BODY_SIZE, bold: bool = False) -> float:
    return stringWidth(text, FONT_BOLD if bold else FONT_REGULAR, font_size)

def wrap_text(
    content: str,
    max_width: float,
    font_size: float = BODY_SIZE,
    bold: bool = False,
    measure: Optional[Callable[[str], float]] = None,
) -> List[str]:
    """Greedy word wrap bounded by max_width.

    Words are never split; a single word wider than max_width gets a line
    of its own.
    """
    if measure is None:
        measure = lambda text: text_width(text, font_size, bold)

    lines = []
    current = ""
    for word in content.split():
        candidate = f"{current} {word}" if current else word
        if current and measure(candidate) > max_width:
            lines.append(current)
            current = word
        else:
            current = candidate
    if current:
        lines.append(current)
    return lines

def item_label(item: LineItem) -> str:
    return item.title.strip() or DEFAULT_TITLES[item.kind]

def item_amount_text(item: LineItem, symbol: str = None) -> str:
    if item.kind == ItemKind.DISCOUNT:
        return format_discount(item.amount, symbol)
    return format_currency(item.amount, symbol)

def _party_lines(snapshot: InvoiceSnapshot) -> Tuple[List[Tuple[str, bool]], List[Tuple[str, bool]]]:
    landlord, tenant = snapshot.landlord, snapshot.tenant

    left = [(line, True) for line in wrap_text(landlord.name, COLUMN_WIDTH, NAME_SIZE, bold=True)]
    if landlord.phone.strip():
        left.extend((line, False) for line in wrap_text(f"Phone: {landlord.phone.strip()}", COLUMN_WIDTH, BODY_SIZE))

    right = [(line, True) for line in wrap_text(tenant.name, COLUMN_WIDTH, NAME_SIZE, bold=True)]
    right.extend((line, False) for line in wrap_text(tenant.address, COLUMN_WIDTH, BODY_SIZE))
    if tenant.contact.strip():
        right.extend((line, False) for line in wrap_text(f"Contact: {tenant.contact.strip()}", COLUMN_WIDTH, BODY_SIZE))

    return left, right

def _header(snapshot: InvoiceSnapshot, title: str) -> List[DrawInstruction]:
    metadata = snapshot.metadata
    return [
        FillRect(x=0, y=0, width=PAGE_WIDTH, height=HEADER_HEIGHT, color=BRAND_COLOR),
        DrawText(x=MARGIN, y=TITLE_BASELINE, content=title, font_size=TITLE_SIZE,
                 bold=True, color=HEADER_TEXT_COLOR),
        DrawText(x=RIGHT_EDGE, y=INVOICE_ID_BASELINE, content=f"Invoice # {metadata.invoice_id}",
                 font_size=11, bold=True, color=HEADER_TEXT_COLOR, align="right"),
        DrawText(x=RIGHT_EDGE, y=ISSUE_DATE_BASELINE,
                 content=f"Date: {metadata.issue_date.strftime('%d %B %Y')}",
                 font_size=BODY_SIZE, color=HEADER_TEXT_COLOR, align="right"),
    ]

def _parties(snapshot: InvoiceSnapshot, cursor: LayoutCursor) -> List[DrawInstruction]:
    left, right = _party_lines(snapshot)
    top = cursor.y
    instructions: List[DrawInstruction] = []

    for x, label, lines in ((MARGIN, "FROM", left),
                            (MARGIN + COLUMN_WIDTH + COLUMN_GAP, "BILL TO", right)):
        instructions.append(DrawText(x=x, y=top + LABEL_SIZE, content=label,
                                     font_size=LABEL_SIZE, bold=True, color=MUTED_COLOR))
        for index, (line, bold) in enumerate(lines):
            instructions.append(DrawText(
                x=x,
                y=top + PARTY_LABEL_HEIGHT + (index + 1) * LINE_HEIGHT,
                content=line,
                font_size=NAME_SIZE if bold else BODY_SIZE,
                bold=bold,
            ))

    tallest = max(len(left), len(right), 1)
    cursor.advance(PARTY_LABEL_HEIGHT + tallest * LINE_HEIGHT + SECTION_GAP)
    return instructions

def _item_table(items: List[LineItem], cursor: LayoutCursor, symbol: str) -> List[DrawInstruction]:
    text_x = MARGIN + CELL_PADDING
    amount_x = RIGHT_EDGE - CELL_PADDING

    instructions: List[DrawInstruction] = [
        FillRect(x=MARGIN, y=cursor.y, width=CONTENT_WIDTH, height=ROW_HEIGHT, color=TABLE_HEADER_FILL),
        DrawText(x=text_x, y=cursor.y + ROW_BASELINE, content="DESCRIPTION",
                 font_size=LABEL_SIZE, bold=True, color=MUTED_COLOR),
        DrawText(x=amount_x, y=cursor.y + ROW_BASELINE, content="AMOUNT",
                 font_size=LABEL_SIZE, bold=True, color=MUTED_COLOR, align="right"),
    ]
    cursor.advance(ROW_HEIGHT)

    if not items:
        instructions.append(DrawText(x=PAGE_WIDTH / 2, y=cursor.y + ROW_BASELINE, content=EMPTY_TABLE_TEXT,
                                     font_size=BODY_SIZE, color=MUTED_COLOR, align="center"))
        instructions.append(RuleLine(x1=MARGIN, y=cursor.y + ROW_HEIGHT, x2=RIGHT_EDGE))
        cursor.advance(ROW_HEIGHT)

    for item in items:
        color = DISCOUNT_COLOR if item.kind == ItemKind.DISCOUNT else TEXT_COLOR
        instructions.append(DrawText(x=text_x, y=cursor.y + ROW_BASELINE, content=item_label(item),
                                     font_size=BODY_SIZE))
        instructions.append(DrawText(x=amount_x, y=cursor.y + ROW_BASELINE,
                                     content=item_amount_text(item, symbol),
                                     font_size=BODY_SIZE, color=color, align="right"))
        instructions.append(RuleLine(x1=MARGIN, y=cursor.y + ROW_HEIGHT, x2=RIGHT_EDGE))
        cursor.advance(ROW_HEIGHT)

    cursor.advance(TABLE_GAP)
    return instructions

def _totals_block(totals: Totals, cursor: LayoutCursor, symbol: str) -> List[DrawInstruction]:
    label_x = RIGHT_EDGE - TOTALS_WIDTH
    value_x = RIGHT_EDGE - CELL_PADDING
    top = cursor.y

    instructions: List[DrawInstruction] = [
        DrawText(x=label_x, y=top + 14, content="Subtotal", font_size=BODY_SIZE, color=MUTED_COLOR),
        DrawText(x=value_x, y=top + 14, content=format_currency(totals.subtotal, symbol),
                 font_size=BODY_SIZE, align="right"),
        DrawText(x=label_x, y=top + 34, content="Discount", font_size=BODY_SIZE, color=MUTED_COLOR),
        DrawText(x=value_x, y=top + 34, content=format_discount(totals.discount_total, symbol),
                 font_size=BODY_SIZE, color=DISCOUNT_COLOR, align="right"),
        RuleLine(x1=label_x, y=top + 44, x2=RIGHT_EDGE, color=TEXT_COLOR, thickness=1),
        DrawText(x=label_x, y=top + 64, content="Total", font_size=TOTAL_SIZE, bold=True),
        DrawText(x=value_x, y=top + 64, content=format_currency(totals.total, symbol),
                 font_size=TOTAL_SIZE, bold=True, color=BRAND_COLOR, align="right"),
    ]
    cursor.advance(TOTALS_HEIGHT)
    return instructions

def _footer(footer_text: str) -> List[DrawInstruction]:
    return [
        RuleLine(x1=MARGIN, y=FOOTER_RULE_Y, x2=RIGHT_EDGE),
        DrawText(x=PAGE_WIDTH / 2, y=FOOTER_BASELINE, content=footer_text,
                 font_size=LABEL_SIZE, color=MUTED_COLOR, align="center"),
    ]

def assemble_invoice(
    snapshot: InvoiceSnapshot,
    totals: Optional[Totals] = None,
    title: str = None,
    footer_text: str = None,
    currency_symbol: str = None,
) -> List[DrawInstruction]:
    """Lay out the whole invoice: header, parties, items, totals, footer.

    Content that runs past the bottom of the page is not moved to a second
    page; the renderer simply clips it.
    """
    if totals is None:
        totals = compute_totals(snapshot.items)
    title = config.INVOICE_TITLE if title is None else title
    footer_text = config.FOOTER_TEXT if footer_text is None else footer_text
    symbol = config.CURRENCY_SYMBOL if currency_symbol is None else currency_symbol

    cursor = LayoutCursor()
    instructions = _header(snapshot, title)
    cursor.advance(HEADER_HEIGHT + SECTION_GAP)

    instructions += _parties(snapshot, cursor)
    instructions += _item_table(snapshot.items, cursor, symbol)
    instructions += _totals_block(totals, cursor, symbol)
    instructions += _footer(footer_text)

    if cursor.y > FOOTER_RULE_Y:
        logger.warning(
            f"Invoice {snapshot.metadata.invoice_id} runs past the page body "
            f"({cursor.y:.0f}pt > {FOOTER_RULE_Y:.0f}pt); overflow will be clipped"
        )
    return instructions
