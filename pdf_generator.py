import os
import logging
from pathlib import Path
from typing import Iterable, Optional
from reportlab.pdfgen import canvas
from reportlab.lib.colors import HexColor

from config import config
from models import InvoiceSnapshot
from invoice_layout import (
    DrawInstruction, DrawText, FillRect, RuleLine,
    PAGE_WIDTH, PAGE_HEIGHT, assemble_invoice,
)
from totals import compute_totals

logger = logging.getLogger(__name__)

class InvoiceExportError(Exception):
    """Raised when an invoice could not be turned into a PDF"""
    pass

def export_filename(invoice_id: str) -> str:
    return f"invoice-{invoice_id}.pdf"

def _draw(pdf: canvas.Canvas, instruction: DrawInstruction) -> None:
    """Execute one draw instruction, flipping y to reportlab's bottom-up origin"""
    if isinstance(instruction, FillRect):
        pdf.setFillColor(HexColor(instruction.color))
        pdf.rect(
            instruction.x,
            PAGE_HEIGHT - instruction.y - instruction.height,
            instruction.width,
            instruction.height,
            stroke=0,
            fill=1,
        )
    elif isinstance(instruction, DrawText):
        pdf.setFillColor(HexColor(instruction.color))
        pdf.setFont(instruction.font_name, instruction.font_size)
        y = PAGE_HEIGHT - instruction.y
        if instruction.align == "right":
            pdf.drawRightString(instruction.x, y, instruction.content)
        elif instruction.align == "center":
            pdf.drawCentredString(instruction.x, y, instruction.content)
        else:
            pdf.drawString(instruction.x, y, instruction.content)
    elif isinstance(instruction, RuleLine):
        pdf.setStrokeColor(HexColor(instruction.color))
        pdf.setLineWidth(instruction.thickness)
        y = PAGE_HEIGHT - instruction.y
        pdf.line(instruction.x1, y, instruction.x2, y)
    else:
        raise InvoiceExportError(f"Unsupported draw instruction: {instruction!r}")

def render_pdf(instructions: Iterable[DrawInstruction], output_path: Path, title: str = None) -> Path:
    """Render draw instructions onto a single PDF page"""
    pdf = canvas.Canvas(str(output_path), pagesize=(PAGE_WIDTH, PAGE_HEIGHT))
    if title:
        pdf.setTitle(title)
    for instruction in instructions:
        _draw(pdf, instruction)
    pdf.showPage()
    pdf.save()
    return output_path

async def export_invoice_pdf(snapshot: InvoiceSnapshot, output_dir: Optional[Path] = None) -> Path:
    """Generate the PDF invoice for a snapshot.

    The document is written to a temporary file and only renamed to
    invoice-<id>.pdf once complete, so a failed export leaves nothing behind.
    """
    output_dir = Path(output_dir or config.EXPORT_DIR)
    output_dir.mkdir(parents=True, exist_ok=True)

    invoice_id = snapshot.metadata.invoice_id
    pdf_path = output_dir / export_filename(invoice_id)
    temp_path = output_dir / f".{pdf_path.name}.partial"

    try:
        totals = compute_totals(snapshot.items)
        instructions = assemble_invoice(snapshot, totals)
        render_pdf(instructions, temp_path, title=f"Invoice {invoice_id}")
        os.replace(temp_path, pdf_path)
    except Exception as e:
        logger.error(f"Error generating PDF for invoice {invoice_id}: {str(e)}")
        if temp_path.exists():
            temp_path.unlink()
        if isinstance(e, InvoiceExportError):
            raise
        raise InvoiceExportError(f"Failed to export invoice {invoice_id}") from e

    logger.info(f"Generated PDF invoice: {pdf_path}")
    return pdf_path
