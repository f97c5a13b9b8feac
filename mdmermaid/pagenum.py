"""Footer page numbering for printed PDFs."""

from __future__ import annotations

from io import BytesIO

from pypdf import PdfReader, PdfWriter
from reportlab.pdfgen import canvas

MM_TO_PT = 72.0 / 25.4
FOOTER_FONT = "Helvetica"


def footer_font_size(margin_pt: float) -> float:
    """Fit the footer inside the bottom margin, within a readable range."""
    return max(7.0, min(10.0, margin_pt * 0.45))


def stamp_page_numbers(pdf_bytes: bytes, margin_mm: float = 15.0) -> bytes:
    """Overlay centered `N of M` footers in the bottom margin of every page."""
    if not pdf_bytes:
        raise ValueError("Empty PDF payload")

    reader = PdfReader(BytesIO(pdf_bytes))
    page_total = len(reader.pages)
    if page_total <= 0:
        raise RuntimeError("Generated PDF has no pages")

    margin_pt = max(0.0, float(margin_mm)) * MM_TO_PT
    font_size = footer_font_size(margin_pt)

    writer = PdfWriter()
    for page_number, page in enumerate(reader.pages, start=1):
        width = float(page.mediabox.width)
        height = float(page.mediabox.height)
        stamped = writer.add_page(page)
        if width <= 0 or height <= 0:
            continue

        # Center the baseline in the bottom margin band; zero margins still
        # keep the text on the page.
        baseline_y = max(font_size * 0.5, (margin_pt - font_size) / 2.0)

        overlay_buffer = BytesIO()
        footer_canvas = canvas.Canvas(overlay_buffer, pagesize=(width, height))
        footer_canvas.setFont(FOOTER_FONT, font_size)
        footer_text = f"{page_number} of {page_total}"
        footer_width = footer_canvas.stringWidth(footer_text, FOOTER_FONT, font_size)
        footer_canvas.drawString(max(0.0, (width - footer_width) / 2.0), baseline_y, footer_text)
        footer_canvas.save()

        overlay_buffer.seek(0)
        overlay_pdf = PdfReader(overlay_buffer)
        if overlay_pdf.pages:
            # Only writer-owned pages may be modified.
            stamped.merge_page(overlay_pdf.pages[0])

    output = BytesIO()
    writer.write(output)
    return output.getvalue()
