"""Palette, paragraph styles and table styling for the PDF report."""

from __future__ import annotations

from reportlab.lib.colors import Color, HexColor, black, white
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.styles import ParagraphStyle
from reportlab.platypus import Paragraph, Table, TableStyle

BACKGROUND = black
TEXT = white
BAR_TRACK = Color(30 / 255, 30 / 255, 30 / 255)

FONT = "Helvetica"
FONT_BOLD = "Helvetica-Bold"


def brand_color(value: str) -> Color:
    """Parse the configured brand colour ("#rrggbb")."""
    return HexColor(value)


def tint(color: Color, opacity: float) -> Color:
    """Colour as it appears at `opacity` over the black page background."""
    return Color(color.red * opacity, color.green * opacity, color.blue * opacity)


def build_styles(brand: Color) -> dict[str, ParagraphStyle]:
    s: dict[str, ParagraphStyle] = {}

    s["Body"] = ParagraphStyle(
        "Body", fontName=FONT, fontSize=11, leading=14, textColor=TEXT,
    )
    s["Bullet"] = ParagraphStyle(
        "Bullet", parent=s["Body"], leftIndent=12, bulletIndent=4,
    )
    s["Cell"] = ParagraphStyle(
        "Cell", fontName=FONT, fontSize=10, leading=12, textColor=TEXT,
    )
    s["HeadCell"] = ParagraphStyle(
        "HeadCell", parent=s["Cell"], fontName=FONT_BOLD,
    )
    s["CenterCell"] = ParagraphStyle(
        "CenterCell", parent=s["Cell"], alignment=TA_CENTER,
    )
    s["Metric"] = ParagraphStyle(
        "Metric", fontName=FONT, fontSize=12, leading=26, textColor=TEXT,
    )
    return s


def esc(text: str) -> str:
    """Escape XML entities for reportlab Paragraph markup."""
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace("\n", "<br/>")
    )


def grid_table(
    head: list[str],
    rows: list[list[str]],
    styles: dict[str, ParagraphStyle],
    brand: Color,
    col_widths: list[float] | None = None,
    head_fill: Color | None = None,
    center_cols: tuple[int, ...] = (),
) -> Table:
    """Black grid table with brand-coloured rules.

    The header repeats on each page and a row taller than the page continues
    onto the next one.
    """
    def cell(text: str, col: int, header: bool = False) -> Paragraph:
        if header:
            style = styles["HeadCell"]
        elif col in center_cols:
            style = styles["CenterCell"]
        else:
            style = styles["Cell"]
        return Paragraph(esc(str(text)), style)

    data = [[cell(h, i, header=True) for i, h in enumerate(head)]]
    data.extend([cell(value, i) for i, value in enumerate(row)] for row in rows)

    table = Table(data, colWidths=col_widths, repeatRows=1, splitInRow=1)
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, -1), BACKGROUND),
        ("BACKGROUND", (0, 0), (-1, 0), head_fill or BACKGROUND),
        ("GRID", (0, 0), (-1, -1), 0.5, brand),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("TOPPADDING", (0, 0), (-1, -1), 6),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
        ("LEFTPADDING", (0, 0), (-1, -1), 6),
        ("RIGHTPADDING", (0, 0), (-1, -1), 6),
    ]))
    return table
