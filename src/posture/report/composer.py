"""PDF report composer.

The document is drawn top to bottom with a single page cursor. Whenever the
next block would pass the safe content height a page break is emitted, and
every new page gets its black background before anything else is drawn.
Sections, in order:

  Title page            -- logo (best effort), title, subtitle
  Header                -- title, subtitle, organization box
  Executive Summary     -- summary, environment, strengths, gaps
  Compliance Alignment  -- narrative text + per-function maturity table
  Recommendations       -- strategic recommendations, gap risk matrix
  Dashboards            -- function averages, risk matrix overview,
                           inherent and residual risk tables
  Conclusion            -- next steps
  Function sections     -- one response table per NIST function
  Summary page          -- total points, average rating, percentage
"""

from __future__ import annotations

from dataclasses import dataclass, field
from io import BytesIO
from typing import Optional

from reportlab.lib.colors import Color
from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen.canvas import Canvas
from reportlab.platypus import Flowable, Paragraph

from .. import __version__
from ..core.catalog import iter_function_sections
from ..core.errors import ReportError
from ..core.scoring import (
    compliance_rows,
    risk_counts,
    risk_matrix_overview,
    risk_percentages,
    score_summary,
)
from ..models.narrative import Narrative, NarrativeResult
from ..models.submission import Submission
from .styles import (
    BACKGROUND,
    BAR_TRACK,
    FONT,
    FONT_BOLD,
    TEXT,
    brand_color,
    build_styles,
    esc,
    grid_table,
    tint,
)

PAGE_WIDTH, PAGE_HEIGHT = A4
LEFT = 40
CONTENT_WIDTH = 520
TOP_MARGIN = 60
BOTTOM_MARGIN = 50
MAX_GAPS_LISTED = 6
BAR_HEIGHT = 14
BAR_GAP = 10

RESPONSE_COL_WIDTHS = [70, 170, 220, 60]


@dataclass
class PageCursor:
    """Composition state handed from section to section.

    `y` is measured from the top of the page. `painted` holds the indices
    of pages whose background has been painted.
    """

    canvas: Canvas
    brand: Color
    styles: dict
    page: int = 1
    y: float = TOP_MARGIN
    painted: set[int] = field(default_factory=set)

    @property
    def limit(self) -> float:
        return PAGE_HEIGHT - BOTTOM_MARGIN

    @property
    def remaining(self) -> float:
        return self.limit - self.y

    @property
    def at_top(self) -> bool:
        return self.y <= TOP_MARGIN

    def baseline(self) -> float:
        """Current cursor position in reportlab's bottom-up coordinates."""
        return PAGE_HEIGHT - self.y


def paint_background(cursor: PageCursor) -> None:
    if cursor.page in cursor.painted:
        return
    c = cursor.canvas
    c.saveState()
    c.setFillColor(BACKGROUND)
    c.rect(0, 0, PAGE_WIDTH, PAGE_HEIGHT, stroke=0, fill=1)
    c.restoreState()
    cursor.painted.add(cursor.page)


def new_page(cursor: PageCursor) -> None:
    cursor.canvas.showPage()
    cursor.page += 1
    cursor.y = TOP_MARGIN
    paint_background(cursor)


def ensure_space(cursor: PageCursor, height: float) -> None:
    if height > cursor.remaining and not cursor.at_top:
        new_page(cursor)


def draw_flowable(
    cursor: PageCursor,
    flowable: Flowable,
    x: float = LEFT,
    width: float = CONTENT_WIDTH,
) -> None:
    """Draw a paragraph or table at the cursor, continuing across pages."""
    c = cursor.canvas
    pending: list[Flowable] = [flowable]
    while pending:
        item = pending.pop(0)
        _, height = item.wrapOn(c, width, cursor.remaining)
        if height <= cursor.remaining:
            item.drawOn(c, x, cursor.baseline() - height)
            cursor.y += height
            continue

        parts = item.splitOn(c, width, cursor.remaining) if cursor.remaining > 0 else []
        if len(parts) > 1:
            head, *rest = parts
            _, head_height = head.wrapOn(c, width, cursor.remaining)
            head.drawOn(c, x, cursor.baseline() - head_height)
            pending[:0] = rest
        elif cursor.at_top:
            raise ReportError(f"Content block of height {height:.0f}pt does not fit on a page")
        else:
            pending.insert(0, item)
        new_page(cursor)


def draw_heading(cursor: PageCursor, text: str, size: int = 12, space_before: float = 18) -> None:
    # Keep the heading with at least a couple of lines of what follows.
    ensure_space(cursor, space_before + size + 40)
    if not cursor.at_top:
        cursor.y += space_before
    cursor.y += size
    c = cursor.canvas
    c.setFont(FONT_BOLD, size)
    c.setFillColor(cursor.brand)
    c.drawString(LEFT, cursor.baseline(), text)
    cursor.y += 8


def write_paragraph(cursor: PageCursor, text: str, style: str = "Body") -> None:
    if not text:
        return
    draw_flowable(cursor, Paragraph(esc(text), cursor.styles[style]))


def write_bullets(cursor: PageCursor, items: list[str]) -> None:
    for item in items:
        draw_flowable(
            cursor,
            Paragraph(esc(item), cursor.styles["Bullet"], bulletText="•"),
            x=LEFT,
        )


def draw_table(cursor: PageCursor, head: list[str], rows: list[list[str]], **kwargs) -> None:
    cursor.y += 6
    table = grid_table(head, rows, cursor.styles, cursor.brand, **kwargs)
    draw_flowable(cursor, table)
    cursor.y += 10


# Sections


def draw_title_page(cursor: PageCursor, report_config: dict, logo: Optional[ImageReader]) -> None:
    c = cursor.canvas
    image_top = PAGE_HEIGHT * 0.25
    image_height = 0.0

    if logo is not None:
        try:
            iw, ih = logo.getSize()
            image_width = min(300, PAGE_WIDTH - 120)
            image_height = image_width * ih / iw
            c.drawImage(
                logo,
                (PAGE_WIDTH - image_width) / 2,
                PAGE_HEIGHT - image_top - image_height,
                width=image_width,
                height=image_height,
                mask="auto",
            )
        except Exception:
            # Cosmetic only; the title page proceeds without the logo.
            image_height = 0.0

    c.setFillColor(cursor.brand)
    c.setFont(FONT, 22)
    c.drawCentredString(PAGE_WIDTH / 2, PAGE_HEIGHT - (image_top + image_height + 48), report_config["title"])
    c.setFont(FONT, 14)
    c.drawCentredString(PAGE_WIDTH / 2, PAGE_HEIGHT - (image_top + image_height + 72), report_config["subtitle"])


def draw_header(cursor: PageCursor, report_config: dict, submission: Submission) -> None:
    c = cursor.canvas
    c.setFillColor(cursor.brand)
    c.setFont(FONT, 20)
    c.drawString(LEFT, PAGE_HEIGHT - 50, report_config["title"])
    c.setFont(FONT, 12)
    c.drawString(LEFT, PAGE_HEIGHT - 70, report_config["subtitle"])

    c.setFillColor(tint(cursor.brand, 0.12))
    c.roundRect(32, PAGE_HEIGHT - 85 - 48, 530, 48, 6, stroke=0, fill=1)
    c.setFillColor(TEXT)
    c.setFont(FONT, 12)
    c.drawString(44, PAGE_HEIGHT - 110, f"Organization: {submission.organization or '-'}")
    c.drawString(300, PAGE_HEIGHT - 110, f"Contact Email: {submission.contact_email or '-'}")
    cursor.y = 150


def draw_executive_summary(cursor: PageCursor, narrative: Narrative) -> None:
    draw_heading(cursor, "Executive Summary", size=16, space_before=0)
    write_paragraph(cursor, narrative.summary)

    if narrative.environment:
        draw_heading(cursor, "Environment")
        write_paragraph(cursor, narrative.environment)

    if narrative.strengths:
        draw_heading(cursor, "Key Strengths")
        write_bullets(cursor, narrative.strengths)

    if narrative.gaps:
        draw_heading(cursor, "Identified Gaps & Risks")
        write_bullets(
            cursor,
            [
                f"{gap.name} - {gap.description}" if gap.description else gap.name
                for gap in narrative.gaps[:MAX_GAPS_LISTED]
            ],
        )


def draw_compliance(cursor: PageCursor, narrative: Narrative, averages: dict[str, float]) -> None:
    draw_heading(cursor, "Compliance Alignment (NIST CSF)", space_before=0)
    write_paragraph(cursor, narrative.compliance)
    draw_table(
        cursor,
        ["Function", "Maturity Score", "Observations"],
        compliance_rows(averages),
        col_widths=[110, 100, 310],
    )


def draw_recommendations(cursor: PageCursor, narrative: Narrative) -> None:
    if narrative.recommendations:
        draw_heading(cursor, "Strategic Recommendations")
        write_bullets(cursor, [rec.action for rec in narrative.recommendations])

    if narrative.gaps:
        draw_heading(cursor, "Risk Matrix", space_before=24)
        draw_table(
            cursor,
            ["Risk", "Likelihood", "Impact", "Rating"],
            [[gap.name, gap.likelihood, gap.impact, gap.rating] for gap in narrative.gaps],
            col_widths=[250, 90, 90, 90],
        )


def draw_function_dashboard(cursor: PageCursor, averages: dict[str, float]) -> None:
    if not averages:
        return
    draw_heading(cursor, "Dashboard (NIST Function Averages)", space_before=24)
    ensure_space(cursor, len(averages) * (BAR_HEIGHT + BAR_GAP))
    c = cursor.canvas
    c.setFont(FONT, 10)
    for label, score in averages.items():
        ensure_space(cursor, BAR_HEIGHT + BAR_GAP)
        pct = max(0.0, min(1.0, score / 4))
        bottom = cursor.baseline() - BAR_HEIGHT
        c.setFillColor(BAR_TRACK)
        c.roundRect(LEFT, bottom, CONTENT_WIDTH, BAR_HEIGHT, 3, stroke=0, fill=1)
        if pct > 0:
            c.setFillColor(tint(cursor.brand, 0.35))
            c.roundRect(LEFT, bottom, CONTENT_WIDTH * pct, BAR_HEIGHT, 3, stroke=0, fill=1)
        c.setFillColor(cursor.brand)
        c.drawString(LEFT + 6, bottom + 4, f"{label} ({score:.2f}/4)")
        cursor.y += BAR_HEIGHT + BAR_GAP


def draw_risk_matrix_overview(cursor: PageCursor) -> None:
    header, rows = risk_matrix_overview()
    draw_heading(cursor, "Risk Matrix Overview", space_before=24)
    draw_table(cursor, header, rows, col_widths=[136, 96, 96, 96, 96])


def draw_risk_dashboards(cursor: PageCursor, submission: Submission) -> None:
    counts = risk_counts(submission.responses)
    total = len(submission.responses)
    draw_heading(cursor, "Risk Dashboards", space_before=24)
    for label, bucket in (("Inherent Risk", counts.inherent), ("Residual Risk", counts.residual)):
        draw_heading(cursor, label, size=10, space_before=4)
        draw_table(
            cursor,
            ["Risk Level", "Count", "Percentage"],
            risk_percentages(bucket, total),
            col_widths=[220, 150, 150],
        )


def draw_conclusion(cursor: PageCursor, narrative: Narrative) -> None:
    draw_heading(cursor, "Conclusion & Next Steps", space_before=0)
    write_paragraph(cursor, narrative.conclusion)


def draw_function_sections(cursor: PageCursor, submission: Submission) -> None:
    c = cursor.canvas
    for fn, items in iter_function_sections(submission.responses):
        # Section band plus table header and a first row.
        ensure_space(cursor, 28 + 28 + 60)
        cursor.y += 28
        c.setFillColor(tint(cursor.brand, 0.15))
        c.rect(32, cursor.baseline() - 10, 530, 28, stroke=0, fill=1)
        c.setFillColor(cursor.brand)
        c.setFont(FONT_BOLD, 13)
        c.drawString(44, cursor.baseline(), fn.value)
        cursor.y += 14

        draw_table(
            cursor,
            ["Control", "Prompt", "Response", "Maturity"],
            [[item.meta.id, item.meta.prompt, item.response, str(item.maturity)] for item in items],
            col_widths=RESPONSE_COL_WIDTHS,
            head_fill=tint(cursor.brand, 0.15),
            center_cols=(3,),
        )


def draw_summary_page(cursor: PageCursor, submission: Submission) -> None:
    summary = score_summary(submission.responses)
    c = cursor.canvas
    c.setFillColor(cursor.brand)
    c.setFont(FONT, 18)
    c.drawString(LEFT, PAGE_HEIGHT - 60, "Overall Maturity Score")

    c.setFillColor(tint(cursor.brand, 0.12))
    c.roundRect(32, PAGE_HEIGHT - 80 - 120, 530, 120, 6, stroke=0, fill=1)
    c.setFillColor(TEXT)
    c.setFont(FONT, 12)
    c.drawString(44, PAGE_HEIGHT - 110, f"Total Points: {summary.total_score} / {summary.max_score}")
    c.drawString(44, PAGE_HEIGHT - 136, f"Average Rating (0-4): {summary.average:.2f}")
    c.drawString(44, PAGE_HEIGHT - 162, f"Overall Percentage: {summary.percentage}%")
    cursor.y = 200


def compose_report(
    submission: Submission,
    narrative_result: NarrativeResult,
    report_config: dict,
    logo: Optional[ImageReader] = None,
) -> bytes:
    """Render the complete report and return the PDF bytes.

    Nothing is returned until every page is composed; a failure anywhere
    raises ReportError.
    """
    buffer = BytesIO()
    try:
        canvas = Canvas(buffer, pagesize=A4)
        canvas.setTitle(f"{report_config['subtitle']} - {submission.organization}")
        canvas.setAuthor(report_config["title"])
        canvas.setSubject(report_config["subtitle"])
        canvas.setCreator(f"posture {__version__}")

        brand = brand_color(report_config["brand_color"])
        cursor = PageCursor(canvas=canvas, brand=brand, styles=build_styles(brand))
        narrative = narrative_result.narrative

        paint_background(cursor)
        draw_title_page(cursor, report_config, logo)

        new_page(cursor)
        draw_header(cursor, report_config, submission)
        draw_executive_summary(cursor, narrative)

        new_page(cursor)
        draw_compliance(cursor, narrative, narrative_result.function_averages)
        draw_recommendations(cursor, narrative)
        draw_function_dashboard(cursor, narrative_result.function_averages)
        draw_risk_matrix_overview(cursor)
        draw_risk_dashboards(cursor, submission)

        new_page(cursor)
        draw_conclusion(cursor, narrative)
        draw_function_sections(cursor, submission)

        new_page(cursor)
        draw_summary_page(cursor, submission)

        canvas.showPage()
        canvas.save()
    except ReportError:
        raise
    except Exception as e:
        raise ReportError(f"Report composition failed: {e}") from e
    return buffer.getvalue()
