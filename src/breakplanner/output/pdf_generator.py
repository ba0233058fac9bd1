"""PDF generation for break sheets.

This module creates a printable break sheet for one scope showing:
- Every slot with its time range, fill level and assigned staff
- Break category sections in shift order
- A staff totals page
"""

from io import BytesIO
from pathlib import Path
from typing import Iterable, Optional, Union

from breakplanner.domain.models import Assignment, SchedulingScope, SlotDefinition, StaffMember
from breakplanner.domain.templates import SHIFT_WINDOWS
from breakplanner.output.text_generator import SheetRow, build_sheet, staff_totals

# Color definitions (RGB tuples, 0-1 scale)
COLORS = {
    "header": (0.25, 0.35, 0.55),
    "open": (0.85, 0.95, 0.85),  # Green: free places left
    "full": (0.95, 0.95, 0.80),  # Yellow: at capacity
    "over": (0.95, 0.75, 0.75),  # Red: over capacity
    "rule": (0.7, 0.7, 0.7),
}


class BreakSheetPDFGenerator:
    """Generates printable PDF break sheets.

    Example:
        >>> generator = BreakSheetPDFGenerator()
        >>> generator.generate(scope, ledger.catalog, ledger.assignments, "breaks.pdf")
    """

    def __init__(
        self,
        page_width: float = 595,  # A4 portrait width
        page_height: float = 842,  # A4 portrait height
        margin: float = 36,  # 0.5 inch margins
    ):
        self.page_width = page_width
        self.page_height = page_height
        self.margin = margin

    def generate(
        self,
        scope: SchedulingScope,
        catalog: Iterable[SlotDefinition],
        assignments: Iterable[Assignment],
        output_path: Union[str, Path],
        roster: Optional[Iterable[StaffMember]] = None,
    ) -> None:
        """Generate the PDF break sheet and save it to a file.

        Args:
            scope: Date, shift and location of the sheet.
            catalog: Slots of the scope.
            assignments: Assignments of the scope.
            output_path: Path to save the PDF.
            roster: Staff to list in the totals even without breaks.
        """
        try:
            from reportlab.lib.pagesizes import A4
            from reportlab.pdfgen import canvas
        except ImportError:
            raise ImportError(
                "reportlab is required for PDF generation. "
                "Install with: pip install reportlab"
            )

        c = canvas.Canvas(str(output_path), pagesize=A4)
        self._draw(c, scope, list(catalog), list(assignments), roster)
        c.save()

    def generate_to_buffer(
        self,
        scope: SchedulingScope,
        catalog: Iterable[SlotDefinition],
        assignments: Iterable[Assignment],
        roster: Optional[Iterable[StaffMember]] = None,
    ) -> BytesIO:
        """Generate the PDF break sheet and return it as a bytes buffer."""
        try:
            from reportlab.lib.pagesizes import A4
            from reportlab.pdfgen import canvas
        except ImportError:
            raise ImportError(
                "reportlab is required for PDF generation. "
                "Install with: pip install reportlab"
            )

        buffer = BytesIO()
        c = canvas.Canvas(buffer, pagesize=A4)
        self._draw(c, scope, list(catalog), list(assignments), roster)
        c.save()
        buffer.seek(0)
        return buffer

    def _draw(
        self,
        c,
        scope: SchedulingScope,
        catalog: list[SlotDefinition],
        assignments: list[Assignment],
        roster: Optional[Iterable[StaffMember]],
    ) -> None:
        self._draw_slot_pages(c, scope, build_sheet(catalog, assignments))

        totals = staff_totals(catalog, assignments)
        for staff in roster or []:
            totals.setdefault(staff.name, 0)
        self._draw_totals_page(c, scope, totals)

    def _draw_slot_pages(self, c, scope: SchedulingScope, sheet: dict[str, list[SheetRow]]) -> None:
        """Draw slot sections, starting a new page when one fills up."""
        row_height = 22
        section_gap = 28
        bottom = self.margin + 30
        page = 1

        self._draw_header(c, scope, page)
        y = self.page_height - self.margin - 70

        for group, rows in sheet.items():
            if y - section_gap - row_height < bottom:
                c.showPage()
                page += 1
                self._draw_header(c, scope, page)
                y = self.page_height - self.margin - 70

            c.setFont("Helvetica-Bold", 12)
            c.setFillColorRGB(*COLORS["header"])
            c.drawString(self.margin, y, group)
            c.setFillColorRGB(0, 0, 0)
            y -= 8

            for row in rows:
                if y - row_height < bottom:
                    c.showPage()
                    page += 1
                    self._draw_header(c, scope, page)
                    y = self.page_height - self.margin - 70
                y -= row_height
                self._draw_row(c, row, y, row_height - 4)
            y -= section_gap - row_height

        c.showPage()

    def _draw_header(self, c, scope: SchedulingScope, page: int) -> None:
        """Draw page header with date, shift and location."""
        c.setFont("Helvetica-Bold", 16)
        c.drawString(
            self.margin,
            self.page_height - self.margin - 20,
            f"Break Sheet - {scope.date.strftime('%A, %d %B %Y')}",
        )
        window_start, window_end = SHIFT_WINDOWS[scope.shift_type]
        c.setFont("Helvetica", 10)
        c.drawString(
            self.margin,
            self.page_height - self.margin - 36,
            f"Shift: {scope.shift_type.label} ({window_start}-{window_end})   "
            f"Location: {scope.location_label}",
        )
        c.setFont("Helvetica", 9)
        c.drawRightString(self.page_width - self.margin, self.margin - 10, f"Page {page}")

    def _draw_row(self, c, row: SheetRow, y: float, height: float) -> None:
        """Draw one slot row with a fill-level box."""
        if row.over_capacity:
            color = COLORS["over"]
        elif len(row.names) == row.slot.capacity:
            color = COLORS["full"]
        else:
            color = COLORS["open"]

        box_width = 40
        c.setFillColorRGB(*color)
        c.setStrokeColorRGB(*COLORS["rule"])
        c.rect(self.margin + 90, y, box_width, height, fill=1, stroke=1)

        c.setFillColorRGB(0, 0, 0)
        c.setFont("Helvetica", 10)
        c.drawString(self.margin, y + 5, row.time_range)
        c.drawCentredString(self.margin + 90 + box_width / 2, y + 5, row.usage)

        names = ", ".join(row.names) if row.names else "-"
        max_chars = int((self.page_width - 2 * self.margin - 150) / 5)
        if len(names) > max_chars:
            names = names[: max_chars - 3] + "..."
        c.drawString(self.margin + 145, y + 5, names)

        c.line(self.margin, y - 2, self.page_width - self.margin, y - 2)

    def _draw_totals_page(self, c, scope: SchedulingScope, totals: dict[str, int]) -> None:
        """Draw the per-person break minutes page."""
        c.setFont("Helvetica-Bold", 16)
        c.drawString(self.margin, self.page_height - self.margin - 20, "Staff Break Totals")
        c.setFont("Helvetica", 10)
        c.drawString(self.margin, self.page_height - self.margin - 36, str(scope))

        y = self.page_height - self.margin - 70
        if not totals:
            c.drawString(self.margin, y, "No staff")
        for name in sorted(totals, key=str.lower):
            if y < self.margin + 20:
                c.showPage()
                y = self.page_height - self.margin - 20
                c.setFont("Helvetica", 10)
            c.drawString(self.margin, y, name)
            c.drawRightString(self.margin + 300, y, f"{totals[name]} min")
            y -= 16
        c.showPage()
