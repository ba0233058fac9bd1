"""Tests for break sheet generation."""

from datetime import date

import pytest

from breakplanner.domain.models import Assignment, SchedulingScope, ShiftType, StaffMember
from breakplanner.domain.templates import template_slots
from breakplanner.output.pdf_generator import BreakSheetPDFGenerator
from breakplanner.output.text_generator import BreakSheetTextGenerator, build_sheet, staff_totals

SATURDAY = date(2024, 6, 1)


def on_slot(assignment_id, user_id, name, slot):
    return Assignment(
        id=assignment_id,
        slot_id=slot.id,
        user_id=user_id,
        user_name=name,
        shift_type=ShiftType.NIGHT,
        date=SATURDAY,
        location="Rugby",
        start_time=slot.start_time,
        duration_minutes=slot.duration_minutes,
    )


@pytest.fixture
def scope():
    return SchedulingScope(SATURDAY, ShiftType.NIGHT, "Rugby")


@pytest.fixture
def catalog():
    return template_slots(SATURDAY, ShiftType.NIGHT)


@pytest.fixture
def assignments(catalog):
    return [
        on_slot("1", "u1", "Alice Brown", catalog[0]),
        on_slot("2", "u2", "Bob Clark", catalog[0]),
        on_slot("3", "u3", "Carol Davies", catalog[0]),
        on_slot("4", "u4", "Dan Evans", catalog[4]),
    ]


class TestSheetRows:
    """Tests for build_sheet and staff_totals."""

    def test_rows_grouped_by_label(self, catalog, assignments):
        """Saturday and regular night slots are separate groups."""
        sheet = build_sheet(catalog, assignments)
        assert list(sheet) == ["Saturday Night Break (60 min)", "Night Break (60 min)"]
        first = sheet["Saturday Night Break (60 min)"][0]
        assert first.time_range == "20:00-21:00"
        assert first.usage == "3/2"
        assert first.over_capacity

    def test_midnight_row(self, catalog, assignments):
        """The 00:00 slot ends at 01:00."""
        rows = build_sheet(catalog, assignments)["Night Break (60 min)"]
        midnight = [r for r in rows if r.slot.start_time == "00:00"][0]
        assert midnight.names == ["Dan Evans"]
        assert not midnight.over_capacity

    def test_staff_totals(self, catalog, assignments):
        """Totals are minutes per person."""
        totals = staff_totals(catalog, assignments)
        assert totals == {"Alice Brown": 60, "Bob Clark": 60, "Carol Davies": 60, "Dan Evans": 60}


class TestBreakSheetTextGenerator:
    """Tests for the text sheet."""

    def test_content(self, scope, catalog, assignments):
        """The sheet has a header, slot rows and totals."""
        text = BreakSheetTextGenerator().generate_to_string(
            scope, catalog, assignments, [StaffMember("u5", "Eve Foster")]
        )
        assert "BREAK SHEET - Saturday 01 June 2024" in text
        assert "Shift: Night (17:45-06:15)    Location: Rugby" in text
        assert "Alice Brown, Bob Clark, Carol Davies" in text
        assert "STAFF TOTALS" in text
        assert "Eve Foster" in text
        over_line = [line for line in text.splitlines() if "20:00-21:00" in line][0]
        assert "!" in over_line

    def test_empty_plan(self, scope, catalog):
        """A plan with no staff says so."""
        text = BreakSheetTextGenerator().generate_to_string(scope, catalog, [])
        assert "No staff" in text

    def test_generate_writes_file(self, scope, catalog, assignments, tmp_path):
        """generate writes the text it returns."""
        path = tmp_path / "sheet.txt"
        content = BreakSheetTextGenerator().generate(scope, catalog, assignments, path)
        assert path.read_text() == content


class TestBreakSheetPDFGenerator:
    """Tests for the PDF sheet."""

    def test_buffer_is_pdf(self, scope, catalog, assignments):
        """The buffer holds a PDF document."""
        buffer = BreakSheetPDFGenerator().generate_to_buffer(scope, catalog, assignments)
        assert buffer.read(4) == b"%PDF"

    def test_generate_writes_file(self, scope, catalog, assignments, tmp_path):
        """generate saves a PDF file."""
        path = tmp_path / "breaks.pdf"
        BreakSheetPDFGenerator().generate(scope, catalog, assignments, path)
        assert path.read_bytes().startswith(b"%PDF")
