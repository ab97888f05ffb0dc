"""
Timetable spreadsheet import for academic administrators
"""

import io
import logging
import os
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import pandas as pd
from sqlalchemy import select
from sqlalchemy.orm import Session

from campus_events.core.db import atomic
from campus_events.core.deadline import Deadline
from campus_events.core.errors import ValidationFailed
from campus_events.models import Course, Employee, Subject, TimeTable, TimeTableEntry
from campus_events.services.attendance_service import WEEKDAYS, parse_time_slot

logger = logging.getLogger(__name__)


@dataclass
class ImportReport:
    created: int = 0
    duplicates: int = 0
    timetables_created: int = 0
    errors: List[Dict[str, object]] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "created": self.created,
            "duplicates": self.duplicates,
            "timetablesCreated": self.timetables_created,
            "errors": self.errors,
        }


class TimetableImporter:
    """Service for loading weekly class schedules from .xlsx or .csv files"""

    REQUIRED_COLUMNS = ["courseId", "year", "section", "subjectCode", "employeeId", "day", "timeSlot", "roomNo"]

    @staticmethod
    def create_template() -> bytes:
        """Create Excel template with required columns"""
        df = pd.DataFrame(columns=TimetableImporter.REQUIRED_COLUMNS)

        # Sample rows for guidance
        sample_data = [
            ["BTECH-CSE", 3, "A", "CS301", "EMP042", "Monday", "10:00-11:00", "LH-101"],
            ["BTECH-CSE", 3, "A", "CS305", "EMP017", "Monday", "11:00-12:00", "LH-101"],
        ]
        for row in sample_data:
            df.loc[len(df)] = row

        buffer = io.BytesIO()
        with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
            df.to_excel(writer, index=False, sheet_name="Timetable")
        return buffer.getvalue()

    @staticmethod
    def read_frame(content: bytes, filename: str) -> pd.DataFrame:
        ext = os.path.splitext(filename or "")[1].lower()
        if ext not in (".xlsx", ".csv"):
            raise ValidationFailed("Only .xlsx and .csv timetables are supported.")
        try:
            if ext == ".xlsx":
                return pd.read_excel(io.BytesIO(content), dtype=str)
            return pd.read_csv(io.BytesIO(content), dtype=str)
        except Exception as e:
            raise ValidationFailed(f"Could not read {filename!r}: {e}")

    @staticmethod
    def map_columns(df: pd.DataFrame) -> Dict[str, str]:
        """Match required columns case-insensitively; returns required -> actual name"""
        actual = {str(col).strip().lower(): col for col in df.columns}
        mapping = {}
        missing = []
        for col in TimetableImporter.REQUIRED_COLUMNS:
            if col.lower() in actual:
                mapping[col] = actual[col.lower()]
            else:
                missing.append(col)
        if missing:
            raise ValidationFailed(f"Missing required columns: {', '.join(missing)}")
        return mapping

    @staticmethod
    def _clean(value) -> str:
        if value is None or pd.isna(value):
            return ""
        return str(value).strip()

    @staticmethod
    def parse_row(row, mapping: Dict[str, str]) -> Tuple[dict, Optional[str]]:
        values = {col: TimetableImporter._clean(row[mapping[col]]) for col in TimetableImporter.REQUIRED_COLUMNS}
        for col in ("courseId", "year", "section", "subjectCode", "employeeId", "day", "timeSlot"):
            if not values[col]:
                return values, f"{col} is required"
        try:
            values["year"] = int(float(values["year"]))
        except ValueError:
            return values, f"year must be a number, got {values['year']!r}"

        day = values["day"].capitalize()
        if day not in WEEKDAYS:
            return values, f"unknown day {values['day']!r}"
        values["day"] = day

        try:
            start, end = parse_time_slot(values["timeSlot"])
        except ValueError as e:
            return values, str(e)
        values["timeSlot"] = f"{start:%H:%M}-{end:%H:%M}"
        return values, None

    @staticmethod
    def import_file(db: Session, content: bytes, filename: str, deadline: Optional[Deadline] = None) -> ImportReport:
        """Import timetable rows; invalid rows are reported and skipped.

        Timetables are found or created per (course, year, section). Entries
        already present for the same cohort, day, slot and subject are not
        duplicated. Everything is committed together.
        """
        df = TimetableImporter.read_frame(content, filename)
        mapping = TimetableImporter.map_columns(df)
        report = ImportReport()

        courses = {c.course_id for c in db.execute(select(Course)).scalars()}
        subjects = {s.subject_code.lower(): s for s in db.execute(select(Subject)).scalars()}
        employees = {e.employee_id for e in db.execute(select(Employee)).scalars()}
        timetables = {tt.cohort: tt for tt in db.execute(select(TimeTable)).scalars()}
        existing = {
            (e.time_table_id, e.day, e.time_slot, e.subject_id)
            for e in db.execute(select(TimeTableEntry)).scalars()
        }

        with atomic(db, deadline):
            for index, row in df.iterrows():
                row_no = int(index) + 2  # header is row 1
                # Skip empty rows
                if all(not TimetableImporter._clean(v) for v in row.values):
                    continue

                values, error = TimetableImporter.parse_row(row, mapping)
                if error is None and values["courseId"] not in courses:
                    error = f"unknown course {values['courseId']!r}"
                subject = subjects.get(values["subjectCode"].lower())
                if error is None and subject is None:
                    error = f"unknown subject code {values['subjectCode']!r}"
                if error is None and values["employeeId"] not in employees:
                    error = f"unknown employee {values['employeeId']!r}"
                if error is not None:
                    report.errors.append({"row": row_no, "error": error})
                    continue

                cohort = (values["courseId"], values["year"], values["section"])
                tt = timetables.get(cohort)
                if tt is None:
                    tt = timetables[cohort] = TimeTable(
                        time_table_id=f"TT-{uuid.uuid4().hex[:12]}",
                        course_id=values["courseId"],
                        year=values["year"],
                        section=values["section"],
                    )
                    db.add(tt)
                    report.timetables_created += 1

                key = (tt.time_table_id, values["day"], values["timeSlot"], subject.subject_id)
                if key in existing:
                    report.duplicates += 1
                    continue
                existing.add(key)
                db.add(TimeTableEntry(
                    entry_id=f"TTE-{uuid.uuid4().hex[:12]}",
                    time_table_id=tt.time_table_id,
                    subject_id=subject.subject_id,
                    employee_id=values["employeeId"],
                    day=values["day"],
                    time_slot=values["timeSlot"],
                    room_no=values["roomNo"] or None,
                ))
                report.created += 1

        logger.info(
            "Timetable import %s: %d entries created, %d duplicates, %d rows rejected",
            filename, report.created, report.duplicates, len(report.errors),
        )
        return report
