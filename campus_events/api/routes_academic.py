"""
Academic administration routes - requires an AcademicAdmin token
"""

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import Response
from sqlalchemy.orm import Session

from campus_events.core.db import get_db
from campus_events.core.deadline import Deadline
from campus_events.models import User
from campus_events.models.enums import UserRole
from campus_events.services.timetable_import import TimetableImporter
from campus_events.utils.responses import success_response
from campus_events.utils.security import get_deadline, require_roles

router = APIRouter()

require_academic_admin = require_roles(UserRole.ACADEMIC_ADMIN)


@router.post("/timetable/import")
async def import_timetable(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    admin: User = Depends(require_academic_admin),
    deadline: Deadline = Depends(get_deadline),
):
    """Upload and process a timetable spreadsheet"""
    content = await file.read()
    report = TimetableImporter.import_file(db, content, file.filename, deadline)
    return success_response(
        message=f"Imported {report.created} timetable entries",
        data=report.to_dict(),
    )


@router.get("/timetable/template.xlsx")
async def download_template(admin: User = Depends(require_academic_admin)):
    """Download Excel template for timetable imports"""
    template_bytes = TimetableImporter.create_template()
    return Response(
        content=template_bytes,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": "attachment; filename=timetable_template.xlsx"}
    )
