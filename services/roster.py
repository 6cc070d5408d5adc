"""
CBCS allocation roster workbook.

One sheet per course (named by course id). Row 1 carries the subject title,
row 2 a two-column block per staff labelled ``staffId:<id> | <name>``, row 3
the ``Regno`` / ``Student's Name`` headers, and students are appended from
row 4 down in arrival order. Rows are never reordered or overwritten.
"""
import logging
import os
import threading

from openpyxl import Workbook, load_workbook
from openpyxl.styles import Alignment, Font, PatternFill

logger = logging.getLogger(__name__)

STAFF_HEADER_ROW = 2
FIRST_STUDENT_ROW = 4

SUBJECT_FILL = PatternFill("solid", fgColor="FFFFFF00")
STAFF_FILL = PatternFill("solid", fgColor="FFDDEBF7")
COLUMN_FILL = PatternFill("solid", fgColor="FFFF7F66")

_locks = {}
_locks_guard = threading.Lock()


def roster_lock(path):
    """
    One lock per workbook file; writers to the same roster queue up.

    Threads of one process only. Run several worker processes and roster
    appends must go through a single writer or an OS file lock.
    """
    key = os.path.abspath(path)
    with _locks_guard:
        lock = _locks.get(key)
        if lock is None:
            lock = threading.Lock()
            _locks[key] = lock
        return lock


def staff_label(staff_id):
    return f"staffId:{staff_id}"


def build_workbook(path, subjects):
    """
    Write a fresh roster workbook.

    ``subjects`` is a list of dicts: ``course_id``, ``title`` and ``staffs``
    (each ``{"staff_id", "staff_name"}``).
    """
    wb = Workbook()
    wb.remove(wb.active)

    for subject in subjects:
        sheet = wb.create_sheet(str(subject["course_id"]))
        staffs = subject["staffs"] or []
        total_columns = max(len(staffs) * 2, 1)

        sheet.cell(row=1, column=1, value=f"Subject: {subject['course_id']} - {subject['title']}")
        if total_columns > 1:
            sheet.merge_cells(start_row=1, start_column=1, end_row=1, end_column=total_columns)
        title_cell = sheet.cell(row=1, column=1)
        title_cell.font = Font(bold=True, size=14)
        title_cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)
        title_cell.fill = SUBJECT_FILL

        for index, staff in enumerate(staffs):
            col = index * 2 + 1
            cell = sheet.cell(
                row=STAFF_HEADER_ROW,
                column=col,
                value=f"{staff_label(staff['staff_id'])} | {staff['staff_name']}"
            )
            sheet.merge_cells(
                start_row=STAFF_HEADER_ROW, start_column=col,
                end_row=STAFF_HEADER_ROW, end_column=col + 1
            )
            cell.font = Font(bold=True, size=12)
            cell.alignment = Alignment(horizontal="center", vertical="center")
            cell.fill = STAFF_FILL

            for offset, header in enumerate(("Regno", "Student's Name")):
                head = sheet.cell(row=3, column=col + offset, value=header)
                head.font = Font(bold=True, size=11)
                head.alignment = Alignment(horizontal="center", vertical="center")
                head.fill = COLUMN_FILL

            sheet.column_dimensions[head.column_letter].width = 30
            sheet.column_dimensions[sheet.cell(row=3, column=col).column_letter].width = 15

        sheet.freeze_panes = sheet.cell(row=FIRST_STUDENT_ROW, column=1)

    folder = os.path.dirname(path)
    if folder:
        os.makedirs(folder, exist_ok=True)
    wb.save(path)
    logger.info("Roster workbook written to %s (%d sheets)", path, len(subjects))
    return path


def find_staff_column(sheet, staff_id):
    label = staff_label(staff_id)
    for cell in sheet[STAFF_HEADER_ROW]:
        if cell.value is None:
            continue
        value = str(cell.value)
        # "staffId:1" must not match "staffId:12 | ..."
        if value == label or value.startswith(label + " "):
            return cell.column
    return None


def append_student(path, course_id, staff_id, regno, student_name):
    """
    Append a student under the staff's block of a course sheet.

    Returns the row written, or None when the sheet or staff block is not
    in the workbook.
    """
    with roster_lock(path):
        wb = load_workbook(path)
        sheet_name = str(course_id)
        if sheet_name not in wb.sheetnames:
            logger.warning("Roster %s has no sheet for course %s", path, course_id)
            return None
        sheet = wb[sheet_name]

        col = find_staff_column(sheet, staff_id)
        if col is None:
            logger.warning("Roster %s has no block for staff %s on course %s", path, staff_id, course_id)
            return None

        row = FIRST_STUDENT_ROW
        while sheet.cell(row=row, column=col).value not in (None, ""):
            row += 1

        sheet.cell(row=row, column=col, value=regno)
        sheet.cell(row=row, column=col + 1, value=student_name)
        wb.save(path)

    logger.info("Roster %s: %s added under staff %s, course %s (row %d)",
                path, regno, staff_id, course_id, row)
    return row


def read_block(path, course_id, staff_id):
    """(regno, name) pairs listed under a staff block, in arrival order."""
    wb = load_workbook(path, read_only=False)
    sheet = wb[str(course_id)]
    col = find_staff_column(sheet, staff_id)
    if col is None:
        return []
    entries = []
    row = FIRST_STUDENT_ROW
    while sheet.cell(row=row, column=col).value not in (None, ""):
        entries.append((
            sheet.cell(row=row, column=col).value,
            sheet.cell(row=row, column=col + 1).value,
        ))
        row += 1
    return entries
