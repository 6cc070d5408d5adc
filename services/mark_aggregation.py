"""
Course-outcome mark aggregation.

Raw per-tool marks become a CO mark (0-100 when the CO's tool weightages sum
to 100), CO marks roll up into per-type averages, and the final course
average is a weighted mean over the COs of the types that actually exist on
the course. A course without practical COs is never diluted by an implicit
zero practical score.
"""
import logging
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from extensions import db
from models import AssessmentTool, CourseOutcome, StudentToolMark, CO_TYPES

logger = logging.getLogger(__name__)


def round_half_up(value, places=2):
    """Round like a mark sheet does: 56.665 -> 56.67, never banker's rounding."""
    quantum = Decimal(1).scaleb(-places)
    try:
        return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))
    except (InvalidOperation, TypeError, ValueError):
        return 0.0


def compute_co_mark(tools, marks):
    """
    Weighted CO mark for one student.

    ``tools`` is any iterable of objects with ``tool_id``, ``weightage`` and
    ``max_marks``; ``marks`` maps tool_id -> raw mark. A tool without a
    recorded mark counts as 0. A tool whose max marks is zero or missing
    contributes nothing and is logged, so one broken tool degrades the mark
    instead of blocking the report.
    """
    total = 0.0
    for tool in tools:
        raw = marks.get(tool.tool_id) or 0
        if not tool.max_marks:
            logger.warning(
                "Tool %s (%s) has no max marks; contribution treated as 0",
                tool.tool_id, tool.tool_name
            )
            continue
        total += (float(raw) / float(tool.max_marks)) * (float(tool.weightage or 0) / 100)
    return total * 100


def compute_type_averages(co_results):
    """Mean CO mark per CO type; types with no COs are left out entirely."""
    grouped = {}
    for row in co_results:
        grouped.setdefault(row["co_type"], []).append(row["co_mark"])

    return {
        co_type: sum(values) / len(values)
        for co_type, values in grouped.items()
        if values
    }


def compute_final_average(co_results):
    """
    Weighted mean of CO marks restricted to the CO types present.

    Each row carries ``co_type``, ``co_mark`` and an optional ``co_weight``
    (defaults to equal weighting). Returns 0.0 for a course with no COs.
    """
    active_types = {row["co_type"] for row in co_results}
    weighted_sum = 0.0
    weight_total = 0.0
    for row in co_results:
        if row["co_type"] not in active_types:
            continue
        weight = float(row.get("co_weight", 100.0)) / 100
        weighted_sum += row["co_mark"] * weight
        weight_total += weight

    if not weight_total:
        return 0.0
    return round_half_up(weighted_sum / weight_total)


def course_breakdown(course, student_ids):
    """
    CO marks, type averages and final average for each student of a course.

    Returns ``(course_outcomes, {student_id: {...}})``. Marks are loaded in a
    single query; students with no marks at all still get a row of zeros.
    """
    cos = (
        CourseOutcome.query
        .filter_by(course_id=course.course_id)
        .order_by(CourseOutcome.co_number.asc())
        .all()
    )
    tool_ids = [t.tool_id for co in cos for t in co.tools]

    marks_by_student = {sid: {} for sid in student_ids}
    if tool_ids and student_ids:
        rows = db.session.query(
            StudentToolMark.student_id,
            StudentToolMark.tool_id,
            StudentToolMark.marks_obtained
        ).filter(
            StudentToolMark.tool_id.in_(tool_ids),
            StudentToolMark.student_id.in_(student_ids)
        ).all()
        for student_id, tool_id, mark in rows:
            marks_by_student[student_id][tool_id] = mark

    results = {}
    for sid in student_ids:
        marks = marks_by_student.get(sid, {})
        co_results = [
            {
                "co_id": co.co_id,
                "co_label": co.label,
                "co_type": co.co_type,
                "co_weight": co.co_weight,
                "co_mark": compute_co_mark(co.tools, marks),
            }
            for co in cos
        ]
        averages = compute_type_averages(co_results)
        results[sid] = {
            "co_marks": {row["co_label"]: round_half_up(row["co_mark"]) for row in co_results},
            "type_averages": {
                co_type: round_half_up(averages[co_type]) if co_type in averages else None
                for co_type in CO_TYPES
            },
            "final_average": compute_final_average(co_results),
        }
    return cos, results


def tool_weightage_total(tools):
    """Exact weightage sum, immune to float drift (33.3 + 33.3 + 33.4 == 100)."""
    total = Decimal("0")
    for tool in tools:
        weightage = tool["weightage"] if isinstance(tool, dict) else tool.weightage
        total += Decimal(str(weightage or 0))
    return total


def co_is_complete(co):
    """True once the CO's tool weightages sum to exactly 100."""
    tools = AssessmentTool.query.filter_by(co_id=co.co_id).all()
    return bool(tools) and tool_weightage_total(tools) == Decimal("100")
