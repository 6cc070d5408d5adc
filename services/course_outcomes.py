import logging

from extensions import db
from models import Course, CoursePartition, CourseOutcome, CO_TYPES
from services.db_utils import transaction
from services.errors import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

# Appended COs park here until the final renumbering pass
PLACEHOLDER_BASE = 10000
RENUMBER_OFFSET = 20000


def get_course_by_code(course_code):
    course = Course.query.filter_by(course_code=course_code).first()
    if not course:
        raise NotFoundError(f"Course with code '{course_code}' does not exist")
    return course


def _validate_counts(theory_count, practical_count, experiential_count):
    counts = {}
    for co_type, value in zip(CO_TYPES, (theory_count, practical_count, experiential_count)):
        if value is None:
            raise ValidationError(
                "theoryCount, practicalCount and experientialCount are required"
            )
        try:
            value = int(value)
        except (TypeError, ValueError):
            raise ValidationError(f"{co_type.lower()} count must be an integer")
        if value < 0:
            raise ValidationError("Counts cannot be negative")
        counts[co_type] = value
    return counts


def get_partitions(course):
    partition = CoursePartition.query.filter_by(course_id=course.course_id).first()
    if not partition:
        return {"theoryCount": 0, "practicalCount": 0, "experientialCount": 0}
    return {
        "partitionId": partition.partition_id,
        "theoryCount": partition.theory_count,
        "practicalCount": partition.practical_count,
        "experientialCount": partition.experiential_count,
    }


def list_course_outcomes(course):
    return (
        CourseOutcome.query
        .filter_by(course_id=course.course_id)
        .order_by(CourseOutcome.co_number.asc())
        .all()
    )


def save_partitions(course, theory_count, practical_count, experiential_count, actor):
    """Create the partition and its COs, numbered theory block first."""
    counts = _validate_counts(theory_count, practical_count, experiential_count)

    if CoursePartition.query.filter_by(course_id=course.course_id).first():
        raise ConflictError("Partitions already exist for this course. Use PUT to update.")

    with transaction():
        partition = CoursePartition(
            course_id=course.course_id,
            theory_count=counts["THEORY"],
            practical_count=counts["PRACTICAL"],
            experiential_count=counts["EXPERIENTIAL"],
            created_by=actor
        )
        db.session.add(partition)

        co_number = 1
        created = []
        for co_type in CO_TYPES:
            for _ in range(counts[co_type]):
                co = CourseOutcome(course_id=course.course_id, co_number=co_number, co_type=co_type)
                db.session.add(co)
                created.append(co)
                co_number += 1
        db.session.flush()

    logger.info("Saved partitions for %s: %s", course.course_code, counts)
    return partition, created


def plan_resize(course, counts):
    """COs that a resize to ``counts`` would delete, tail-first per type."""
    existing = list_course_outcomes(course)
    doomed = []
    for co_type in CO_TYPES:
        group = [co for co in existing if co.co_type == co_type]
        surplus = len(group) - counts[co_type]
        if surplus > 0:
            doomed.extend(group[-surplus:])
    return doomed


def resize_partitions(course, theory_count, practical_count, experiential_count, actor,
                      confirm=False):
    """
    Resize CO counts per type and renumber every CO of the course 1..N.

    Shrinking a type deletes its highest-numbered COs together with their
    tools and marks. That only happens with ``confirm=True``; otherwise a
    ConflictError names the COs that would go.
    """
    counts = _validate_counts(theory_count, practical_count, experiential_count)

    partition = CoursePartition.query.filter_by(course_id=course.course_id).first()
    if not partition:
        raise NotFoundError("No partitions found for this course. Use POST to create.")

    doomed = plan_resize(course, counts)
    if doomed and not confirm:
        raise ConflictError(
            "Resizing deletes course outcomes and their tools and marks; "
            "resubmit with confirm=true",
            details=[co.label for co in doomed]
        )

    with transaction():
        partition.theory_count = counts["THEORY"]
        partition.practical_count = counts["PRACTICAL"]
        partition.experiential_count = counts["EXPERIENTIAL"]
        partition.updated_by = actor

        for co in doomed:
            db.session.delete(co)
        db.session.flush()

        existing = list_course_outcomes(course)
        ordered = []
        placeholder = PLACEHOLDER_BASE
        for co_type in CO_TYPES:
            group = [co for co in existing if co.co_type == co_type]
            for _ in range(counts[co_type] - len(group)):
                co = CourseOutcome(course_id=course.course_id, co_number=placeholder, co_type=co_type)
                db.session.add(co)
                group.append(co)
                placeholder += 1
            ordered.extend(group)
        db.session.flush()

        # Two passes so no intermediate number collides with a live one
        for index, co in enumerate(ordered):
            co.co_number = RENUMBER_OFFSET + index
        db.session.flush()
        for index, co in enumerate(ordered, start=1):
            co.co_number = index
        db.session.flush()

    logger.info(
        "Resized partitions for %s to %s (deleted %s)",
        course.course_code, counts, [co.co_id for co in doomed]
    )
    return ordered, doomed


def serialize_co(co):
    return {
        "coId": co.co_id,
        "coNumber": co.label,
        "coType": co.co_type,
        "coWeight": co.co_weight,
    }
