import logging

from extensions import db
from models import (
    Course, ElectiveBucket, ElectiveBucketCourse, Semester, StudentElectiveSelection, ELECTIVE_CATEGORIES
)
from services.db_utils import transaction
from services.errors import ConflictError, ValidationError

logger = logging.getLogger(__name__)


def list_buckets(semester_id, active_courses_only=True):
    buckets = (
        ElectiveBucket.query
        .filter_by(semester_id=semester_id)
        .order_by(ElectiveBucket.bucket_number.asc())
        .all()
    )
    result = []
    for bucket in buckets:
        courses = [bc.course for bc in bucket.bucket_courses]
        if active_courses_only:
            courses = [c for c in courses if c.is_active]
        result.append({
            "bucketId": bucket.bucket_id,
            "bucketNumber": bucket.bucket_number,
            "bucketName": bucket.bucket_name,
            "courses": [
                {
                    "courseId": c.course_id,
                    "courseCode": c.course_code,
                    "courseTitle": c.course_title,
                    "category": c.category,
                    "credits": c.credits,
                }
                for c in courses
            ],
        })
    return result


def create_bucket(semester, actor):
    """Next bucket number comes from the semester's counter, read under lock."""
    with transaction():
        locked = (
            db.session.query(Semester)
            .filter_by(semester_id=semester.semester_id)
            .with_for_update()
            .one()
        )
        number = locked.next_bucket_number
        bucket = ElectiveBucket(
            semester_id=semester.semester_id,
            bucket_number=number,
            bucket_name=f"Bucket {number}",
            created_by=actor
        )
        db.session.add(bucket)
        locked.next_bucket_number = number + 1
        db.session.flush()
    logger.info("Created elective bucket %d for semester %s", number, semester.semester_id)
    return bucket


def rename_bucket(bucket, bucket_name):
    name = (bucket_name or "").strip()
    if not name:
        raise ValidationError("Bucket name cannot be empty")
    with transaction():
        bucket.bucket_name = name
    return bucket


def add_courses_to_bucket(bucket, course_codes):
    """
    Add elective courses to a bucket.

    Each code is checked on its own; failures are collected. The call only
    fails when no course at all could be added.
    """
    if not isinstance(course_codes, list) or not course_codes:
        raise ValidationError("courseCodes must be a non-empty array")

    errors = []
    added = []
    with transaction():
        for code in course_codes:
            course = Course.query.filter(
                Course.course_code == code,
                Course.category.in_(ELECTIVE_CATEGORIES),
                Course.is_active.is_(True)
            ).first()
            if not course:
                errors.append(f"Course {code} is invalid, not an elective (PEC/OEC), or not active")
                continue
            if course.semester_id != bucket.semester_id:
                errors.append(
                    f"Course {code} belongs to semester {course.semester_id}, "
                    f"but bucket requires semester {bucket.semester_id}"
                )
                continue

            existing = ElectiveBucketCourse.query.filter_by(course_id=course.course_id).first()
            if existing:
                if existing.bucket_id == bucket.bucket_id:
                    errors.append(f"Course {code} is already in bucket {bucket.bucket_id}")
                else:
                    errors.append(f"Course {code} is already assigned to bucket {existing.bucket_id}")
                continue

            db.session.add(ElectiveBucketCourse(bucket_id=bucket.bucket_id, course_id=course.course_id))
            db.session.flush()
            added.append(code)

        if not added:
            raise ValidationError("Failed to add courses", details=errors)

    logger.info("Added %s to bucket %s", added, bucket.bucket_id)
    return added, errors


def remove_course_from_bucket(bucket, course_code):
    link = (
        ElectiveBucketCourse.query
        .join(Course, ElectiveBucketCourse.course_id == Course.course_id)
        .filter(ElectiveBucketCourse.bucket_id == bucket.bucket_id, Course.course_code == course_code)
        .first()
    )
    if not link:
        raise ConflictError(f"Course {course_code} not found in bucket {bucket.bucket_id}")
    with transaction():
        db.session.delete(link)


def delete_bucket(bucket):
    if bucket_has_selections(bucket):
        raise ConflictError(f"Bucket {bucket.bucket_id} already has student selections")
    bucket_id = bucket.bucket_id
    with transaction():
        db.session.delete(bucket)
    logger.info("Deleted bucket %s", bucket_id)


def bucket_has_selections(bucket):
    return StudentElectiveSelection.query.filter_by(bucket_id=bucket.bucket_id).first() is not None
