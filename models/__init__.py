from .role import Role
from .user import User
from .department import Department
from .batch import Batch
from .semester import Semester
from .course import Course, ELECTIVE_CATEGORIES
from .section import Section
from .student import Student
from .staff_course import StaffCourse
from .student_course import StudentCourse
from .course_outcome import CoursePartition, CourseOutcome, CO_TYPES
from .assessment_tool import AssessmentTool
from .student_tool_mark import StudentToolMark
from .elective import ElectiveBucket, ElectiveBucketCourse, StudentElectiveSelection
from .cbcs import Cbcs, CbcsSubject, CbcsSectionStaff, StudentCourseChoice
from .timetable import TimetableEntry, DAYS_OF_WEEK
from .attendance import PeriodAttendance, ATTENDANCE_STATUSES
from .grade import StudentGrade, StudentSemesterGpa, GRADE_POINTS
from .course_request import CourseRequest, REQUEST_STATUSES
__all__ = [
    "Role", "User", "Department", "Batch", "Semester", "Course", "Section", "Student",
    "StaffCourse", "StudentCourse", "CoursePartition", "CourseOutcome", "AssessmentTool",
    "StudentToolMark", "ElectiveBucket", "ElectiveBucketCourse", "StudentElectiveSelection",
    "Cbcs", "CbcsSubject", "CbcsSectionStaff", "StudentCourseChoice", "TimetableEntry",
    "PeriodAttendance", "StudentGrade", "StudentSemesterGpa", "CourseRequest", "ELECTIVE_CATEGORIES",
    "CO_TYPES", "DAYS_OF_WEEK", "ATTENDANCE_STATUSES", "GRADE_POINTS", "REQUEST_STATUSES",
]
