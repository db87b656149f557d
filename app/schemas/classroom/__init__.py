from .requests import ClassroomCreate, ClassroomUpdate, TeacherAssignmentRequest
from .responses import (
    ClassroomSummary,
    ClassroomResponse,
    ClassroomDetailResponse,
    ClassroomStudent,
    ClassroomDevice
)
