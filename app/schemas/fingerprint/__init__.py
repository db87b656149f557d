from .requests import EnrollmentCreate, EnrollmentComplete, EnrollmentFail
from .responses import (
    EnrollmentResponse,
    EnrollmentStudent,
    EnrollmentDevice,
    ReclaimResponse
)
