from .requests import StudentCreate, StudentUpdate
from .responses import StudentResponse, StudentDetailResponse
