from .requests import UserRoleUpdate
from .responses import SchoolSummary, TeacherSummary, UserResponse, UserWithSchoolResponse
