from .requests import SchoolCreate, SchoolUpdate
from .responses import SchoolResponse, SchoolWithCountsResponse
