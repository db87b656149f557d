from .requests import LoginRequest, SignupRequest
from .responses import AuthResponse
