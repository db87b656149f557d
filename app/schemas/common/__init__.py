from .error import ErrorResponse, FieldError, MessageResponse
