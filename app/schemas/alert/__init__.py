from .responses import AlertResponse
