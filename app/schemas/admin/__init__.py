from .responses import PlatformOverview, SystemLogResponse
