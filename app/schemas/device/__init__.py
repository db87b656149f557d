from .requests import (
    DeviceCreate,
    DeviceUpdate,
    DeviceRegisterRequest,
    DeviceConnectRequest,
    DeviceProvisionRequest,
    HeartbeatRequest,
    DeviceStatusRequest
)
from .responses import (
    DeviceResponse,
    DeviceDetailResponse,
    DeviceCredentialsResponse,
    DeviceAttendanceEntry,
    DeviceAirReading
)
