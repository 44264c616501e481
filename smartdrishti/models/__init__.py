from .Users import User, UserRole
from .Project import Project
from .Step import Step
from .StepMedia import StepMedia
from .IotDevice import IotDevice
from .SensorData import SensorData
from .SensorDataHourly import SensorDataHourly

__all__ = [
    "User",
    "UserRole",
    "Project",
    "Step",
    "StepMedia",
    "IotDevice",
    "SensorData",
    "SensorDataHourly",
]
