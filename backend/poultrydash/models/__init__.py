from .auth import User
from .farmers import Farmer
from .cycles import Cycle, CYCLE_STATUS_ACTIVE, CYCLE_STATUS_ARCHIVED
from .logs import FarmerLog, LOG_TYPES

__all__ = [
    'User',
    'Farmer',
    'Cycle', 'CYCLE_STATUS_ACTIVE', 'CYCLE_STATUS_ARCHIVED',
    'FarmerLog', 'LOG_TYPES',
]
