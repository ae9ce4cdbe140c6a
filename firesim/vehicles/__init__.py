from .drone import DroneState, FirefightingDrone
from .vehicle import Vehicle

__all__ = ["DroneState", "FirefightingDrone", "Vehicle"]
