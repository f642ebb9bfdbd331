"""API Routers package."""
from . import employees, holidays, schedules, rotation, events

__all__ = ['employees', 'holidays', 'schedules', 'rotation', 'events']
