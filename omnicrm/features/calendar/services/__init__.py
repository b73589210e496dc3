"""
Service layer for calendar availability.
"""

from .availability_service import AvailabilityCalculator, availability_calculator

__all__ = ["AvailabilityCalculator", "availability_calculator"]
