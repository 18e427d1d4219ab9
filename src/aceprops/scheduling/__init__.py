"""
Disponibilidad de visitas.

Genera los slots reservables de una propiedad.
"""

from aceprops.scheduling.slots import (
    AvailabilityReport,
    AvailabilitySlotGenerator,
    BookedSlot,
    DayAvailability,
)

__all__ = [
    "AvailabilityReport",
    "AvailabilitySlotGenerator",
    "BookedSlot",
    "DayAvailability",
]
