"""
Generador de slots de visita.

Arma la grilla de slots de 30 minutos para una propiedad a partir de
los días y franjas preferidas del landlord, y la parte en disponibles
y reservados según las visitas existentes.

La vista es orientativa: el insert de la visita vuelve a chequear el
conflicto contra el índice único de la DB.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from aceprops.config import (
    DEFAULT_BUSINESS_HOURS,
    DEFAULT_VIEWING_WEEKDAYS,
    SLOT_INTERVAL_MINUTES,
    VIEWING_TIME_WINDOWS,
    WEEKDAY_ABBREVIATIONS,
    WEEKDAY_NAMES,
)
from aceprops.models import LandlordAvailabilityPreference, PropertyRecord, ViewingBooking
from aceprops.models.viewing import minutes_to_time, time_to_minutes

# Orden de display: lunes primero
_DISPLAY_ORDER = [1, 2, 3, 4, 5, 6, 0]

_DAY_LOOKUP = {abbr.lower(): i for i, abbr in enumerate(WEEKDAY_ABBREVIATIONS)}


def js_weekday(day: date) -> int:
    """Día de la semana con domingo = 0."""
    return (day.weekday() + 1) % 7


@dataclass
class BookedSlot:
    time: str
    status: str

    def to_dict(self) -> dict:
        return {"time": self.time, "status": self.status}


@dataclass
class DayAvailability:
    """Slots de un día, partidos en disponibles y reservados."""

    date: date
    available_slots: list[str] = field(default_factory=list)
    booked_slots: list[BookedSlot] = field(default_factory=list)

    @property
    def day_of_week(self) -> str:
        return WEEKDAY_NAMES[js_weekday(self.date)]

    @property
    def total_available(self) -> int:
        return len(self.available_slots)

    @property
    def total_booked(self) -> int:
        return len(self.booked_slots)

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "dayOfWeek": self.day_of_week,
            "availableSlots": self.available_slots,
            "bookedSlots": [slot.to_dict() for slot in self.booked_slots],
            "totalAvailable": self.total_available,
            "totalBooked": self.total_booked,
        }


@dataclass
class AvailabilityReport:
    days: list[DayAvailability]
    excluded_days: list[str]
    business_start: str
    business_end: str
    interval: int = SLOT_INTERVAL_MINUTES

    def get_day(self, day: date) -> Optional[DayAvailability]:
        for item in self.days:
            if item.date == day:
                return item
        return None

    def to_dict(self) -> dict:
        return {
            "availability": [day.to_dict() for day in self.days],
            "businessHours": {
                "start": self.business_start,
                "end": self.business_end,
                "interval": self.interval,
                "excludedDays": self.excluded_days,
            },
        }


class AvailabilitySlotGenerator:
    """
    Genera los slots de visita de una propiedad para un rango de fechas.

    Reglas:
    - Días: los preferidos del landlord; si no hay, lunes a sábado.
    - Franjas: morning 09-12, afternoon 12-17, evening 17-20;
      si no hay, 09:00-18:00.
    - Se saltean fechas anteriores a hoy, y en el día de hoy los slots
      con hora <= now no aparecen ni como disponibles ni como reservados.
    - Solo visitas pending/approved ocupan un slot.
    """

    interval = SLOT_INTERVAL_MINUTES

    def generate(
        self,
        property: PropertyRecord,
        landlord_prefs: Optional[LandlordAvailabilityPreference],
        existing_bookings: Iterable[ViewingBooking],
        start_date: date,
        end_date: date,
        now: datetime,
    ) -> AvailabilityReport:
        prefs = landlord_prefs or LandlordAvailabilityPreference()
        weekdays = self.resolve_weekdays(prefs)
        windows = self.resolve_windows(prefs)
        grid = self.slot_grid(windows)

        occupied = {}
        for booking in existing_bookings:
            if property.id and booking.property_id != property.id:
                continue
            if booking.status.occupies_slot:
                occupied.setdefault((booking.date, booking.time), booking.status.value)

        today = now.date()
        days = []
        current = max(start_date, today)
        while current <= end_date:
            if js_weekday(current) in weekdays:
                days.append(self._build_day(current, grid, occupied, now))
            # date.max no tiene siguiente día
            if current == end_date:
                break
            current += timedelta(days=1)

        return AvailabilityReport(
            days=days,
            excluded_days=[
                WEEKDAY_NAMES[i] for i in _DISPLAY_ORDER if i not in weekdays
            ],
            business_start=minutes_to_time(min(start for start, _ in windows)),
            business_end=minutes_to_time(max(end for _, end in windows)),
            interval=self.interval,
        )

    def _build_day(
        self,
        day: date,
        grid: list[str],
        occupied: dict,
        now: datetime,
    ) -> DayAvailability:
        result = DayAvailability(date=day)
        is_today = day == now.date()

        for slot in grid:
            if is_today and self._slot_datetime(day, slot, now) <= now:
                continue
            status = occupied.get((day, slot))
            if status:
                result.booked_slots.append(BookedSlot(time=slot, status=status))
            else:
                result.available_slots.append(slot)
        return result

    @staticmethod
    def _slot_datetime(day: date, slot: str, now: datetime) -> datetime:
        hours, minutes = slot.split(":")
        return datetime(
            day.year, day.month, day.day, int(hours), int(minutes), tzinfo=now.tzinfo
        )

    @staticmethod
    def resolve_weekdays(prefs: LandlordAvailabilityPreference) -> set[int]:
        """Días permitidos (domingo = 0). Nombres desconocidos se ignoran."""
        weekdays = set()
        for name in prefs.preferred_days:
            index = _DAY_LOOKUP.get(name.strip().lower()[:3])
            if index is not None:
                weekdays.add(index)
        return weekdays or set(DEFAULT_VIEWING_WEEKDAYS)

    @staticmethod
    def resolve_windows(prefs: LandlordAvailabilityPreference) -> list[tuple[int, int]]:
        """Franjas permitidas como (inicio, fin) en minutos desde medianoche."""
        windows = []
        for name in prefs.preferred_time_windows:
            window = VIEWING_TIME_WINDOWS.get(name.strip().lower())
            if window:
                windows.append((time_to_minutes(window[0]), time_to_minutes(window[1])))
        if not windows:
            start, end = DEFAULT_BUSINESS_HOURS
            windows.append((time_to_minutes(start), time_to_minutes(end)))
        return windows

    def slot_grid(self, windows: list[tuple[int, int]]) -> list[str]:
        """Slots de cada franja (fin excluido), sin duplicados y ordenados."""
        minutes = set()
        for start, end in windows:
            minutes.update(range(start, end, self.interval))
        return [minutes_to_time(m) for m in sorted(minutes)]
