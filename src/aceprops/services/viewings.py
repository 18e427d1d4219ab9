"""
Flujos de visitas: disponibilidad, pedido y cambios de estado.

Las reglas de transición viven en ViewingStatus; acá se chequean
permisos, fechas y se disparan los emails.
"""

import re
from datetime import date, datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

import structlog
from pydantic import ValidationError

from aceprops.config import EMAIL_PATTERN, Settings, get_settings
from aceprops.database import PropertyRepository, UserProfileRepository, ViewingRepository
from aceprops.errors import (
    BadRequestError,
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
)
from aceprops.models import (
    OCCUPYING_STATUSES,
    LandlordAvailabilityPreference,
    PropertyRecord,
    PropertyStatus,
    UserProfile,
    ViewingBooking,
    ViewingSlotRequest,
    ViewingStatus,
)
from aceprops.notifications import (
    EmailSender,
    viewing_confirmation,
    viewing_rejected,
    viewing_request,
)
from aceprops.scheduling import AvailabilityReport, AvailabilitySlotGenerator

logger = structlog.get_logger()

EMAIL_RE = re.compile(EMAIL_PATTERN)
UK_PHONE_RE = re.compile(r"^(\+44|0)[1-9]\d{8,9}$")

REQUIRED_REQUEST_FIELDS = (
    "propertyId",
    "viewingDate",
    "viewingTime",
    "userName",
    "userEmail",
    "userPhone",
)


def is_valid_email(value: str) -> bool:
    return bool(EMAIL_RE.match(value or ""))


def is_valid_uk_phone(value: str) -> bool:
    return bool(UK_PHONE_RE.match(re.sub(r"\s", "", value or "")))


class ViewingService:
    """Casos de uso de visitas."""

    def __init__(
        self,
        viewing_repo: Optional[ViewingRepository] = None,
        property_repo: Optional[PropertyRepository] = None,
        user_repo: Optional[UserProfileRepository] = None,
        email_sender: Optional[EmailSender] = None,
        generator: Optional[AvailabilitySlotGenerator] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.viewing_repo = viewing_repo or ViewingRepository()
        self.property_repo = property_repo or PropertyRepository()
        self.user_repo = user_repo or UserProfileRepository()
        self.email_sender = email_sender or EmailSender(settings=self.settings)
        self.generator = generator or AvailabilitySlotGenerator()

    def now(self) -> datetime:
        return datetime.now(ZoneInfo(self.settings.timezone))

    # ------------------------------------------------------------------
    # Disponibilidad
    # ------------------------------------------------------------------

    def available_slots(
        self,
        property_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        now: Optional[datetime] = None,
    ) -> dict:
        """
        Slots de visita de una propiedad activa.

        Por defecto el rango va de hoy a hoy + viewing_lookahead_days;
        un endDate más lejano se recorta a ese horizonte.
        """
        now = now or self.now()
        horizon = now.date() + timedelta(days=self.settings.viewing_lookahead_days)
        start_date = start_date or now.date()
        end_date = min(end_date or horizon, horizon)

        property = self._get_active_property(property_id)
        report = self._build_report(property, start_date, end_date, now)

        return {
            "propertyId": property_id,
            "dateRange": {
                "startDate": start_date.isoformat(),
                "endDate": end_date.isoformat(),
            },
            **report.to_dict(),
        }

    def _build_report(
        self, property: PropertyRecord, start_date: date, end_date: date, now: datetime
    ) -> AvailabilityReport:
        bookings = [
            ViewingBooking.from_db_row(row)
            for row in self.viewing_repo.get_for_property(
                property.id, start_date, end_date, statuses=OCCUPYING_STATUSES
            )
        ]
        return self.generator.generate(
            property,
            self._landlord_preferences(property),
            bookings,
            start_date,
            end_date,
            now,
        )

    def _landlord_preferences(self, property: PropertyRecord) -> LandlordAvailabilityPreference:
        if not property.landlord_id:
            return LandlordAvailabilityPreference()
        return LandlordAvailabilityPreference.from_profile_row(
            self.user_repo.get_by_id(property.landlord_id)
        )

    # ------------------------------------------------------------------
    # Pedido de visita
    # ------------------------------------------------------------------

    async def request_viewing(
        self, user: UserProfile, payload: dict, now: Optional[datetime] = None
    ) -> dict:
        """
        Crea un pedido de visita en estado pending.

        El chequeo de disponibilidad es orientativo; el insert depende
        del índice único de la DB para resolver pedidos simultáneos.
        """
        now = now or self.now()

        if any(not payload.get(key) for key in REQUIRED_REQUEST_FIELDS):
            raise BadRequestError("Missing required fields")
        if not is_valid_email(payload["userEmail"]):
            raise BadRequestError("Invalid email format")
        if not is_valid_uk_phone(payload["userPhone"]):
            raise BadRequestError("Invalid UK phone number format")

        try:
            slot = ViewingSlotRequest(
                property_id=payload["propertyId"],
                date=payload["viewingDate"],
                time=payload["viewingTime"],
            )
        except ValidationError as e:
            raise BadRequestError("Invalid viewing date or time") from e

        today = now.date()
        last_day = today + timedelta(days=self.settings.viewing_lookahead_days)
        if not (today + timedelta(days=1) <= slot.date <= last_day):
            raise BadRequestError(
                "Viewing date must be between tomorrow and "
                f"{self.settings.viewing_lookahead_days} days from now"
            )

        property = self._get_active_property(slot.property_id)

        if self.viewing_repo.find_user_request(user.id, slot.property_id, slot.date, slot.time):
            raise ConflictError(
                "You have already requested a viewing for this property at this time"
            )

        day = self._build_report(property, slot.date, slot.date, now).get_day(slot.date)
        if day is None or slot.time not in day.available_slots:
            if day is not None and any(b.time == slot.time for b in day.booked_slots):
                raise ConflictError("This time slot is already booked")
            raise BadRequestError("Viewing time is outside the landlord's viewing hours")

        booking = ViewingBooking(
            property_id=slot.property_id,
            investor_id=user.id,
            landlord_id=property.landlord_id,
            date=slot.date,
            time=slot.time,
            status=ViewingStatus.PENDING,
            user_name=payload["userName"],
            user_email=payload["userEmail"],
            user_phone=payload["userPhone"],
            message=payload.get("message") or None,
        )
        row = self.viewing_repo.create(booking)

        logger.info(
            "Pedido de visita creado",
            property_id=slot.property_id,
            user_id=user.id,
            date=slot.date.isoformat(),
            time=slot.time,
        )

        await self._notify_landlord(property, booking)
        return row

    # ------------------------------------------------------------------
    # Cambios de estado
    # ------------------------------------------------------------------

    async def approve(
        self, user: UserProfile, viewing_id: str, now: Optional[datetime] = None
    ) -> dict:
        """Landlord o admin aprueban una visita futura."""
        now = now or self.now()
        viewing = self._get_viewing(viewing_id)
        self._require_landlord_or_admin(user, viewing, "approve")
        self._check_transition(viewing, ViewingStatus.APPROVED, "approve")

        if self._viewing_datetime(viewing, now) <= now:
            raise BadRequestError("Cannot approve viewing for past date/time")

        updated = self.viewing_repo.update_status(
            viewing_id, ViewingStatus.APPROVED.value, {"rejection_reason": None}
        )

        property = self._get_property(viewing.property_id)
        if property and viewing.user_email:
            message = viewing_confirmation(property, viewing, self.settings.site_url)
            await self.email_sender.send(viewing.user_email, message.subject, message.html)

        return updated

    async def reject(
        self, user: UserProfile, viewing_id: str, reason: Optional[str] = None
    ) -> dict:
        """Landlord o admin rechazan una visita."""
        viewing = self._get_viewing(viewing_id)
        self._require_landlord_or_admin(user, viewing, "reject")
        self._check_transition(viewing, ViewingStatus.REJECTED, "reject")

        updated = self.viewing_repo.update_status(
            viewing_id, ViewingStatus.REJECTED.value, {"rejection_reason": reason}
        )

        property = self._get_property(viewing.property_id)
        if property and viewing.user_email:
            message = viewing_rejected(property, viewing, self.settings.site_url, reason)
            await self.email_sender.send(viewing.user_email, message.subject, message.html)

        return updated

    async def cancel(
        self, user: UserProfile, viewing_id: str, reason: Optional[str] = None
    ) -> dict:
        """El investor que la pidió, el landlord o un admin cancelan."""
        viewing = self._get_viewing(viewing_id)
        allowed = (
            user.is_admin
            or user.id == viewing.investor_id
            or user.id == viewing.landlord_id
        )
        if not allowed:
            raise PermissionDeniedError("You do not have permission to cancel this viewing")
        self._check_transition(viewing, ViewingStatus.CANCELLED, "cancel")

        return self.viewing_repo.update_status(
            viewing_id, ViewingStatus.CANCELLED.value, {"cancellation_reason": reason}
        )

    async def complete(
        self, user: UserProfile, viewing_id: str, now: Optional[datetime] = None
    ) -> dict:
        """Marca como realizada una visita aprobada que ya pasó."""
        now = now or self.now()
        viewing = self._get_viewing(viewing_id)
        self._require_landlord_or_admin(user, viewing, "complete")
        self._check_transition(viewing, ViewingStatus.COMPLETED, "complete")

        if self._viewing_datetime(viewing, now) > now:
            raise BadRequestError("Cannot complete a viewing before it takes place")

        return self.viewing_repo.update_status(viewing_id, ViewingStatus.COMPLETED.value)

    # ------------------------------------------------------------------
    # Listados
    # ------------------------------------------------------------------

    def my_requests(
        self,
        user: UserProfile,
        status: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> dict:
        """Visitas pedidas por el investor; quedan marcadas como vistas."""
        status = self._status_filter(status)
        rows = self.viewing_repo.list_viewings(
            investor_id=user.id, status=status, limit=limit, offset=offset
        )
        self.viewing_repo.mark_viewed(
            [row["id"] for row in rows if not row.get("viewed_by_user")], "viewed_by_user"
        )
        return {
            "viewings": rows,
            "pagination": {
                "limit": limit,
                "offset": offset,
                "hasMore": len(rows) == limit,
            },
        }

    def for_my_properties(
        self,
        user: UserProfile,
        status: Optional[str] = ViewingStatus.PENDING.value,
        limit: int = 20,
        offset: int = 0,
    ) -> dict:
        """
        Visitas sobre las propiedades del landlord, con conteo por status.

        Las pending salen en orden cronológico (la más próxima
        primero); el resto, de la más reciente a la más vieja.
        """
        if not user.is_landlord:
            raise PermissionDeniedError("Landlord access required")
        status = self._status_filter(status or ViewingStatus.PENDING.value)
        rows = self.viewing_repo.list_viewings(
            landlord_id=user.id,
            status=status,
            ascending=status == ViewingStatus.PENDING.value,
            limit=limit,
            offset=offset,
        )
        self.viewing_repo.mark_viewed(
            [row["id"] for row in rows if not row.get("viewed_by_landlord")],
            "viewed_by_landlord",
        )
        return {
            "viewings": rows,
            "summary": self.viewing_repo.count_by_status(landlord_id=user.id),
            "pagination": {
                "limit": limit,
                "offset": offset,
                "hasMore": len(rows) == limit,
            },
        }

    def admin_list(
        self, user: UserProfile, status: Optional[str] = None, limit: int = 50
    ) -> dict:
        """Todas las visitas, con la propiedad y los perfiles de ambas partes."""
        if not user.is_admin:
            raise PermissionDeniedError("Admin access required")
        status = self._status_filter(status)
        rows = self.viewing_repo.list_viewings(status=status, limit=limit)

        properties: dict[str, Optional[PropertyRecord]] = {}
        profiles: dict[str, Optional[dict]] = {}
        viewings = []
        for row in rows:
            property_id = row.get("property_id")
            if property_id not in properties:
                properties[property_id] = self._get_property(property_id)
            property = properties[property_id]
            viewings.append(
                {
                    **row,
                    "property": property.to_card() if property else None,
                    "user_profile": self._cached_profile(profiles, row.get("user_id")),
                    "landlord_profile": self._cached_profile(
                        profiles, row.get("landlord_id") or (property and property.landlord_id)
                    ),
                }
            )

        return {
            "viewings": viewings,
            "summary": self.viewing_repo.count_by_status(),
            "count": len(viewings),
        }

    @staticmethod
    def _status_filter(status: Optional[str]) -> Optional[str]:
        """None o 'all' no filtran; cualquier otro valor debe ser un status válido."""
        if not status or status == "all":
            return None
        if status not in ViewingStatus._value2member_map_:
            raise BadRequestError(f"Invalid status: {status}")
        return status

    def _cached_profile(self, cache: dict, user_id: Optional[str]) -> Optional[dict]:
        if not user_id:
            return None
        if user_id not in cache:
            row = self.user_repo.get_by_id(user_id)
            cache[user_id] = (
                {
                    key: row.get(key)
                    for key in ("id", "full_name", "email", "phone", "company_name")
                }
                if row
                else None
            )
        return cache[user_id]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_property(self, property_id: str) -> Optional[PropertyRecord]:
        row = self.property_repo.get_by_id(property_id)
        return PropertyRecord.from_db_row(row) if row else None

    def _get_active_property(self, property_id: str) -> PropertyRecord:
        property = self._get_property(property_id)
        if property is None:
            raise NotFoundError("Property not found")
        if property.status != PropertyStatus.ACTIVE:
            raise BadRequestError("Property is not available for viewing")
        return property

    def _get_viewing(self, viewing_id: str) -> ViewingBooking:
        row = self.viewing_repo.get_by_id(viewing_id)
        if not row:
            raise NotFoundError("Viewing not found")
        viewing = ViewingBooking.from_db_row(row)
        # Filas viejas sin landlord_id: se toma el de la propiedad
        if viewing.landlord_id is None:
            property = self._get_property(viewing.property_id)
            if property is not None:
                viewing.landlord_id = property.landlord_id
        return viewing

    @staticmethod
    def _require_landlord_or_admin(user: UserProfile, viewing: ViewingBooking, verb: str) -> None:
        if not (user.is_admin or user.id == viewing.landlord_id):
            raise PermissionDeniedError(
                f"Permission denied. Only landlords and admins can {verb} viewings."
            )

    @staticmethod
    def _check_transition(viewing: ViewingBooking, target: ViewingStatus, verb: str) -> None:
        try:
            viewing.status.transition_to(target)
        except InvalidTransitionError as e:
            raise BadRequestError(
                f"Cannot {verb} viewing with status: {viewing.status.value}"
            ) from e

    @staticmethod
    def _viewing_datetime(viewing: ViewingBooking, now: datetime) -> datetime:
        hours, minutes = viewing.time.split(":")
        return datetime(
            viewing.date.year,
            viewing.date.month,
            viewing.date.day,
            int(hours),
            int(minutes),
            tzinfo=now.tzinfo,
        )

    async def _notify_landlord(self, property: PropertyRecord, booking: ViewingBooking) -> None:
        if not property.landlord_id:
            return
        landlord = self.user_repo.get_by_id(property.landlord_id)
        if not landlord or not landlord.get("email"):
            return
        message = viewing_request(property, booking, self.settings.site_url)
        await self.email_sender.send(landlord["email"], message.subject, message.html)
