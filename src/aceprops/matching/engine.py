"""
Motor de matching entre investors y propiedades.

Implementa:
- Recomendaciones: propiedades activas que matchean a un investor
- Vista admin: investors que matchean una propiedad
- Notificación al aprobar una propiedad (umbral 60)
- Digest diario de propiedades nuevas (umbral 85)
"""

from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

import structlog

from aceprops.config import Settings, get_settings
from aceprops.database import PreferenceRepository, PropertyRepository
from aceprops.errors import NotFoundError, ProfileValidationError
from aceprops.matching.scorer import MatchResult, MatchScore, PreferenceMatcher
from aceprops.models import PreferenceProfile, PropertyRecord
from aceprops.notifications import EmailSender, new_property_match

logger = structlog.get_logger()


def rank_matches(
    profiles: Iterable[PreferenceProfile],
    properties: Iterable[PropertyRecord],
    min_score: int = 0,
    matcher: Optional[PreferenceMatcher] = None,
) -> list[MatchResult]:
    """Matching batch sin I/O: todos los perfiles contra todas las propiedades."""
    return (matcher or PreferenceMatcher()).rank(profiles, properties, min_score=min_score)


class MatchingEngine:
    """
    Motor de matching sobre los datos de Supabase.

    El scoring lo hace PreferenceMatcher (puro); este motor solo
    trae los datos, valida los perfiles y dispara los emails.
    """

    def __init__(
        self,
        property_repo: Optional[PropertyRepository] = None,
        preference_repo: Optional[PreferenceRepository] = None,
        email_sender: Optional[EmailSender] = None,
        matcher: Optional[PreferenceMatcher] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.property_repo = property_repo or PropertyRepository()
        self.preference_repo = preference_repo or PreferenceRepository()
        self.email_sender = email_sender or EmailSender(settings=self.settings)
        self.matcher = matcher or PreferenceMatcher()

    def load_profile(self, row: dict) -> Optional[PreferenceProfile]:
        """Valida un row de preferencias; None si no es utilizable."""
        try:
            return PreferenceProfile.from_db_row(row)
        except ProfileValidationError as e:
            logger.warning(
                "Preferencias inválidas",
                investor_id=row.get("investor_id"),
                error=str(e),
            )
            return None

    def matched_properties_for_investor(
        self,
        investor_id: str,
        min_score: Optional[int] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> dict:
        """
        Propiedades activas recomendadas para un investor.

        Returns:
            {"properties", "total", "has_preferences", "preferences"}
        """
        if min_score is None:
            min_score = self.settings.recommended_match_threshold

        row = self.preference_repo.get_active_for_investor(investor_id)
        profile = self.load_profile(row) if row else None
        if profile is None:
            return {
                "properties": [],
                "total": 0,
                "has_preferences": False,
                "preferences": None,
            }

        properties = [
            PropertyRecord.from_db_row(r) for r in self.property_repo.get_active()
        ]
        results = self.matcher.rank([profile], properties, min_score=min_score)
        page = results[offset : offset + limit]

        logger.info(
            "Propiedades recomendadas",
            investor_id=investor_id,
            candidates=len(properties),
            matches=len(results),
        )

        return {
            "properties": [
                {
                    **result.property.to_card(),
                    "match_score": result.score,
                    "match_breakdown": [item.to_dict() for item in result.breakdown],
                }
                for result in page
            ],
            "total": len(results),
            "has_preferences": True,
            "preferences": row.get("preference_data"),
        }

    def matched_investors_for_property(
        self,
        property_id: str,
        min_score: Optional[int] = None,
    ) -> list[dict]:
        """
        Investors activos que matchean una propiedad, mejor score primero.

        Raises:
            NotFoundError: si la propiedad no existe
        """
        if min_score is None:
            min_score = self.settings.approval_match_threshold

        property = self._get_property(property_id)

        matches = []
        for row in self.preference_repo.get_active_with_profiles():
            profile = self.load_profile(row)
            if profile is not None and not profile.active:
                continue
            match = self.matcher.score(profile, property)
            if match.score < min_score:
                continue

            user = row.get("user_profiles") or {}
            matches.append(
                {
                    "id": row.get("investor_id"),
                    "full_name": user.get("full_name"),
                    "email": user.get("email"),
                    "phone": user.get("phone"),
                    "company_name": user.get("company_name"),
                    "investor_type": user.get("user_type"),
                    "preference_data": row.get("preference_data"),
                    "match_score": match.score,
                    "match_breakdown": [item.to_dict() for item in match.breakdown],
                }
            )

        matches.sort(key=lambda m: m["match_score"], reverse=True)
        logger.info(
            "Investors que matchean",
            property_id=property_id,
            matches=len(matches),
        )
        return matches

    async def notify_on_approval(self, property_id: str) -> dict:
        """
        Avisa a los investors que matchean una propiedad recién aprobada.

        Returns:
            Estadísticas del envío
        """
        stats = {"investors_checked": 0, "matches_found": 0, "emails_sent": 0, "errors": 0}

        property = self._get_property(property_id)
        threshold = self.settings.approval_match_threshold

        for row in self.preference_repo.get_active_with_profiles():
            stats["investors_checked"] += 1
            try:
                recipient = self._recipient(row)
                profile = self.load_profile(row)
                if recipient is None or profile is None or not profile.active:
                    continue

                match = self.matcher.score(profile, property)
                if match.score < threshold:
                    continue
                stats["matches_found"] += 1

                if await self._send_match(recipient, property, match):
                    stats["emails_sent"] += 1
                else:
                    stats["errors"] += 1

            except Exception as e:
                logger.error(
                    "Error notificando investor",
                    investor_id=row.get("investor_id"),
                    property_id=property_id,
                    error=str(e),
                )
                stats["errors"] += 1

        logger.info("Notificación de aprobación completada", property_id=property_id, **stats)
        return stats

    async def run_daily_digest(self, now: Optional[datetime] = None) -> dict:
        """
        Envía a cada investor su mejor match entre las propiedades nuevas.

        Returns:
            Estadísticas del procesamiento
        """
        stats = {
            "properties_checked": 0,
            "investors_checked": 0,
            "emails_sent": 0,
            "errors": 0,
        }

        now = now or datetime.now(timezone.utc)
        since = now - timedelta(hours=self.settings.digest_window_hours)

        properties = [
            PropertyRecord.from_db_row(r)
            for r in self.property_repo.get_active_since(since)
        ]
        stats["properties_checked"] = len(properties)
        if not properties:
            logger.info("No hay propiedades nuevas para el digest", since=since.isoformat())
            return stats

        threshold = self.settings.digest_match_threshold

        for row in self.preference_repo.get_active_with_profiles():
            stats["investors_checked"] += 1
            try:
                recipient = self._recipient(row)
                profile = self.load_profile(row)
                if recipient is None or profile is None:
                    continue

                matches = self.matcher.rank([profile], properties, min_score=threshold)
                if not matches:
                    continue

                best = matches[0]
                if await self._send_match(recipient, best.property, best.match):
                    stats["emails_sent"] += 1
                else:
                    stats["errors"] += 1

            except Exception as e:
                logger.error(
                    "Error procesando investor",
                    investor_id=row.get("investor_id"),
                    error=str(e),
                )
                stats["errors"] += 1

        logger.info("Digest diario completado", **stats)
        return stats

    async def run_matching_cycle(self) -> dict:
        """
        Ejecuta un ciclo completo de matching.

        Diseñado para ser llamado por cron.
        """
        logger.info("Iniciando ciclo de matching")

        try:
            return await self.run_daily_digest()
        except Exception as e:
            logger.error("Error en ciclo de matching", error=str(e))
            raise

    def _get_property(self, property_id: str) -> PropertyRecord:
        row = self.property_repo.get_by_id(property_id)
        if not row:
            raise NotFoundError("Property not found")
        return PropertyRecord.from_db_row(row)

    def _recipient(self, row: dict) -> Optional[dict]:
        """Datos de contacto si el investor acepta emails."""
        user = row.get("user_profiles") or {}
        if not user.get("email"):
            return None
        if row.get("notification_enabled") is False or user.get("notification_enabled") is False:
            return None
        return {"email": user["email"], "name": user.get("full_name")}

    async def _send_match(
        self, recipient: dict, property: PropertyRecord, match: MatchScore
    ) -> bool:
        message = new_property_match(
            property,
            match,
            site_url=self.settings.site_url,
            investor_name=recipient.get("name"),
        )
        return await self.email_sender.send(recipient["email"], message.subject, message.html)
