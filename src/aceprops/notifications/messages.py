"""
Contenido de los emails transaccionales.

Cada builder devuelve un EmailMessage con asunto y HTML listo
para EmailSender.send().
"""

from dataclasses import dataclass
from html import escape
from typing import TYPE_CHECKING, Optional

from aceprops.models import PropertyRecord, ViewingBooking

if TYPE_CHECKING:
    from aceprops.matching.scorer import MatchScore

FACTOR_LABELS = {
    "property_type": "Property type",
    "bedrooms": "Bedrooms",
    "budget": "Budget",
    "location": "Location",
}


@dataclass
class EmailMessage:
    subject: str
    html: str


def _layout(title: str, body: str) -> str:
    return (
        "<div style=\"font-family:Arial,sans-serif;max-width:600px;margin:0 auto\">"
        f"<h2 style=\"color:#1a365d\">{escape(title)}</h2>"
        f"{body}"
        "<p style=\"color:#718096;font-size:12px\">Ace Investment Properties</p>"
        "</div>"
    )


def _property_summary(property: PropertyRecord) -> str:
    rows = [("Property", property.title)]
    if property.monthly_rent is not None:
        rows.append(("Monthly rent", f"£{property.monthly_rent:,.0f}"))
    if property.bathrooms is not None:
        rows.append(("Bathrooms", str(property.bathrooms)))
    if property.licence:
        rows.append(("Licence", property.licence))
    if property.condition:
        rows.append(("Condition", property.condition))
    cells = "".join(
        f"<tr><td><strong>{escape(k)}</strong></td><td>{escape(v)}</td></tr>"
        for k, v in rows
    )
    image = (
        f"<img src=\"{escape(property.photos[0])}\" width=\"100%\" alt=\"\"/>"
        if property.photos
        else ""
    )
    return f"{image}<table>{cells}</table>"


def new_property_match(
    property: PropertyRecord,
    match: "MatchScore",
    site_url: str,
    investor_name: Optional[str] = None,
) -> EmailMessage:
    """Aviso de una propiedad que matchea las preferencias del investor."""
    greeting = f"Hi {escape(investor_name)}," if investor_name else "Hi,"
    factors = "".join(
        f"<li>{escape(FACTOR_LABELS.get(item.factor, item.factor))}: "
        f"{item.points} pts{' ✓' if item.matched else ''}</li>"
        for item in match.breakdown
    )
    base = site_url.rstrip("/")
    body = (
        f"<p>{greeting}</p>"
        f"<p>A new property is a <strong>{match.score}% match</strong> "
        "for your investment preferences.</p>"
        f"{_property_summary(property)}"
        f"<ul>{factors}</ul>"
        f"<p><a href=\"{base}/properties/{escape(property.id or '')}\">View property</a>"
        f" | <a href=\"{base}/investor/dashboard\">Your dashboard</a></p>"
    )
    return EmailMessage(
        subject=f"New {match.score}% Match: {property.title}",
        html=_layout("New property match", body),
    )


def viewing_request(property: PropertyRecord, viewing: ViewingBooking, site_url: str) -> EmailMessage:
    """Aviso al landlord de un pedido de visita."""
    body = (
        f"<p>You have a new viewing request for <strong>{escape(property.title)}</strong>.</p>"
        f"<p>Date: {viewing.date.strftime('%A %d %B %Y')}<br/>Time: {viewing.time}</p>"
        f"<p>Requested by: {escape(viewing.user_name or '')} "
        f"({escape(viewing.user_email or '')}, {escape(viewing.user_phone or '')})</p>"
    )
    if viewing.message:
        body += f"<blockquote>{escape(viewing.message)}</blockquote>"
    body += f"<p><a href=\"{site_url.rstrip('/')}/landlord/dashboard\">Review the request</a></p>"
    return EmailMessage(
        subject=f"New viewing request: {property.title}",
        html=_layout("New viewing request", body),
    )


def viewing_confirmation(property: PropertyRecord, viewing: ViewingBooking, site_url: str) -> EmailMessage:
    """Confirmación al investor de una visita aprobada."""
    body = (
        f"<p>Your viewing of <strong>{escape(property.title)}</strong> is confirmed.</p>"
        f"<p>Date: {viewing.date.strftime('%A %d %B %Y')}<br/>Time: {viewing.time}</p>"
        f"<p>Address: {escape(property.address or '')} {escape(property.postcode or '')}</p>"
        f"<p><a href=\"{site_url.rstrip('/')}/investor/viewings\">Your viewings</a></p>"
    )
    return EmailMessage(
        subject=f"Viewing confirmed: {property.title}",
        html=_layout("Viewing confirmed", body),
    )


def viewing_rejected(
    property: PropertyRecord,
    viewing: ViewingBooking,
    site_url: str,
    reason: Optional[str] = None,
) -> EmailMessage:
    """Aviso al investor de una visita rechazada."""
    body = (
        f"<p>Unfortunately your viewing of <strong>{escape(property.title)}</strong> "
        f"on {viewing.date.strftime('%A %d %B %Y')} at {viewing.time} "
        "could not be accommodated.</p>"
    )
    if reason:
        body += f"<p>Reason: {escape(reason)}</p>"
    body += (
        f"<p><a href=\"{site_url.rstrip('/')}/properties/{escape(property.id or '')}\">"
        "Pick another time</a></p>"
    )
    return EmailMessage(
        subject=f"Viewing update: {property.title}",
        html=_layout("Viewing not confirmed", body),
    )
