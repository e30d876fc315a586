"""
Lettura degli eventi dal calendario Outlook tramite Microsoft Graph.

Autenticazione client-credentials su Azure AD, poi
GET /users/{mailbox}/calendar/events filtrato sulla finestra richiesta.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterator, List, Mapping, Optional

import requests

from app.services.errors import CalendarConfigError, CalendarFeedError

GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0"
TOKEN_URL = "https://login.microsoftonline.com/{tenant_id}/oauth2/v2.0/token"
GRAPH_SCOPE = "https://graph.microsoft.com/.default"


@dataclass
class CalendarEvent:
    """Evento grezzo del calendario (campi minimi usati dal parser)."""

    id: Optional[str]
    subject: str = ""
    body: str = ""
    start: Optional[datetime] = None

    @classmethod
    def from_graph(cls, payload: Mapping[str, Any]) -> "CalendarEvent":
        start = (payload.get("start") or {}).get("dateTime")
        return cls(
            id=payload.get("id"),
            subject=payload.get("subject") or "",
            body=(payload.get("body") or {}).get("content") or "",
            start=_parse_graph_datetime(start),
        )


@dataclass
class GraphSettings:
    tenant_id: str
    client_id: str
    client_secret: str
    user_email: str
    timeout: int = 15

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "GraphSettings":
        return cls(
            tenant_id=config.get("AZURE_TENANT_ID", ""),
            client_id=config.get("AZURE_CLIENT_ID", ""),
            client_secret=config.get("AZURE_CLIENT_SECRET", ""),
            user_email=config.get("OUTLOOK_USER_EMAIL", ""),
            timeout=int(config.get("GRAPH_TIMEOUT", 15)),
        )

    def validate(self) -> None:
        missing = [
            name
            for name, value in (
                ("AZURE_TENANT_ID", self.tenant_id),
                ("AZURE_CLIENT_ID", self.client_id),
                ("AZURE_CLIENT_SECRET", self.client_secret),
                ("OUTLOOK_USER_EMAIL", self.user_email),
            )
            if not value
        ]
        if missing:
            raise CalendarConfigError(
                "Configurazione Azure AD incompleta: " + ", ".join(missing) + "."
            )


class GraphCalendarFeed:
    def __init__(self, settings: GraphSettings, session: Optional[requests.Session] = None):
        self.settings = settings
        self.session = session or requests.Session()

    def fetch_events(self, start: datetime, end: datetime) -> Iterator[CalendarEvent]:
        self.settings.validate()
        token = self._acquire_token()

        url = f"{GRAPH_BASE_URL}/users/{self.settings.user_email}/calendar/events"
        params = {
            "$filter": (
                f"start/dateTime ge '{start.isoformat()}' and "
                f"start/dateTime le '{end.isoformat()}'"
            ),
            "$select": "id,subject,start,end,body",
            "$top": "100",
        }
        payload = self._get_json(url, token, params)
        yield from events_from_payload(payload.get("value") or [])

    def _acquire_token(self) -> str:
        try:
            response = self.session.post(
                TOKEN_URL.format(tenant_id=self.settings.tenant_id),
                data={
                    "client_id": self.settings.client_id,
                    "client_secret": self.settings.client_secret,
                    "scope": GRAPH_SCOPE,
                    "grant_type": "client_credentials",
                },
                timeout=self.settings.timeout,
            )
            response.raise_for_status()
            token = response.json().get("access_token")
        except (requests.RequestException, ValueError) as exc:
            raise CalendarFeedError(f"Token Azure AD non ottenuto: {exc}") from exc
        if not token:
            raise CalendarFeedError("Token Azure AD non ottenuto: risposta senza access_token.")
        return token

    def _get_json(self, url: str, token: str, params: Dict[str, str]) -> Dict[str, Any]:
        try:
            response = self.session.get(
                url,
                headers={"Authorization": f"Bearer {token}"},
                params=params,
                timeout=self.settings.timeout,
            )
            response.raise_for_status()
            return response.json()
        except (requests.RequestException, ValueError) as exc:
            raise CalendarFeedError(f"Lettura calendario Outlook fallita: {exc}") from exc


def _parse_graph_datetime(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    # Graph restituisce fino a 7 cifre decimali: fromisoformat ne accetta 6
    text = value.rstrip("Z")
    if "." in text:
        head, fraction = text.split(".", 1)
        text = f"{head}.{fraction[:6]}"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def events_from_payload(items: List[Mapping[str, Any]]) -> List[CalendarEvent]:
    """Converte una lista di eventi in formato Graph (campo "value" della risposta)."""
    return [CalendarEvent.from_graph(item) for item in items]
