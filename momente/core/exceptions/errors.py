from fastapi import status


class MomenteError(Exception):
    """Base class for errors that map onto an API response."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error: str = "Internal error"
    message: str = "Ein unerwarteter Fehler ist aufgetreten."

    def __init__(self, message: str | None = None, details: str | None = None):
        self.message = message or self.message
        self.details = details
        super().__init__(self.message)


class NotionNotConfiguredError(MomenteError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error = "Notion integration not configured"
    message = "NOTION_INTEGRATION_SECRET oder NOTION_PAGE_URL nicht gesetzt"


class DatabaseNotFoundError(MomenteError):
    status_code = status.HTTP_404_NOT_FOUND
    error = "Momente database not found"
    message = (
        "Momente-Datenbank nicht gefunden. Bitte prüfen Sie die Notion-Integration."
    )


class RateLimitedError(MomenteError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    error = "Rate limited"
    message = (
        "Zu viele Anfragen. Die Events werden in wenigen Minuten wieder verfügbar sein."
    )


class UpstreamError(MomenteError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error = "Database search failed"
    message = "Fehler beim Laden der Momente-Datenbank"
