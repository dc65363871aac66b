"""
Hospital API Reminder Client
Reads medicine reminders from and records dose status changes with the hospital backend
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

import httpx

from config import get_settings
from models import DoseStatus
from tools.reminder_grouper import ReminderRecord
from tools.dose_status import (
    GivenTimeAbsent,
    GivenTimeEchoed,
    MutationFailure,
    MutationResult,
)


logger = logging.getLogger(__name__)


class ReminderSourceError(Exception):
    """Reminders could not be read from the source"""


def _is_success(payload: Mapping[str, Any]) -> bool:
    return payload.get("status") == "success" or payload.get("message") == "success"


def _extract_reminders(payload: Mapping[str, Any]) -> Mapping[str, Any]:
    """
    Pull the date -> reminders mapping out of either envelope the
    backend is known to return:

        {"status": "success", "data": {"message": "success", "reminders": {...}}}
        {"message": "success", "reminders": {...}}
    """
    data = payload.get("data") or {}
    if payload.get("status") == "success" and isinstance(data, Mapping) \
            and data.get("message") == "success":
        return data.get("reminders") or {}
    if payload.get("message") == "success":
        return payload.get("reminders") or {}

    logger.warning(f"Unexpected reminders response: {payload.get('message')!r}")
    return {}


def _extract_given_time(payload: Mapping[str, Any]) -> MutationResult:
    """Find an echoed givenTime anywhere the backend may put it"""
    data = payload.get("data")
    candidates: List[Any] = [payload]
    if isinstance(data, Mapping):
        candidates.append(data)
        candidates.append(data.get("reminder"))
    candidates.append(payload.get("reminder"))

    for candidate in candidates:
        if isinstance(candidate, Mapping) and candidate.get("givenTime"):
            return GivenTimeEchoed(given_time=str(candidate["givenTime"]))
    return GivenTimeAbsent()


class HospitalApiClient:
    """
    Async client for the hospital backend's medicine reminder endpoints
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        user_id: Optional[int] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.HOSPITAL_API_URL).rstrip("/")
        self.token = token if token is not None else settings.HOSPITAL_API_TOKEN
        self.user_id = user_id if user_id is not None else settings.HOSPITAL_USER_ID
        self.timeout = timeout or settings.HOSPITAL_API_TIMEOUT
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client"""
        if self._client is None or self._client.is_closed:
            headers = {"Accept": "application/json"}
            if self.token:
                headers["Authorization"] = f"Bearer {self.token}"
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers=headers,
                transport=self._transport
            )
        return self._client

    async def close(self):
        """Close the HTTP client"""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def read_reminders(self, timeline_id: int) -> Dict[str, List[ReminderRecord]]:
        """
        Get all reminders for a treatment timeline, keyed by date

        Args:
            timeline_id: Treatment timeline identifier

        Returns:
            Ordered mapping of date -> reminders; today's date comes first

        Raises:
            ReminderSourceError: on transport or HTTP errors, or a malformed payload
        """
        try:
            client = await self._get_client()
            response = await client.get(f"/medicine/{timeline_id}/reminders/all/notifications")
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as e:
            logger.error(f"Failed to load reminders for timeline {timeline_id}: {e}")
            raise ReminderSourceError(f"Failed to load notifications: {e}") from e
        except ValueError as e:
            logger.error(f"Invalid reminders response for timeline {timeline_id}: {e}")
            raise ReminderSourceError("Failed to load notifications: invalid response") from e

        if not isinstance(payload, Mapping):
            raise ReminderSourceError("Failed to load notifications: invalid response")

        raw = _extract_reminders(payload)
        if not isinstance(raw, Mapping):
            logger.error(f"Reminders for timeline {timeline_id} are not keyed by date")
            raise ReminderSourceError("Failed to load notifications: invalid response")

        reminders: Dict[str, List[ReminderRecord]] = {}
        try:
            for day, items in raw.items():
                reminders[day] = [ReminderRecord.from_payload(item) for item in (items or [])]
        except (AttributeError, TypeError, ValueError) as e:
            logger.error(f"Malformed reminder for timeline {timeline_id}: {e}")
            raise ReminderSourceError("Failed to load notifications: malformed reminder") from e
        return reminders

    async def mutate_dose_status(
        self,
        reminder_id: int,
        new_status: DoseStatus,
        medication_time: str
    ) -> MutationResult:
        """
        Record a dose status change

        Raises:
            MutationFailure: on transport errors or a non-success response
        """
        body = {
            "userID": self.user_id,
            "doseStatus": int(new_status),
            # The backend reads the reminder id from medicineID
            "medicineID": reminder_id,
            "medicationTime": medication_time or "",
        }

        try:
            client = await self._get_client()
            response = await client.patch(f"/medicineReminder/{reminder_id}", json=body)
        except httpx.HTTPError as e:
            logger.error(f"Dose status update for reminder {reminder_id} failed: {e}")
            raise MutationFailure(f"Failed to update medicine status: {e}") from e

        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, Mapping):
            payload = {}

        if response.is_error or not _is_success(payload):
            data = payload.get("data")
            message = (
                payload.get("message")
                or (data.get("message") if isinstance(data, Mapping) else None)
                or "Failed to update status"
            )
            logger.warning(
                f"Dose status update for reminder {reminder_id} rejected "
                f"({response.status_code}): {message}"
            )
            raise MutationFailure(message, status_code=response.status_code)

        return _extract_given_time(payload)
