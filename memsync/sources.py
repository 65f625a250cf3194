"""Host membership sources: an in-memory one and the host REST API."""

import logging
from typing import Mapping, Optional, Sequence

import httpx

from memsync.models import Identifier, LevelMetadata, UserRecord

logger = logging.getLogger("memsync.source")


class SourceError(Exception):
    """The host could not be asked about a user or level."""


class InMemorySource:
    def __init__(
        self,
        users: Optional[Sequence[UserRecord]] = None,
        levels: Optional[Sequence[LevelMetadata]] = None,
        user_levels: Optional[Mapping[Identifier, Sequence[Identifier]]] = None,
    ):
        self.users = {str(u.id): u for u in users or []}
        self.levels = {str(lv.id): lv for lv in levels or []}
        self.user_levels = {str(k): list(v) for k, v in (user_levels or {}).items()}

    def get_user(self, user_id: Identifier) -> Optional[UserRecord]:
        return self.users.get(str(user_id))

    def get_user_levels(self, user_id: Identifier) -> list[Identifier]:
        return list(self.user_levels.get(str(user_id), []))

    def get_level_label(self, level_id: Identifier) -> Optional[str]:
        level = self.levels.get(str(level_id))
        return level.label if level else None


class HttpMembershipSource:
    """Reads users and levels from the host's REST API.

    ``GET /users/{id}`` (404 means no such user), ``GET /users/{id}/levels``
    and ``GET /levels/{id}``. Anything else non-2xx raises ``SourceError``.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    def _get(self, path: str) -> Optional[object]:
        url = f"{self.base_url}{path}"
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["X-MEMSYNC-HOST"] = self.api_key
        with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
            try:
                resp = client.get(url, headers=headers)
                if resp.status_code == 404:
                    return None
                resp.raise_for_status()
                return resp.json()
            except httpx.ConnectError:
                raise SourceError(f"host unreachable at {self.base_url}")
            except httpx.HTTPStatusError as e:
                raise SourceError(f"host error: {e.response.status_code} {e.response.text}")
            except (httpx.HTTPError, ValueError) as e:
                raise SourceError(f"host communication error: {e}")

    def get_user(self, user_id: Identifier) -> Optional[UserRecord]:
        data = self._get(f"/users/{user_id}")
        if data is None:
            logger.info("host has no user %s", user_id)
            return None
        try:
            return UserRecord.model_validate(data)
        except ValueError as e:
            raise SourceError(f"malformed user {user_id} from host: {e}")

    def get_user_levels(self, user_id: Identifier) -> list[Identifier]:
        data = self._get(f"/users/{user_id}/levels")
        if not data:
            return []
        if not isinstance(data, list):
            raise SourceError(f"malformed level list for user {user_id} from host")
        return [lv.get("id") if isinstance(lv, dict) else lv for lv in data]

    def get_level_label(self, level_id: Identifier) -> Optional[str]:
        data = self._get(f"/levels/{level_id}")
        if data is None:
            return None
        try:
            return LevelMetadata.model_validate(data).label
        except ValueError as e:
            raise SourceError(f"malformed level {level_id} from host: {e}")
