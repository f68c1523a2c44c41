# wallet_auth/infra/legacy/http_profile_source.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote

import requests

from wallet_auth.services._shared.ports.legacy_provider import (
    LegacyProfile,
    LegacyProfileSource,
    LegacyProviderError,
)


def _pick(data: dict[str, Any], *names: str) -> str:
    for name in names:
        value = data.get(name)
        if value:
            return str(value)
    return ""


@dataclass(slots=True)
class HttpLegacyProfileSource(LegacyProfileSource):
    """
    Fetch legacy profile records over HTTP.

    The endpoint returns a JSON object per subject; both ``camelCase`` and
    ``snake_case`` field names are accepted.

    :param url_template: URL containing ``{subject_id}``.
    :param timeout: Seconds allowed per request.
    """

    url_template: str
    timeout: float = 5.0
    session: requests.Session = field(default_factory=requests.Session)

    def fetch(self, subject_id: str) -> LegacyProfile | None:
        """
        Return the profile for ``subject_id`` (``None`` on HTTP 404).

        :raises LegacyProviderError: On transport errors, other HTTP errors or
            a non-object payload.
        """
        url = self.url_template.format(subject_id=quote(subject_id, safe=""))
        try:
            resp = self.session.get(url, timeout=self.timeout)
            if resp.status_code == 404:
                return None
            resp.raise_for_status()
            data = resp.json()
        except (requests.RequestException, ValueError) as exc:
            raise LegacyProviderError(f"Legacy profile fetch failed: {exc}") from exc

        if not isinstance(data, dict):
            raise LegacyProviderError("Legacy profile payload is not an object")
        return LegacyProfile(
            first_name=_pick(data, "firstName", "first_name"),
            last_name=_pick(data, "lastName", "last_name"),
            account_number=_pick(data, "accountNumber", "account_number") or None,
        )
