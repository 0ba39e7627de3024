"""File-backed token records that survive process restarts.

The file is a flat JSON object keyed by bundle identity::

    {"<identity>": {"accessToken": "...", "instanceUrl": "...",
                    "refreshToken": "...", "issuedAt": 1700000000000}}
"""

from datetime import datetime, timedelta, timezone
import json
import os
from pathlib import Path
import tempfile

from ..logger import getLogger
from .login_oauth import parse_issued_at
from .types import TokenResult

LOGGER = getLogger("auth.token_store")


class TokenStore:
    path: Path
    max_age: timedelta | None

    def __init__(self, path: str | Path, max_age: timedelta | None = None):
        self.path = Path(path).expanduser()
        self.max_age = max_age

    def _read(self) -> dict[str, dict]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            LOGGER.warning("Ignoring unreadable token cache %s: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            LOGGER.warning("Ignoring token cache %s: expected a JSON object", self.path)
            return {}
        return data

    def _write(self, data: dict[str, dict]):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def is_stale(self, issued_at: datetime, now: datetime | None = None) -> bool:
        if self.max_age is None:
            return False
        return (now or datetime.now(timezone.utc)) >= issued_at + self.max_age

    def load(self, key: str) -> TokenResult | None:
        record = self._read().get(key)
        if not isinstance(record, dict):
            return None
        if not all(record.get(field) for field in ("accessToken", "instanceUrl", "issuedAt")):
            LOGGER.warning("Ignoring incomplete token record for %s", key[:8])
            return None
        try:
            issued_at = parse_issued_at(record.get("issuedAt"))
        except (TypeError, ValueError):
            LOGGER.warning("Ignoring token record for %s with bad issuedAt", key[:8])
            return None
        if self.is_stale(issued_at):
            LOGGER.debug("Token record for %s is stale", key[:8])
            return None
        return TokenResult(
            record["accessToken"],
            record["instanceUrl"],
            record.get("refreshToken"),
            issued_at,
        )

    def save(self, key: str, token: TokenResult):
        data = self._read()
        record = {
            "accessToken": token.access_token,
            "instanceUrl": token.instance_url,
            "issuedAt": int((token.issued_at or datetime.now(timezone.utc)).timestamp() * 1000),
        }
        if token.refresh_token:
            record["refreshToken"] = token.refresh_token
        data[key] = record
        self._write(data)

    def delete(self, key: str):
        data = self._read()
        if data.pop(key, None) is not None:
            self._write(data)
