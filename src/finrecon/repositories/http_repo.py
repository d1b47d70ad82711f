from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

import requests

from finrecon.domain.errors import DataAccessError
from finrecon.repositories.sql_repo import SqlRepository

log = logging.getLogger("finrecon.data")


class HttpRepository(SqlRepository):
    """Runs the reporting queries through the web app's ``/api/invoke`` endpoint.

    The endpoint takes ``{"cmd": "db_query", "sql": ..., "params": [...]}`` and
    answers ``{"columns": [...], "rows": [[...], ...]}``. Failures are not
    retried; they surface as ``DataAccessError``.

    Without an explicit ``session`` each query goes through ``requests.post``,
    so concurrent report fetches share no connection state. A session passed
    in is used by every fetch thread and must be safe for that.
    """

    def __init__(self, base_url: str, timeout: float = 10.0, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = float(timeout)
        self.session = session

    @property
    def invoke_url(self) -> str:
        return f"{self.base_url}/api/invoke"

    def _post(self, cmd: str, payload: dict) -> Any:
        try:
            post = self.session.post if self.session is not None else requests.post
            r = post(self.invoke_url, json={"cmd": cmd, **payload}, timeout=self.timeout)
        except requests.RequestException as e:
            log.warning("data_request_failed cmd=%s error=%s", cmd, e)
            raise DataAccessError(f"Request to {self.invoke_url} failed: {e}") from e

        if not r.ok:
            message = r.reason or f"HTTP {r.status_code}"
            try:
                body = r.json()
            except ValueError:
                body = None
            if isinstance(body, dict) and body.get("error"):
                message = str(body["error"])
            log.warning("data_request_failed cmd=%s status=%s error=%s", cmd, r.status_code, message)
            raise DataAccessError(message)

        try:
            return r.json()
        except ValueError as e:
            log.warning("data_response_invalid cmd=%s error=%s", cmd, e)
            raise DataAccessError(f"Invalid JSON from {self.invoke_url}") from e

    def _query(self, sql: str, params: Sequence[Any] = ()) -> list[dict[str, Any]]:
        data = self._post("db_query", {"sql": sql, "params": list(params)})
        if not isinstance(data, dict) or "columns" not in data or "rows" not in data:
            raise DataAccessError(f"Unexpected db_query response shape: {type(data).__name__}")
        columns = [str(c) for c in data["columns"]]
        return [dict(zip(columns, row)) for row in data["rows"]]
