"""
AirtableClient: get, create and update records in an Airtable table.

    client = AirtableClient.from_env()
    rows = client.get_records("appXXXX", "Permits", "{Status} = 'Open'")
    client.update_records("appXXXX", "Permits", [r.model_copy(update={"fields": {...}}) for r in rows])

Requests go through a single rate limiter (10 req/sec) and are retried while
Airtable answers 422. Updates are sent in sequential batches of 10; creates
are sent as one request.
"""

import json
import logging
import time
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

import httpx
from pydantic import ValidationError

from airtable_config import (
    API_KEY_ENV,
    DEFAULT_BASE_URL,
    ClientCredentials,
    ClientSettings,
    Config,
    load_credentials,
    make_credentials,
)
from airtable_errors import SerializationError, UnexpectedStatusError
from airtable_http import LOGGER_NAME, AuthenticatedRequestExecutor
from airtable_io import plan_batches
from airtable_models import Record, RecordPage, RequestTarget
from rate_limiter import RateLimiter
from telemetry import NullTelemetry


def _encode(payload: Dict[str, Any]) -> bytes:
    try:
        return json.dumps(payload).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise SerializationError(f"Cannot encode payload: {e}") from e


class AirtableClient:
    """
    Client for one Airtable account.

    The rate limiter and the HTTP connection pool are built here and shared by
    every call made through this instance, including calls from other threads.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        settings: Optional[ClientSettings] = None,
        logger: Optional[logging.Logger] = None,
        telemetry: Any = None,
        transport: Optional[httpx.BaseTransport] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Args:
            api_key: Airtable personal access token. Must not be empty.
            base_url: API root, e.g. ``https://api.airtable.com/v0``.
            settings: Rate, retry and batching tunables.
            logger: Logger for request diagnostics.
            telemetry: Metrics sink with ``incr/timing`` methods.
            transport: Optional httpx transport, mainly for tests.
            sleep: Blocking sleep used for backoff and rate limiting.

        Raises:
            ConfigurationError: The API key is empty.
        """
        self.credentials: ClientCredentials = make_credentials(api_key, base_url)
        self.settings = settings or ClientSettings()
        self.logger = logger or logging.getLogger(LOGGER_NAME)
        self.telemetry = telemetry or NullTelemetry()

        self.rate_limiter = RateLimiter(self.settings.rate_limit, sleep=sleep)
        self.http = httpx.Client(timeout=self.settings.timeout, transport=transport)
        self.executor = AuthenticatedRequestExecutor(
            self.credentials,
            self.http,
            self.rate_limiter,
            settings=self.settings,
            logger=self.logger,
            telemetry=self.telemetry,
            sleep=sleep,
        )

    @classmethod
    def from_env(cls, env_var: str = API_KEY_ENV, **kwargs) -> "AirtableClient":
        """Build a client from ``AIRTABLE_API_KEY`` and the public API URL."""
        creds = load_credentials(env_var)
        return cls(creds.api_key, creds.base_url, **kwargs)

    @classmethod
    def from_config(cls, path: str, **kwargs) -> "AirtableClient":
        """Build a client from a YAML config file; the key still comes from the environment."""
        conf = Config(path)
        creds = conf.credentials()
        kwargs.setdefault("settings", conf.settings)
        return cls(creds.api_key, creds.base_url, **kwargs)

    def close(self) -> None:
        self.http.close()

    def __enter__(self) -> "AirtableClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # ---------- Reads ----------

    def get_record_page(
        self,
        base: str,
        table: str,
        filter_formula: str = "",
        offset: Optional[str] = None,
    ) -> RecordPage:
        """
        Fetch one page of records.

        The returned page keeps Airtable's ``offset`` token; pass it back in
        to read the next page. Pages are never followed automatically.

        Raises:
            UnexpectedStatusError: Airtable answered anything but 200.
            SerializationError: The body is not a valid records envelope.
        """
        target = RequestTarget(base, table, filter_formula)
        url = target.url(self.credentials.base_url)
        params = target.params()
        if offset:
            params["offset"] = offset

        resp = self.executor.execute("GET", url, params=params)

        if resp.status_code != 200:
            raise UnexpectedStatusError(resp.status_code, str(resp.request.url), resp.text)

        try:
            return RecordPage.model_validate_json(resp.content)
        except ValidationError as e:
            raise SerializationError(f"Cannot decode records from {url}: {e}") from e

    def get_records(self, base: str, table: str, filter_formula: str = "") -> List[Record]:
        """Records from the first page matching ``filter_formula`` (all records when empty)."""
        return self.get_record_page(base, table, filter_formula).records

    # ---------- Writes ----------

    def create_records(
        self, base: str, table: str, records: Sequence[Mapping[str, Any]]
    ) -> Optional[httpx.Response]:
        """
        Create one record per field mapping in a single POST.

        Creates are not batched; Airtable rejects more than 10 records per
        request, so callers sending more should split them first.

        Returns:
            Airtable's response, or None when there was nothing to create.
            Statuses other than 422 are not raised.
        """
        if not records:
            return None

        try:
            new_records = [Record(fields=fields) for fields in records]
        except ValidationError as e:
            raise SerializationError(f"Invalid record fields: {e}") from e

        data = _encode({"records": [r.to_payload() for r in new_records]})
        url = RequestTarget(base, table).url(self.credentials.base_url)

        self.logger.info("Sending %s records to airtable %s", len(new_records), url)
        return self.executor.execute("POST", url, body=data)

    def update_records(self, base: str, table: str, records: Sequence[Record]) -> List[httpx.Response]:
        """
        Update records in sequential batches of ``settings.batch_size``.

        The first failing batch aborts the run. Batches already sent stay
        applied; callers must re-read the table to see what changed.

        Returns:
            One response per batch, in order.

        Plain ``{"id", "fields"}`` dicts are accepted alongside Records.
        """
        try:
            records = [r if isinstance(r, Record) else Record.model_validate(r) for r in records]
        except ValidationError as e:
            raise SerializationError(f"Invalid records: {e}") from e

        missing = [i for i, r in enumerate(records) if not r.id]
        if missing:
            raise SerializationError(f"Records at index {missing} have no id; create them instead of updating")

        url = RequestTarget(base, table).url(self.credentials.base_url)
        batches = plan_batches(records, self.settings.batch_size)

        responses = []
        for i, batch in enumerate(batches):
            data = _encode({"records": [r.to_payload() for r in batch]})
            self.logger.info("Updating batch %s/%s (%s records) in %s", i + 1, len(batches), len(batch), url)
            responses.append(self.executor.execute("PATCH", url, body=data))
        return responses
