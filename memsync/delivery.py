"""Outbound delivery of member records to the import API."""

import json
import logging
import time
from typing import Callable, Optional

import httpx

from memsync.config import SyncConfig
from memsync.models import DeliveryOutcome, DeliveryResult, SyncPayload
from memsync.sync_log import SyncLog

logger = logging.getLogger("memsync.delivery")


def build_envelope(payload: SyncPayload) -> dict:
    return {"import": {"members": [payload.to_wire()]}}


class DeliveryClient:
    """POSTs one member record, retrying non-200 responses up to ``max_attempts``.

    Transport errors (connection refused, timeouts, an unparseable endpoint, a
    token that cannot be sent as a header) end the delivery at once without a
    retry. ``sleep`` is called between attempts and can be
    replaced in tests.
    """

    def __init__(
        self,
        config: SyncConfig,
        sync_log: SyncLog,
        transport: Optional[httpx.BaseTransport] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config
        self.sync_log = sync_log
        self._transport = transport
        self._sleep = sleep

    def _headers(self) -> dict[str, str]:
        return {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "Access-Token": self.config.access_token,
        }

    def deliver(self, payload: SyncPayload) -> DeliveryResult:
        body = json.dumps(build_envelope(payload))
        status_code = None
        attempts = 0

        with httpx.Client(timeout=self.config.timeout, transport=self._transport) as client:
            while attempts < self.config.max_attempts:
                if attempts:
                    self._sleep(self.config.retry_delay)
                attempts += 1
                try:
                    resp = client.post(self.config.endpoint, content=body, headers=self._headers())
                # a malformed endpoint or header fails before any byte is sent; same terminal path
                except (httpx.HTTPError, httpx.InvalidURL, UnicodeEncodeError) as e:
                    detail = str(e) or type(e).__name__
                    self.sync_log.error(f"Exception: API Request Failed: {detail}")
                    logger.warning("delivery transport failure: endpoint=%s attempt=%d: %s",
                                   self.config.endpoint, attempts, detail)
                    return DeliveryResult(
                        outcome=DeliveryOutcome.transport_failure,
                        attempts=attempts,
                        record_identifier=payload.record_identifier,
                        error=detail,
                    )

                status_code = resp.status_code
                if status_code != 200:
                    self.sync_log.warning(f"API Response Code: {status_code} | Retrying...")
                    continue

                self.sync_log.success(f"API Sync Success: {resp.text}")
                logger.info("delivery ok: record=%s attempts=%d", payload.record_identifier, attempts)
                return DeliveryResult(
                    outcome=DeliveryOutcome.success,
                    attempts=attempts,
                    record_identifier=payload.record_identifier,
                    status_code=status_code,
                    body=resp.text,
                )

        self.sync_log.error(
            f"API Sync failed after multiple retries for user: {json.dumps(payload.to_wire())}"
        )
        logger.warning("delivery exhausted: record=%s attempts=%d last_status=%s",
                       payload.record_identifier, attempts, status_code)
        return DeliveryResult(
            outcome=DeliveryOutcome.exhausted_retries,
            attempts=attempts,
            record_identifier=payload.record_identifier,
            status_code=status_code,
            error=f"last response code {status_code}",
        )
