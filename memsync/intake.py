"""Event intake: turns host membership events into member-record deliveries."""

import json
from typing import Optional, Protocol, Sequence

from memsync.classifier import classify, member_status
from memsync.config import SyncConfig
from memsync.delivery import DeliveryClient
from memsync.mapper import build_payload
from memsync.models import DeliveryOutcome, DeliveryResult, Identifier, MembershipEvent, UserRecord
from memsync.sources import SourceError
from memsync.sync_log import SyncLog


class MembershipSource(Protocol):
    """What the pipeline needs from the host membership system."""

    def get_user(self, user_id: Identifier) -> Optional[UserRecord]: ...

    def get_user_levels(self, user_id: Identifier) -> list[Identifier]: ...

    def get_level_label(self, level_id: Identifier) -> Optional[str]: ...


def _dropped(outcome: DeliveryOutcome, error: str) -> DeliveryResult:
    return DeliveryResult(outcome=outcome, attempts=0, error=error)


class MembershipSyncHandler:
    """Listener for the host's two lifecycle events.

    ``first_activation`` is the only path that delivers; ``payment_completed``
    is observed and logged so that a completed payment never sends a second
    record for the same activation. No failure is raised to the caller.
    """

    def __init__(
        self,
        source: MembershipSource,
        delivery: DeliveryClient,
        sync_log: SyncLog,
        config: Optional[SyncConfig] = None,
    ):
        self.source = source
        self.delivery = delivery
        self.sync_log = sync_log
        self.config = config or delivery.config

    def first_activation(
        self,
        user_id: Identifier,
        level_ids: Optional[Sequence[Identifier]] = None,
    ) -> DeliveryResult:
        try:
            user = self.source.get_user(user_id)
            if user is not None and level_ids is None:
                level_ids = self.source.get_user_levels(user_id)
        except SourceError as e:
            self.sync_log.error(f"Membership lookup failed for user {user_id}: {e}")
            return _dropped(DeliveryOutcome.source_error, str(e))

        if user is None:
            self.sync_log.error(f"User not found for ID: {user_id}")
            return _dropped(DeliveryOutcome.user_not_found, f"user {user_id} not found")

        level_ids = list(level_ids or [])
        try:
            subscription_type = classify(level_ids, self.source.get_level_label)
        except SourceError as e:
            self.sync_log.error(f"Level lookup failed for user {user_id}: {e}")
            return _dropped(DeliveryOutcome.source_error, str(e))

        payload = build_payload(
            user,
            subscription_type,
            member_status(level_ids),
            program_id=self.config.program_id,
            organization_id=self.config.organization_id,
        )
        self.sync_log.info(f"Syncing first-time activated user {user_id}: {json.dumps(payload.to_wire())}")
        return self.delivery.deliver(payload)

    def handle_event(self, event: MembershipEvent) -> DeliveryResult:
        return self.first_activation(event.user_id, event.membership_level_ids)

    def payment_completed(self, payment_data: dict) -> bool:
        """Return True when the payment is complete and a first-activation sync is expected."""
        status = (payment_data or {}).get("status")
        user_id = (payment_data or {}).get("user_id")
        if user_id is None:
            user_id = "-"
        if status == "completed":
            self.sync_log.info(f"Payment completed for user {user_id}; sync follows first-time activation")
            return True
        self.sync_log.info(f"Payment event for user {user_id} with status {status!r}; no sync")
        return False
