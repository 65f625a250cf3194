"""Subscription type and member status derivation from membership levels."""

from typing import Callable, Optional, Sequence

from memsync.models import Identifier, MemberStatus, SubscriptionType

LabelLookup = Callable[[Identifier], Optional[str]]


def classify(level_ids: Sequence[Identifier], get_level_label: LabelLookup) -> SubscriptionType:
    """Return the subscription type of the first level whose label qualifies.

    Levels are examined in the given order; for each one ``yearly`` is checked
    before ``monthly`` (case-insensitive substring). A later level never
    overrides an earlier match.
    """
    for level_id in level_ids:
        label = get_level_label(level_id)
        if not label:
            continue
        lowered = label.lower()
        if "yearly" in lowered:
            return SubscriptionType.yearly
        if "monthly" in lowered:
            return SubscriptionType.monthly
    return SubscriptionType.unknown


def member_status(level_ids: Sequence[Identifier]) -> MemberStatus:
    return MemberStatus.open if level_ids else MemberStatus.suspend
