"""Build the import-API member record from a host user."""

from memsync.models import MemberStatus, SubscriptionType, SyncPayload, UserRecord
from memsync.sanitize import normalize_email, sanitize_text_field

# Same value for both identifiers on the current program; SyncConfig can override per deployment.
PROGRAM_CUSTOMER_IDENTIFIER = "204200"
ORGANIZATION_CUSTOMER_IDENTIFIER = "204200"


def build_payload(
    user: UserRecord,
    subscription_type: SubscriptionType,
    status: MemberStatus,
    program_id: str = PROGRAM_CUSTOMER_IDENTIFIER,
    organization_id: str = ORGANIZATION_CUSTOMER_IDENTIFIER,
) -> SyncPayload:
    first_name = user.first_name or ""
    last_name = user.last_name or ""
    return SyncPayload(
        record_identifier="USER_" + sanitize_text_field(user.login),
        program_customer_identifier=program_id,
        member_customer_identifier=f"TDC_{user.id}".upper(),
        organization_customer_identifier=organization_id,
        previous_member_customer_identifier=None,
        member_status=status,
        subscription_type=subscription_type,
        full_name=sanitize_text_field(f"{first_name} {last_name}".strip()),
        first_name=sanitize_text_field(first_name),
        last_name=sanitize_text_field(last_name),
        email_address=normalize_email(user.email),
    )
