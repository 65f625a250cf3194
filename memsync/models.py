"""Data model shared by the sync pipeline and the HTTP service."""

from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field

Identifier = Union[int, str]

RECORD_TYPE = "MEM_SYN"


class MemberStatus(str, Enum):
    open = "OPEN"
    suspend = "SUSPEND"


class SubscriptionType(str, Enum):
    yearly = "YEARLY"
    monthly = "MONTHLY"
    unknown = "UNKNOWN"


class DeliveryOutcome(str, Enum):
    success = "success"
    exhausted_retries = "exhausted_retries"
    transport_failure = "transport_failure"
    user_not_found = "user_not_found"
    source_error = "source_error"


class UserRecord(BaseModel):
    id: Identifier
    login: Optional[str] = ""
    first_name: Optional[str] = ""
    last_name: Optional[str] = ""
    email: Optional[str] = ""


class LevelMetadata(BaseModel):
    id: Identifier
    label: Optional[str] = ""


class MembershipEvent(BaseModel):
    user_id: Identifier = Field(..., examples=[42])
    membership_level_ids: Optional[list[Identifier]] = Field(
        default=None,
        description="If omitted, the levels are looked up from the host",
        examples=[["lvl_yearly"]],
    )


class PaymentCompleted(BaseModel):
    status: str = Field(..., examples=["completed"])
    user_id: Optional[Identifier] = None


class SyncPayload(BaseModel):
    """One member record as the import API expects it.

    Field order is the wire order.
    """

    model_config = ConfigDict(frozen=True)

    record_identifier: str
    record_type: str = RECORD_TYPE
    program_customer_identifier: str
    member_customer_identifier: str
    organization_customer_identifier: str
    previous_member_customer_identifier: Optional[str] = None
    member_status: MemberStatus
    subscription_type: SubscriptionType
    full_name: str
    first_name: str
    last_name: str
    email_address: str

    def to_wire(self) -> dict:
        return self.model_dump(mode="json")


class DeliveryResult(BaseModel):
    outcome: DeliveryOutcome
    attempts: int
    record_identifier: Optional[str] = None
    status_code: Optional[int] = None
    body: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.outcome == DeliveryOutcome.success
