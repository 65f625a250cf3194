"""Membership sync pipeline.

Listens for host membership events and pushes one member record per first
activation to the external import API.
"""

from memsync.classifier import classify, member_status
from memsync.config import SyncConfig, load_config
from memsync.delivery import DeliveryClient
from memsync.intake import MembershipSource, MembershipSyncHandler
from memsync.mapper import build_payload
from memsync.sync_log import SyncLog

__all__ = [
    "classify",
    "member_status",
    "SyncConfig",
    "load_config",
    "DeliveryClient",
    "MembershipSource",
    "MembershipSyncHandler",
    "build_payload",
    "SyncLog",
]
