"""
CloudFormation stack and event views used by the failure diagnoser.

All types here are read-only snapshots of state owned by CloudFormation.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Union

from stack_diagnoser.exceptions import MissingTimestampError

logger = logging.getLogger(__name__)

ISO_FORMAT = "%Y-%m-%dT%H:%M:%SZ"
FAILURE_MARKERS = ("FAILED", "ROLLBACK")


class StackStatus(Enum):
    """Every stack status CloudFormation reports, plus a not-found sentinel."""
    CREATE_IN_PROGRESS = "CREATE_IN_PROGRESS"
    CREATE_FAILED = "CREATE_FAILED"
    CREATE_COMPLETE = "CREATE_COMPLETE"
    ROLLBACK_IN_PROGRESS = "ROLLBACK_IN_PROGRESS"
    ROLLBACK_FAILED = "ROLLBACK_FAILED"
    ROLLBACK_COMPLETE = "ROLLBACK_COMPLETE"
    DELETE_IN_PROGRESS = "DELETE_IN_PROGRESS"
    DELETE_FAILED = "DELETE_FAILED"
    DELETE_COMPLETE = "DELETE_COMPLETE"
    UPDATE_IN_PROGRESS = "UPDATE_IN_PROGRESS"
    UPDATE_COMPLETE_CLEANUP_IN_PROGRESS = "UPDATE_COMPLETE_CLEANUP_IN_PROGRESS"
    UPDATE_COMPLETE = "UPDATE_COMPLETE"
    UPDATE_FAILED = "UPDATE_FAILED"
    UPDATE_ROLLBACK_IN_PROGRESS = "UPDATE_ROLLBACK_IN_PROGRESS"
    UPDATE_ROLLBACK_FAILED = "UPDATE_ROLLBACK_FAILED"
    UPDATE_ROLLBACK_COMPLETE_CLEANUP_IN_PROGRESS = "UPDATE_ROLLBACK_COMPLETE_CLEANUP_IN_PROGRESS"
    UPDATE_ROLLBACK_COMPLETE = "UPDATE_ROLLBACK_COMPLETE"
    REVIEW_IN_PROGRESS = "REVIEW_IN_PROGRESS"
    IMPORT_IN_PROGRESS = "IMPORT_IN_PROGRESS"
    IMPORT_COMPLETE = "IMPORT_COMPLETE"
    IMPORT_ROLLBACK_IN_PROGRESS = "IMPORT_ROLLBACK_IN_PROGRESS"
    IMPORT_ROLLBACK_FAILED = "IMPORT_ROLLBACK_FAILED"
    IMPORT_ROLLBACK_COMPLETE = "IMPORT_ROLLBACK_COMPLETE"

    # Not a CloudFormation value: the stack could not be described
    STACK_NOT_FOUND = "STACK_NOT_FOUND"

    @classmethod
    def parse(cls, value: str) -> Union["StackStatus", str]:
        """Map an API status string to a member, keeping unknown values as strings."""
        try:
            return cls(value)
        except ValueError:
            logger.warning(f"Unrecognised stack status from CloudFormation: {value}")
            return value


class ResourceStatus(Enum):
    """Resource-level statuses that mark the cause of a failed deployment."""
    CREATE_FAILED = "CREATE_FAILED"
    UPDATE_FAILED = "UPDATE_FAILED"


def _status_value(status: Union[StackStatus, str]) -> str:
    return status.value if isinstance(status, StackStatus) else str(status)


def _matches_failure(value: str) -> bool:
    return any(marker in value for marker in FAILURE_MARKERS)


FAILURE_STATUSES: FrozenSet[StackStatus] = frozenset(
    status for status in StackStatus if _matches_failure(status.value)
)

ROOT_CAUSE_STATUSES: FrozenSet[str] = frozenset(status.value for status in ResourceStatus)


def is_failure_status(status: Union[StackStatus, str]) -> bool:
    """Return True when a stack status means the deployment failed or rolled back.

    Known members are looked up in FAILURE_STATUSES; strings this release does
    not know are classified by the same FAILED/ROLLBACK substring rule.
    """
    if isinstance(status, StackStatus):
        return status in FAILURE_STATUSES

    parsed = StackStatus.parse(status) if status else status
    if isinstance(parsed, StackStatus):
        return parsed in FAILURE_STATUSES
    return _matches_failure(str(status))


def to_utc(value: datetime) -> datetime:
    """Normalise a timestamp to tz-aware UTC; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    return to_utc(value).strftime(ISO_FORMAT)


@dataclass(frozen=True)
class ResourceEvent:
    """A single StackEvent record."""
    timestamp: datetime
    logical_resource_id: str
    resource_type: str
    resource_status: str
    resource_status_reason: str = ""
    physical_resource_id: Optional[str] = None
    event_id: Optional[str] = None

    @classmethod
    def from_api(cls, event: Dict[str, Any]) -> "ResourceEvent":
        """Build an event from a DescribeStackEvents entry."""
        return cls(
            timestamp=to_utc(event["Timestamp"]),
            logical_resource_id=event.get("LogicalResourceId", ""),
            resource_type=event.get("ResourceType", ""),
            resource_status=event.get("ResourceStatus", ""),
            resource_status_reason=event.get("ResourceStatusReason", ""),
            physical_resource_id=event.get("PhysicalResourceId"),
            event_id=event.get("EventId"),
        )

    @property
    def is_root_cause(self) -> bool:
        return self.resource_status in ROOT_CAUSE_STATUSES

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": format_timestamp(self.timestamp),
            "logical_resource_id": self.logical_resource_id,
            "resource_type": self.resource_type,
            "resource_status": self.resource_status,
            "resource_status_reason": self.resource_status_reason,
            "physical_resource_id": self.physical_resource_id,
            "event_id": self.event_id,
        }


@dataclass(frozen=True)
class StackDescription:
    """Current status and timestamps of a stack."""
    name: str
    status: Union[StackStatus, str]
    creation_time: Optional[datetime] = None
    last_updated_time: Optional[datetime] = None
    status_reason: Optional[str] = None

    @classmethod
    def from_api(cls, stack: Dict[str, Any]) -> "StackDescription":
        """Build a description from a DescribeStacks entry."""
        creation_time = stack.get("CreationTime")
        last_updated_time = stack.get("LastUpdatedTime")
        return cls(
            name=stack["StackName"],
            status=StackStatus.parse(stack["StackStatus"]),
            creation_time=to_utc(creation_time) if creation_time else None,
            last_updated_time=to_utc(last_updated_time) if last_updated_time else None,
            status_reason=stack.get("StackStatusReason"),
        )

    @property
    def reference_time(self) -> datetime:
        """Last status transition: last update, else creation."""
        if self.last_updated_time is not None:
            return self.last_updated_time
        if self.creation_time is not None:
            return self.creation_time
        raise MissingTimestampError(
            f"Stack {self.name} has neither LastUpdatedTime nor CreationTime"
        )


@dataclass(frozen=True)
class TimeWindow:
    """Closed interval [start, end] in UTC."""
    start: datetime
    end: datetime

    @classmethod
    def before(cls, reference: datetime, buffer_seconds: float, end: datetime) -> "TimeWindow":
        return cls(
            start=to_utc(reference) - timedelta(seconds=buffer_seconds),
            end=to_utc(end),
        )

    def contains(self, value: datetime) -> bool:
        """True when value is at or after the window start; end is not a bound."""
        return self.start <= to_utc(value)

    def to_dict(self) -> Dict[str, str]:
        return {"start": format_timestamp(self.start), "end": format_timestamp(self.end)}


@dataclass
class DiagnosisReport:
    """Outcome of diagnosing one stack."""
    stack_name: str
    status: Union[StackStatus, str]
    failure_detected: bool
    queried_at: datetime
    status_reason: Optional[str] = None
    window: Optional[TimeWindow] = None
    events: List[ResourceEvent] = field(default_factory=list)

    @property
    def status_value(self) -> str:
        return _status_value(self.status)

    @property
    def stack_found(self) -> bool:
        return self.status != StackStatus.STACK_NOT_FOUND

    @property
    def exit_code(self) -> int:
        return 1 if self.failure_detected else 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stack_name": self.stack_name,
            "status": self.status_value,
            "status_reason": self.status_reason,
            "failure_detected": self.failure_detected,
            "queried_at": format_timestamp(self.queried_at),
            "window": self.window.to_dict() if self.window else None,
            "events": [event.to_dict() for event in self.events],
        }
