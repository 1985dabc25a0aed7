"""
Deployment failure diagnosis for CloudFormation stacks.

Given a stack that has just failed to converge, finds the resources that
caused the failure within a short window before the stack's last status
transition and returns them oldest first. The earliest failing resource is
usually the root cause of the cascade that follows it.
"""
import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional, Protocol

from stack_diagnoser.models import (
    DiagnosisReport,
    ResourceEvent,
    StackDescription,
    StackStatus,
    TimeWindow,
    format_timestamp,
    is_failure_status,
)

logger = logging.getLogger(__name__)

DEFAULT_BUFFER_SECONDS = 300


class StackQueryClient(Protocol):
    """Status and event-history queries the diagnoser depends on."""

    def describe_stack(self, stack_name: str) -> Optional[StackDescription]:
        ...

    def list_stack_events(self, stack_name: str,
                          since: Optional[datetime] = None) -> List[ResourceEvent]:
        ...


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class FailureDiagnoser:
    """Turns an opaque stack failure into an ordered list of failed resource events."""

    def __init__(self, query_client: StackQueryClient,
                 buffer_seconds: float = DEFAULT_BUFFER_SECONDS,
                 clock: Callable[[], datetime] = utc_now):
        if buffer_seconds < 0:
            raise ValueError(f"buffer_seconds must be non-negative, got {buffer_seconds}")
        self.query_client = query_client
        self.buffer_seconds = buffer_seconds
        self.clock = clock

    def diagnose(self, stack_name: str) -> DiagnosisReport:
        """Diagnose a single stack.

        Performs one status query and, only when the stack is in a failed or
        rollback state, one event-history query. AWS errors propagate without
        retry; a missing stack is reported, not raised.

        Args:
            stack_name: Name of the stack the caller believes has failed

        Returns:
            DiagnosisReport for the stack
        """
        if not stack_name or not stack_name.strip():
            raise ValueError("stack_name must be a non-empty string")

        logger.info(f"Checking status for stack: {stack_name}")
        stack = self.query_client.describe_stack(stack_name)
        queried_at = self.clock()

        if stack is None:
            logger.warning(f"Stack {stack_name} not found")
            return DiagnosisReport(
                stack_name=stack_name,
                status=StackStatus.STACK_NOT_FOUND,
                failure_detected=False,
                queried_at=queried_at,
            )

        status_value = stack.status.value if isinstance(stack.status, StackStatus) else stack.status
        logger.info(f"Stack status: {status_value}")

        if not is_failure_status(stack.status):
            logger.info(f"No failure detected for stack {stack_name}")
            return DiagnosisReport(
                stack_name=stack_name,
                status=stack.status,
                status_reason=stack.status_reason,
                failure_detected=False,
                queried_at=queried_at,
            )

        reference = stack.reference_time
        window = TimeWindow.before(reference, self.buffer_seconds, queried_at)
        logger.info(
            f"Stack last updated: {format_timestamp(reference)}; "
            f"collecting failed resources since {format_timestamp(window.start)}"
        )

        events = self.query_client.list_stack_events(stack_name, since=window.start)
        # No upper bound: window.end is the local clock and can trail event timestamps
        failed = sorted(
            (event for event in events if event.is_root_cause and window.contains(event.timestamp)),
            key=lambda event: event.timestamp,
        )
        logger.info(f"Found {len(failed)} failed resource event(s) for stack {stack_name}")

        return DiagnosisReport(
            stack_name=stack_name,
            status=stack.status,
            status_reason=stack.status_reason,
            failure_detected=True,
            queried_at=queried_at,
            window=window,
            events=failed,
        )

    def diagnose_all(self, stack_names: List[str]) -> List[DiagnosisReport]:
        """Diagnose several independent stacks in order."""
        return [self.diagnose(name) for name in stack_names]
