"""
CloudFormation status and event-history queries.

Thin read-only layer over DescribeStacks and DescribeStackEvents that returns
the diagnoser's model types.
"""
import logging
from datetime import datetime
from typing import Any, List, Optional

from botocore.exceptions import ClientError

from stack_diagnoser.models import ResourceEvent, StackDescription, to_utc
from stack_diagnoser.utils.decorators import log_aws_call

logger = logging.getLogger(__name__)


def is_stack_not_found(error: ClientError) -> bool:
    """CloudFormation reports a missing stack as a ValidationError."""
    details = error.response.get('Error', {})
    return (details.get('Code') == 'ValidationError' and
            'does not exist' in details.get('Message', ''))


class CloudFormationQueryClient:
    """Status and event queries for a single CloudFormation client."""

    def __init__(self, cloudformation_client: Any):
        self.client = cloudformation_client

    @classmethod
    def from_factory(cls, factory) -> "CloudFormationQueryClient":
        return cls(factory.get_cloudformation_client())

    @log_aws_call("DescribeStacks")
    def describe_stack(self, stack_name: str) -> Optional[StackDescription]:
        """
        Get the current status of a stack.

        Returns:
            StackDescription, or None if the stack does not exist
        """
        try:
            response = self.client.describe_stacks(StackName=stack_name)
        except ClientError as e:
            if is_stack_not_found(e):
                logger.debug(f"Stack {stack_name} does not exist")
                return None
            raise

        stacks = response.get('Stacks', [])
        if not stacks:
            return None
        return StackDescription.from_api(stacks[0])

    @log_aws_call("DescribeStackEvents")
    def list_stack_events(self, stack_name: str,
                          since: Optional[datetime] = None) -> List[ResourceEvent]:
        """
        Get resource events for a stack, newest first.

        CloudFormation returns events in reverse chronological order, so when
        `since` is given paging stops after the first page that reaches back
        past it. Events older than `since` on that page are still returned;
        filtering is the caller's job.
        """
        cutoff = to_utc(since) if since is not None else None
        paginator = self.client.get_paginator('describe_stack_events')

        events: List[ResourceEvent] = []
        pages = 0
        for page in paginator.paginate(StackName=stack_name):
            pages += 1
            page_events = [ResourceEvent.from_api(raw) for raw in page.get('StackEvents', [])]
            events.extend(page_events)

            if cutoff is not None and page_events and min(e.timestamp for e in page_events) < cutoff:
                break

        logger.debug(f"Fetched {len(events)} event(s) for {stack_name} in {pages} page(s)")
        return events
