"""
Unit Tests for CloudFormation status and event queries.

Testing Tools:
- botocore Stubber: canned DescribeStacks / DescribeStackEvents responses
- moto mock_aws: an in-memory CloudFormation for end-to-end checks
"""

import json
from datetime import timedelta

import boto3
import pytest
from botocore.exceptions import ClientError
from moto import mock_aws

from stack_diagnoser.aws.cloudformation import CloudFormationQueryClient, is_stack_not_found
from stack_diagnoser.diagnoser import FailureDiagnoser
from stack_diagnoser.models import StackStatus
from tests.fixtures.cloudformation_fixtures import STACK_NAME, T, api_event, at


class TestDescribeStack:

    def test_returns_stack_description(self, stubbed_cloudformation):
        client, stubber = stubbed_cloudformation
        stubber.add_response(
            "describe_stacks",
            {"Stacks": [{
                "StackName": STACK_NAME,
                "CreationTime": at(-3600),
                "LastUpdatedTime": T,
                "StackStatus": "UPDATE_ROLLBACK_FAILED",
                "StackStatusReason": "The following resource(s) failed to update: [Service]",
            }]},
            {"StackName": STACK_NAME},
        )

        stack = CloudFormationQueryClient(client).describe_stack(STACK_NAME)

        assert stack.name == STACK_NAME
        assert stack.status is StackStatus.UPDATE_ROLLBACK_FAILED
        assert stack.reference_time == T
        assert "Service" in stack.status_reason

    def test_missing_stack_returns_none(self, stubbed_cloudformation):
        client, stubber = stubbed_cloudformation
        stubber.add_client_error(
            "describe_stacks",
            service_error_code="ValidationError",
            service_message=f"Stack with id {STACK_NAME} does not exist",
            http_status_code=400,
            expected_params={"StackName": STACK_NAME},
        )

        assert CloudFormationQueryClient(client).describe_stack(STACK_NAME) is None

    def test_other_validation_errors_propagate(self, stubbed_cloudformation):
        client, stubber = stubbed_cloudformation
        stubber.add_client_error(
            "describe_stacks",
            service_error_code="ValidationError",
            service_message="1 validation error detected",
            http_status_code=400,
            expected_params={"StackName": STACK_NAME},
        )

        with pytest.raises(ClientError):
            CloudFormationQueryClient(client).describe_stack(STACK_NAME)

    def test_access_denied_propagates(self, stubbed_cloudformation):
        client, stubber = stubbed_cloudformation
        stubber.add_client_error(
            "describe_stacks",
            service_error_code="AccessDenied",
            service_message="not authorized to perform: cloudformation:DescribeStacks",
            http_status_code=403,
        )

        with pytest.raises(ClientError) as exc_info:
            CloudFormationQueryClient(client).describe_stack(STACK_NAME)
        assert not is_stack_not_found(exc_info.value)


class TestListStackEvents:

    def test_follows_pages(self, stubbed_cloudformation):
        client, stubber = stubbed_cloudformation
        stubber.add_response(
            "describe_stack_events",
            {"StackEvents": [api_event(-10, "UPDATE_FAILED", "Service")], "NextToken": "page-2"},
            {"StackName": STACK_NAME},
        )
        stubber.add_response(
            "describe_stack_events",
            {"StackEvents": [api_event(-100, "CREATE_FAILED", "LoadBalancer")]},
            {"StackName": STACK_NAME, "NextToken": "page-2"},
        )

        events = CloudFormationQueryClient(client).list_stack_events(STACK_NAME)

        assert [e.logical_resource_id for e in events] == ["Service", "LoadBalancer"]
        assert events[0].physical_resource_id == "physical-Service"

    def test_stops_paging_once_past_cutoff(self, stubbed_cloudformation):
        client, stubber = stubbed_cloudformation
        stubber.add_response(
            "describe_stack_events",
            {
                "StackEvents": [
                    api_event(-10, "UPDATE_FAILED", "Service"),
                    api_event(-900, "CREATE_COMPLETE", "Cluster"),
                ],
                "NextToken": "page-2",
            },
            {"StackName": STACK_NAME},
        )

        events = CloudFormationQueryClient(client).list_stack_events(
            STACK_NAME, since=T - timedelta(seconds=300)
        )

        # No second page was requested; the stubber would raise otherwise
        assert len(events) == 2


class TestAgainstMotoCloudFormation:

    TEMPLATE = json.dumps({
        "AWSTemplateFormatVersion": "2010-09-09",
        "Resources": {"Queue": {"Type": "AWS::SQS::Queue"}},
    })

    def test_healthy_stack_reports_no_failure(self, aws_credentials):
        with mock_aws():
            cloudformation = boto3.client("cloudformation", region_name="us-east-2")
            cloudformation.create_stack(StackName=STACK_NAME, TemplateBody=self.TEMPLATE)

            report = FailureDiagnoser(CloudFormationQueryClient(cloudformation)).diagnose(STACK_NAME)

        assert report.status is StackStatus.CREATE_COMPLETE
        assert report.failure_detected is False

    def test_unknown_stack_reports_not_found(self, aws_credentials):
        with mock_aws():
            cloudformation = boto3.client("cloudformation", region_name="us-east-2")

            report = FailureDiagnoser(CloudFormationQueryClient(cloudformation)).diagnose("no-such-stack")

        assert report.status is StackStatus.STACK_NOT_FOUND
        assert report.exit_code == 0

    def test_events_are_readable(self, aws_credentials):
        with mock_aws():
            cloudformation = boto3.client("cloudformation", region_name="us-east-2")
            cloudformation.create_stack(StackName=STACK_NAME, TemplateBody=self.TEMPLATE)

            events = CloudFormationQueryClient(cloudformation).list_stack_events(STACK_NAME)

        assert events
        assert all(e.timestamp.tzinfo is not None for e in events)
        assert STACK_NAME in {e.logical_resource_id for e in events}
