from tests.fixtures.cloudformation_fixtures import aws_credentials, stubbed_cloudformation  # noqa: F401
