"""Root-cause reports for failed CloudFormation deployments."""
from stack_diagnoser.diagnoser import FailureDiagnoser
from stack_diagnoser.models import DiagnosisReport, ResourceEvent, StackDescription, StackStatus, is_failure_status

__all__ = [
    "DiagnosisReport",
    "FailureDiagnoser",
    "ResourceEvent",
    "StackDescription",
    "StackStatus",
    "is_failure_status",
]

__version__ = "0.1.0"
