"""
Stack naming convention used by the deployment workflow.

The environment name is the GitHub repository with "/" replaced by "-"
('Octocat/Hello-World' -> 'Octocat-Hello-World'), and each stack is named
'<environment>-<component>', e.g. 'Octocat-Hello-World-infra'.
"""
from typing import List

INFRASTRUCTURE_COMPONENT = "infra"
WEB_APP_COMPONENT = "webapp"
DEFAULT_COMPONENTS = [INFRASTRUCTURE_COMPONENT, WEB_APP_COMPONENT]


def environment_name(repository: str) -> str:
    if not repository or not repository.strip():
        raise ValueError("repository must be a non-empty 'owner/name' string")
    return repository.strip().replace("/", "-")


def stack_name(environment: str, component: str) -> str:
    if not component or not component.strip():
        raise ValueError("component must be a non-empty string")
    return f"{environment}-{component.strip()}"


def stack_names_for_repository(repository: str, components: List[str]) -> List[str]:
    environment = environment_name(repository)
    return [stack_name(environment, component) for component in components]
