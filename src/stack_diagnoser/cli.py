# cli.py
import logging

import click
from botocore.exceptions import BotoCoreError, ClientError

from stack_diagnoser.aws.clients import AWSClientFactory
from stack_diagnoser.aws.cloudformation import CloudFormationQueryClient
from stack_diagnoser.config.settings import Settings, get_settings
from stack_diagnoser.diagnoser import FailureDiagnoser
from stack_diagnoser.exceptions import DiagnosisError
from stack_diagnoser.logging_config import configure_logging
from stack_diagnoser.naming import stack_name as build_stack_name
from stack_diagnoser.naming import environment_name, stack_names_for_repository
from stack_diagnoser.report import OUTPUT_FORMATS, emit_report

logger = logging.getLogger(__name__)


def build_diagnoser(settings: Settings, buffer_seconds: int) -> FailureDiagnoser:
    """Wire settings -> boto3 client -> query client -> diagnoser."""
    factory = AWSClientFactory(settings)
    query_client = CloudFormationQueryClient.from_factory(factory)
    return FailureDiagnoser(query_client, buffer_seconds=buffer_seconds)


@click.group()
@click.option("--log-level", default=None, help="Override LOG_LEVEL")
@click.pass_context
def cli(ctx, log_level):
    """Diagnose failed CloudFormation deployments"""
    settings = get_settings()
    configure_logging(log_level or settings.log_level)
    ctx.obj = settings


@cli.command()
@click.argument("stack_names", nargs=-1)
@click.option("--repository", default=None,
              help="GitHub repository (owner/name) used to derive stack names; defaults to $GITHUB_REPOSITORY")
@click.option("--component", "components", multiple=True,
              help="Stack component suffix, e.g. infra or webapp (repeatable)")
@click.option("--region", default=None, help="AWS region override")
@click.option("--profile", default=None, help="AWS named profile override")
@click.option("--buffer-seconds", type=click.IntRange(min=0), default=None,
              help="Seconds before the last status change to include events from")
@click.option("--output", "output_format", type=click.Choice(OUTPUT_FORMATS), default=None,
              help="Report format")
@click.option("--max-width", type=click.IntRange(min=4), default=None,
              help="Truncate table columns to this width")
@click.option("--group/--no-group", default=None,
              help="Wrap failure reports in GitHub Actions ::group:: markers")
@click.option("--fail/--no-fail", default=True,
              help="Exit non-zero when a stack is in a failed or rollback state")
@click.pass_context
def diagnose(ctx, stack_names, repository, components, region, profile, buffer_seconds,
             output_format, max_width, group, fail):
    """Report the resources that caused a stack deployment to fail"""
    settings: Settings = ctx.obj or get_settings()

    overrides = {}
    if region:
        overrides['aws_region'] = region
    if profile:
        overrides['aws_profile'] = profile
    if overrides:
        settings = settings.model_copy(update=overrides)

    names = list(stack_names)
    if not names:
        repository = repository or settings.github_repository
        if not repository or not components:
            raise click.UsageError(
                "Pass STACK_NAMES, or --repository (or $GITHUB_REPOSITORY) with at least one --component"
            )
        try:
            names = stack_names_for_repository(repository, list(components))
        except ValueError as e:
            raise click.BadParameter(str(e), param_hint="--repository/--component")

    blank = [name for name in names if not name.strip()]
    if blank:
        raise click.BadParameter("stack names must be non-empty", param_hint="STACK_NAMES")

    buffer_seconds = settings.window_buffer_seconds if buffer_seconds is None else buffer_seconds
    output_format = output_format or settings.output_format
    group = settings.github_actions if group is None else group

    diagnoser = build_diagnoser(settings, buffer_seconds)

    exit_code = 0
    for name in names:
        try:
            report = diagnoser.diagnose(name)
        except (ClientError, BotoCoreError, DiagnosisError) as e:
            logger.error(f"Diagnosis of stack {name} failed: {e}")
            raise click.ClickException(f"Could not diagnose stack {name}: {e}")

        emit_report(report, fmt=output_format, group=group, echo=click.echo, max_width=max_width)
        exit_code = max(exit_code, report.exit_code)

    if fail and exit_code:
        ctx.exit(exit_code)


@cli.command("stack-name")
@click.option("--repository", required=True, help="GitHub repository (owner/name)")
@click.option("--component", required=True, help="Stack component suffix, e.g. infra")
def stack_name(repository, component):
    """Print the stack name the deployment workflow uses"""
    try:
        click.echo(build_stack_name(environment_name(repository), component))
    except ValueError as e:
        raise click.BadParameter(str(e))


@cli.command()
@click.pass_obj
def show_config(settings):
    """Show current configuration"""
    settings = settings or get_settings()

    click.echo("Current Configuration:")
    for key, value in settings.get_display_dict().items():
        click.echo(f"  {key}: {value}")


def main():
    cli()


if __name__ == "__main__":
    main()
