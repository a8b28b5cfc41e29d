"""Command line interface for managing the aixcl stack."""

import click

import config
from docker_service import (
    clean_stack,
    docker_clean,
    get_cleanup_preview,
    get_stats,
    get_status,
    restart_services,
    show_logs,
    start_services,
    stop_services,
)
from utils import configure_logging, handle_exceptions


def _human_bytes(value):
    value = float(value or 0)
    for unit in ("B", "KiB", "MiB", "GiB"):
        if value < 1024:
            return f"{value:.1f}{unit}"
        value /= 1024
    return f"{value:.1f}TiB"


def _echo_diagnostic(text):
    for line in (text or "").splitlines():
        click.echo(f"      {line}")


def _echo_results(results):
    for name, result in results.items():
        marker = "OK" if result.success else "FAIL"
        suffix = f" (probe error: {result.error})" if result.error else ""
        click.echo(f"  {name:<14} {marker}{suffix}")
        if result.diagnostic:
            _echo_diagnostic(result.diagnostic)


def _echo_readiness(report):
    if report.overall:
        click.echo(f"All services are ready ({report.rounds} check round(s)).")
        return
    if report.cancelled:
        click.echo("Readiness check cancelled.")
    else:
        click.echo(f"Services did not become ready after {report.rounds} attempt(s).")
    _echo_results(report.results)


@click.group(invoke_without_command=True)
@click.option(
    "--compose-file",
    default=None,
    help="Compose file for the stack (defaults to AIXCL_COMPOSE_FILE).",
)
@click.option("--log-level", default=config.LOG_LEVEL, show_default=True)
@click.option(
    "--json-logs/--console-logs",
    default=config.LOG_FORMAT == "json",
    help="Render log events as JSON on stderr.",
)
@click.pass_context
def cli(ctx, compose_file, log_level, json_logs):
    """Manage the local AI stack: ollama, open-webui, postgres, pgadmin and watchtower."""
    configure_logging(log_level, json_logs)
    ctx.ensure_object(dict)
    ctx.obj["compose_kwargs"] = {"compose_file": compose_file} if compose_file else {}
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        ctx.exit(1)


@cli.command()
@click.option("--attempts", type=click.IntRange(min=1), default=None, help="Readiness check rounds.")
@click.option("--interval", type=click.FloatRange(min=0), default=None, help="Seconds between rounds.")
@click.pass_context
@handle_exceptions
def start(ctx, attempts, interval):
    """Start the stack and wait until it is ready."""
    result = start_services(
        max_attempts=attempts,
        interval=interval,
        compose_kwargs=ctx.obj["compose_kwargs"],
    )
    if result["already_running"]:
        click.echo("Services are already running.")
    _echo_readiness(result["report"])
    if not result["ready"]:
        ctx.exit(1)


@cli.command()
@click.option("--timeout", type=click.IntRange(min=0), default=None, help="Graceful stop timeout in seconds.")
@click.pass_context
@handle_exceptions
def stop(ctx, timeout):
    """Stop the stack."""
    result = stop_services(timeout=timeout, compose_kwargs=ctx.obj["compose_kwargs"])
    if not result["graceful"]:
        click.echo("Graceful shutdown failed; force-stopped: " + (", ".join(result["forced"]) or "none"))
    for error in result["errors"]:
        click.echo(f"  error: {error}", err=True)
    if result["still_running"]:
        click.echo("Still running: " + ", ".join(result["still_running"]))
        ctx.exit(1)
    click.echo("Services stopped.")


@cli.command()
@click.option("--attempts", type=click.IntRange(min=1), default=None, help="Readiness check rounds.")
@click.option("--interval", type=click.FloatRange(min=0), default=None, help="Seconds between rounds.")
@click.pass_context
@handle_exceptions
def restart(ctx, attempts, interval):
    """Stop and start the stack."""
    result = restart_services(
        max_attempts=attempts,
        interval=interval,
        compose_kwargs=ctx.obj["compose_kwargs"],
    )
    if result["stop"]["still_running"]:
        click.echo("Still running after stop: " + ", ".join(result["stop"]["still_running"]))
    _echo_readiness(result["start"]["report"])
    if not result["start"]["ready"]:
        ctx.exit(1)


@cli.command()
@click.argument("services", nargs=-1)
@click.option("--follow/--no-follow", default=True, show_default=True)
@click.option("--tail", default="100", show_default=True, help='Lines per service, or "all".')
@click.pass_context
@handle_exceptions
def logs(ctx, services, follow, tail):
    """Show logs for SERVICES (all services when none are given)."""
    show_logs(services, follow=follow, tail=tail, compose_kwargs=ctx.obj["compose_kwargs"])


@cli.command()
@click.option("--volumes", is_flag=True, help="Also remove the stack's named volumes (model and database data).")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation.")
@click.pass_context
@handle_exceptions
def clean(ctx, volumes, yes):
    """Remove the stack's containers and prune dangling images."""
    if not yes:
        prompt = "Remove aixcl containers" + (" and volumes" if volumes else "") + "?"
        click.confirm(prompt, abort=True)
    report = clean_stack(remove_volumes=volumes, compose_kwargs=ctx.obj["compose_kwargs"])
    click.echo(
        f"Removed {report['containers_removed']} container(s), "
        f"pruned {report['images_pruned']} image(s), "
        f"removed {report['volumes_removed']} volume(s), "
        f"reclaimed {_human_bytes(report['space_reclaimed'])}."
    )
    for error in report["errors"]:
        click.echo(f"  error: {error}", err=True)
    if report["errors"]:
        ctx.exit(1)


@cli.command()
@handle_exceptions
def stats():
    """Show CPU and memory usage of the running containers."""
    samples = get_stats()
    if not samples:
        click.echo("No aixcl containers are running.")
        return
    click.echo(f"{'NAME':<14} {'CPU %':>7} {'MEM USAGE / LIMIT':>24} {'MEM %':>7}")
    for sample in samples:
        usage = f"{_human_bytes(sample['memory_usage'])} / {_human_bytes(sample['memory_limit'])}"
        click.echo(
            f"{sample['name']:<14} {sample['cpu_percent']:>6.2f}% {usage:>24} {sample['memory_percent']:>6.2f}%"
        )


@cli.command()
@click.pass_context
@handle_exceptions
def status(ctx):
    """Show container state and run every health check once."""
    result = get_status()
    click.echo("Containers:")
    for name, state in result["containers"].items():
        health = f" ({state.health})" if state.health else ""
        click.echo(f"  {name:<14} {state.status}{health}")
    click.echo("Health checks:")
    _echo_results(result["checks"])
    if not result["healthy"]:
        ctx.exit(1)


@click.command(name="docker-clean")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation.")
@click.option("--dry-run", is_flag=True, help="Only list what would be removed.")
@click.option("--log-level", default=config.LOG_LEVEL, show_default=True)
@click.pass_context
@handle_exceptions
def docker_clean_command(ctx, yes, dry_run, log_level):
    """Remove ALL containers, images, volumes and custom networks on this host."""
    configure_logging(log_level, config.LOG_FORMAT == "json")
    if dry_run:
        preview = get_cleanup_preview()
        for kind in ("containers", "images", "volumes", "networks"):
            click.echo(f"{kind}: {len(preview[kind])}")
            for item in preview[kind]:
                click.echo(f"  {item['name'] if isinstance(item, dict) else item}")
        return

    if not yes:
        click.confirm("This removes every Docker resource on this host. Continue?", abort=True)
    report = docker_clean()
    for message in report["messages"]:
        click.echo(message)
    for error in report["errors"]:
        click.echo(f"  error: {error}", err=True)
    if report["errors"]:
        ctx.exit(1)


if __name__ == "__main__":
    cli()
