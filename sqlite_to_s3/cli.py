"""Main CLI entry point for sqlite-to-s3.

This module provides the command-line interface for sqlite-to-s3, a tool that
backs up a live SQLite database to S3-compatible object storage, optionally
encrypted, and restores it again. Settings come from environment variables
and an optional YAML file.

The CLI is built using Click. Every fatal error ends the process with a
non-zero exit status so schedulers and automation can detect it.
"""

import logging
from typing import Optional

import click

from sqlite_to_s3 import __version__
from sqlite_to_s3.utils.errors import ErrorHandler
from sqlite_to_s3.utils.logging import setup_logging

logger = logging.getLogger(__name__)

USAGE_NOTES = """\
       cron requires CRON_SCHEDULE env var (e.g. "0 1 * * *")
       restore requires a timestamp (YYYYMMDDHHMMSS)."""


@click.group(
    invoke_without_command=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.option(
    "--dry-run", is_flag=True, help="Show what would be done without executing"
)
@click.option("--log-file", help="Log to file in addition to console")
@click.option(
    "--config",
    "config_file",
    type=click.Path(dir_okay=False),
    help="YAML settings file (environment variables take precedence)",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    dry_run: bool,
    log_file: Optional[str],
    config_file: Optional[str],
) -> None:
    """sqlite-to-s3 - SQLite backups to S3-compatible object storage.

    Takes hot backups of a live SQLite database, optionally encrypts them
    with ENCRYPTION_KEY, uploads them as <S3_KEY_PREFIX><timestamp>.bak to
    S3_BUCKET and restores them into DATABASE_PATH.

    Args:
        ctx: Click context object containing shared state
        verbose: Enable verbose output for detailed logging
        dry_run: Show what would be done without executing commands
        log_file: Optional path to log file for additional logging
        config_file: Optional YAML settings file
    """
    if ctx.invoked_subcommand is None:
        click.echo("Invalid command ''", err=True)
        click.echo(ctx.get_usage(), err=True)
        click.echo(USAGE_NOTES, err=True)
        ctx.exit(2)

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["dry_run"] = dry_run
    ctx.obj["log_file"] = log_file
    ctx.obj["config_file"] = config_file
    ctx.obj["error_handler"] = ErrorHandler(verbose=verbose)

    setup_logging(verbose=verbose, log_file=log_file)


def _load_config(ctx: click.Context, require_schedule: bool = False):
    """Resolve settings for a command, exiting on invalid configuration."""
    from sqlite_to_s3.config import ConfigManager

    try:
        config = ConfigManager().load_config(
            config_file=ctx.obj["config_file"], require_schedule=require_schedule
        )
    except Exception as e:
        ctx.obj["error_handler"].exit_with_error(e, "Configuration")

    logger.debug("Resolved settings: %s", config.describe())
    return config


def _echo_settings(config) -> None:
    """Print the resolved settings for a dry run (the passphrase is masked)."""
    for key, value in config.describe().items():
        if value not in (None, ""):
            click.echo(f"DRY RUN: {key} = {value}")


@cli.command()
@click.pass_context
def backup(ctx: click.Context) -> None:
    """Back up the database to S3 once.

    Copies DATABASE_PATH with SQLite's online backup API, encrypts the copy
    when ENCRYPTION_KEY is set, uploads it and triggers POST_WEBHOOK_URL.
    """
    config = _load_config(ctx)

    if ctx.obj["dry_run"]:
        from sqlite_to_s3.backup.manager import current_timestamp
        from sqlite_to_s3.backup.storage import BackupStorage

        storage = BackupStorage(
            config.bucket, key_prefix=config.key_prefix, endpoint_url=config.endpoint_url
        )
        key = storage.object_key(current_timestamp())
        _echo_settings(config)
        click.echo(f"DRY RUN: Would backup {config.database_path} to {config.backup_path}")
        if config.encryption_enabled:
            click.echo(f"DRY RUN: Would encrypt backup to {config.encrypted_backup_path}")
        click.echo(f"DRY RUN: Would upload to {storage.object_url(key)}")
        if config.webhook_url:
            click.echo(f"DRY RUN: Would trigger webhook {config.webhook_url}")
        return

    try:
        from sqlite_to_s3.backup import BackupManager

        manager = BackupManager(config, verbose=ctx.obj["verbose"])
        result = manager.backup()

        click.echo(f"✓ Backup uploaded to {result['object_url']}")
        if result["encrypted"]:
            click.echo("  Encrypted: Yes")
        if result["notified"] is False:
            click.echo("⚠ Webhook trigger failed (backup is still complete)", err=True)

    except Exception as e:
        ctx.obj["error_handler"].exit_with_error(e, "Backup")


@cli.command()
@click.argument("timestamp", required=False, default="")
@click.pass_context
def restore(ctx: click.Context, timestamp: str) -> None:
    """Restore the backup taken at TIMESTAMP (YYYYMMDDHHMMSS).

    The current database is moved to DATABASE_PATH.old while the backup is
    restored and moved back if the restore fails.
    """
    config = _load_config(ctx)

    try:
        from sqlite_to_s3.backup import RecoveryManager
        from sqlite_to_s3.backup.recovery import validate_timestamp

        if ctx.obj["dry_run"]:
            from sqlite_to_s3.backup.storage import BackupStorage

            validate_timestamp(timestamp)
            storage = BackupStorage(
                config.bucket, key_prefix=config.key_prefix, endpoint_url=config.endpoint_url
            )
            key = storage.object_key(timestamp)
            _echo_settings(config)
            click.echo(f"DRY RUN: Would download {storage.object_url(key)} to {config.backup_path}")
            click.echo(f"DRY RUN: Would restore into {config.database_path}")
            return

        manager = RecoveryManager(config, verbose=ctx.obj["verbose"])
        result = manager.restore(timestamp)

        click.echo(f"✓ Restored {config.database_path} from {result['object_url']}")

    except Exception as e:
        ctx.obj["error_handler"].exit_with_error(e, "Restore")


@cli.command()
@click.pass_context
def cron(ctx: click.Context) -> None:
    """Run backups periodically on CRON_SCHEDULE.

    Writes the crontab and keeps crond in the foreground.
    """
    config = _load_config(ctx, require_schedule=True)

    try:
        from sqlite_to_s3.backup import BackupScheduler

        scheduler = BackupScheduler(config, verbose=ctx.obj["verbose"])

        if ctx.obj["dry_run"]:
            click.echo(f"DRY RUN: Would write {config.crontab_path}:")
            click.echo(scheduler.render_crontab(), nl=False)
            return

        scheduler.start()

    except Exception as e:
        ctx.obj["error_handler"].exit_with_error(e, "Backup scheduling")


@cli.command(name="list")
@click.pass_context
def list_backups(ctx: click.Context) -> None:
    """List the timestamps of stored backups, newest first."""
    config = _load_config(ctx)

    try:
        from sqlite_to_s3.backup import BackupStorage

        storage = BackupStorage(
            config.bucket,
            key_prefix=config.key_prefix,
            endpoint_url=config.endpoint_url,
            verbose=ctx.obj["verbose"],
        )
        timestamps = storage.list_backups()

        if not timestamps:
            click.echo(f"No backups found in {storage.object_url(storage.key_prefix)}")
            return

        for timestamp in timestamps:
            click.echo(timestamp)

    except Exception as e:
        ctx.obj["error_handler"].exit_with_error(e, "Listing backups")


if __name__ == "__main__":
    cli()
