"""Backup scheduling through the system cron daemon."""

import logging
import os
import shlex
import shutil
import subprocess
import sys
from datetime import datetime
from typing import List, Optional

from jinja2 import Environment, FileSystemLoader

from sqlite_to_s3.config.manager import BackupConfig
from sqlite_to_s3.utils.errors import ConfigurationError, SchedulerError

logger = logging.getLogger(__name__)

TEMPLATES_DIR = os.path.join(os.path.dirname(__file__), "..", "templates")
CROND_COMMAND = ["crond", "-f"]


class BackupScheduler:
    """Registers periodic ``backup`` runs and keeps crond in the foreground.

    Only one cron entry is written, so runs never overlap unless a backup
    takes longer than the schedule interval; avoiding that is up to the
    operator.
    """

    def __init__(self, config: BackupConfig, verbose: bool = False):
        """
        Initialize backup scheduler.

        Args:
            config: Resolved settings (``cron_schedule`` must be set)
            verbose: Enable verbose output
        """
        if not config.cron_schedule:
            raise ConfigurationError("CRON_SCHEDULE env variable is required for cron mode")

        self.config = config
        self.verbose = verbose
        self.jinja_env = Environment(
            loader=FileSystemLoader(TEMPLATES_DIR),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )

    def resolve_executable(self) -> str:
        """Locate the command cron should run."""
        return shutil.which("sqlite-to-s3") or os.path.abspath(sys.argv[0])

    def render_crontab(self, executable: Optional[str] = None) -> str:
        """
        Render the crontab for the configured schedule.

        Args:
            executable: Command to run (detected when omitted)

        Returns:
            str: Crontab content
        """
        template = self.jinja_env.get_template("crontab.j2")
        config_file = self.config.config_file
        return template.render(
            generated=datetime.now().isoformat(timespec="seconds"),
            schedule=self.config.cron_schedule.strip(),
            executable=shlex.quote(executable or self.resolve_executable()),
            config_file=shlex.quote(config_file) if config_file else None,
        )

    def install_crontab(self, executable: Optional[str] = None) -> str:
        """
        Write the crontab file.

        Returns:
            str: Path of the written crontab

        Raises:
            SchedulerError: If the crontab cannot be written
        """
        crontab_path = self.config.crontab_path
        content = self.render_crontab(executable)

        try:
            os.makedirs(os.path.dirname(crontab_path) or ".", exist_ok=True)
            with open(crontab_path, "w", encoding="utf-8") as f:
                f.write(content)
            os.chmod(crontab_path, 0o600)
        except OSError as e:
            raise SchedulerError(f"Failed to write crontab {crontab_path}", details=str(e)) from e

        logger.debug("Crontab written to %s", crontab_path)
        return crontab_path

    def run_crond(self, command: Optional[List[str]] = None) -> None:
        """
        Run the cron daemon in the foreground until it exits.

        Raises:
            SchedulerError: If crond is missing or exits with an error
        """
        command = command or CROND_COMMAND
        try:
            completed = subprocess.run(command)
        except FileNotFoundError as e:
            raise SchedulerError(
                f"'{command[0]}' is not available",
                suggestions=["Run the cron command inside the container image, which ships busybox crond"],
            ) from e

        if completed.returncode != 0:
            raise SchedulerError(f"'{' '.join(command)}' exited with status {completed.returncode}")

    def start(self) -> None:
        """Register the backup job and block in crond."""
        logger.info("Starting backup cron job with frequency '%s'", self.config.cron_schedule)
        self.install_crontab()
        self.run_crond()
