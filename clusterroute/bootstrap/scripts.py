"""Generate ``start.sh`` / ``stop.sh`` for a directory deployment."""

from __future__ import annotations

import os
import shutil
from pathlib import Path

from ..core.exceptions import DeploymentError
from ..logger import get_logger

logger = get_logger(__name__)

START_SCRIPT = "start.sh"
STOP_SCRIPT = "stop.sh"
PID_FILE = "mysqlrouter.pid"
SCRIPT_MODE = 0o700


def render_start_script(directory: str, program: str, config_file_name: str, user: str = "") -> str:
    launch = f"ROUTER_PID=$basedir/{PID_FILE} {program} -c $basedir/{config_file_name}"
    lines = ["#!/bin/bash", f"basedir={directory}"]
    if user:
        lines.extend(
            [
                f"if [ `whoami` == '{user}' ]; then",
                f"  {launch} &",
                "else",
                f"  sudo {launch} --user={user} &",
                "fi",
            ]
        )
    else:
        lines.append(f"{launch} &")
    lines.append("disown %-")
    return "\n".join(lines) + "\n"


def render_stop_script(directory: str) -> str:
    pid_file = f"{directory}/{PID_FILE}"
    return f"#!/bin/bash\nif [ -f {pid_file} ]; then\n  kill -TERM `cat {pid_file}` && rm -f {pid_file}\nfi\n"


def set_owner(path: Path, user: str) -> None:
    """Hand ``path`` to ``user``; a missing file is not an error.

    Raises
    ------
    DeploymentError
        When the user does not exist or ownership cannot be changed.
    """
    try:
        shutil.chown(path, user=user)
    except FileNotFoundError:
        return
    except LookupError as exc:
        raise DeploymentError(f"Can't use user '{user}'. Please check that the user exists!") from exc
    except PermissionError as exc:
        raise DeploymentError(f"Can't set ownership of file '{path}' to the user '{user}'. error: {exc}") from exc


def write_scripts(directory: Path, program: str, config_file_name: str, user: str = "") -> list[Path]:
    """Write both scripts with mode 0700 and return their paths."""
    written: list[Path] = []
    for name, content in (
        (START_SCRIPT, render_start_script(str(directory), program, config_file_name, user)),
        (STOP_SCRIPT, render_stop_script(str(directory))),
    ):
        path = directory / name
        path.write_text(content, encoding="utf-8")
        os.chmod(path, SCRIPT_MODE)
        if user:
            set_owner(path, user)
        written.append(path)
    logger.debug("scripts_written", directory=str(directory), user=user or None)
    return written
