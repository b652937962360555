import logging
import os
import stat
from pathlib import Path
from typing import Dict

logger = logging.getLogger(__name__)

HOOK_MARKER = "# Installed by ailog"
BACKUP_SUFFIX = ".ailog-backup"

# Hooks run with stdin detached; reattach the terminal so the attribution
# prompt can be answered. Every path ends in exit 0 so a commit is never
# blocked by ailog.
_PRE_COMMIT = f"""#!/bin/sh
{HOOK_MARKER} - interactive AI attribution check
if [ -t 1 ] && [ -r /dev/tty ]; then
    exec < /dev/tty
fi
if command -v ailog >/dev/null 2>&1; then
    ailog pre-commit
elif command -v python3 >/dev/null 2>&1 && python3 -c "import ailog_cli" >/dev/null 2>&1; then
    python3 -m ailog_cli pre-commit
else
    echo "Warning: AI attribution check unavailable (ailog not installed)"
fi
exit 0
"""

_POST_COMMIT = f"""#!/bin/sh
{HOOK_MARKER} - record commit attribution
if command -v ailog >/dev/null 2>&1; then
    ailog post-commit
elif command -v python3 >/dev/null 2>&1 && python3 -c "import ailog_cli" >/dev/null 2>&1; then
    python3 -m ailog_cli post-commit
fi
exit 0
"""

HOOK_SCRIPTS = {
    "pre-commit": _PRE_COMMIT,
    "post-commit": _POST_COMMIT,
}


def hooks_dir(git_dir) -> Path:
    return Path(git_dir) / "hooks"


def _is_ours(path: Path) -> bool:
    try:
        return HOOK_MARKER in path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return False


def install_hooks(git_dir) -> Dict[str, str]:
    """
    Write the pre-commit and post-commit hooks. A hook that ailog did not
    write is moved aside to <name>.ailog-backup first. Returns name -> action.
    """
    directory = hooks_dir(git_dir)
    directory.mkdir(parents=True, exist_ok=True)

    actions = {}
    for name, script in HOOK_SCRIPTS.items():
        path = directory / name
        action = "installed"
        if path.exists():
            if _is_ours(path):
                action = "updated"
            else:
                backup = path.with_name(name + BACKUP_SUFFIX)
                os.replace(path, backup)
                logger.info("Existing %s hook moved to %s", name, backup)
                action = f"installed (previous hook saved as {backup.name})"

        path.write_text(script, encoding="utf-8")
        mode = path.stat().st_mode
        path.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        actions[name] = action
    return actions


def hook_status(git_dir) -> Dict[str, bool]:
    directory = hooks_dir(git_dir)
    return {name: _is_ours(directory / name) for name in HOOK_SCRIPTS}
