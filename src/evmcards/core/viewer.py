"""
External viewer and clipboard access.

The viewer takes over the terminal until it exits, so it is only ever run
from the UI thread.
"""

import os
import shlex
import shutil
import subprocess
import tempfile
from typing import List, Optional

from evmcards.utils.exceptions import ClipboardUnavailableError, ViewerUnavailableError
from evmcards.utils.logging import get_logger

logger = get_logger("viewer")

DEFAULT_VIEWER = "less"

CLIPBOARD_TOOLS = [
    ["pbcopy"],
    ["wl-copy"],
    ["xclip", "-selection", "clipboard"],
    ["xsel", "--clipboard", "--input"],
]


class ExternalViewer:
    """Open text in the user's viewer: the configured command, then $PAGER, then less."""

    def __init__(self, command: Optional[str] = None):
        self.command = command

    def resolve_command(self) -> List[str]:
        command = self.command or os.environ.get("PAGER") or DEFAULT_VIEWER
        return shlex.split(command)

    def __call__(self, text: str, suffix: str = ".json") -> int:
        return self.show(text, suffix)

    def show(self, text: str, suffix: str = ".json") -> int:
        """
        Write ``text`` to a temporary file and block until the viewer exits.

        Returns:
            The viewer's exit code

        Raises:
            ViewerUnavailableError: if the viewer cannot be started
        """
        argv = self.resolve_command()
        if not argv:
            raise ViewerUnavailableError("", "empty viewer command")

        fd, path = tempfile.mkstemp(prefix="evmcards-", suffix=suffix)
        try:
            with os.fdopen(fd, "w") as f:
                f.write(text)
            logger.debug(f"Opening {path} with {argv[0]}")
            try:
                result = subprocess.run(argv + [path])
            except (FileNotFoundError, PermissionError) as e:
                raise ViewerUnavailableError(argv[0], str(e))
            return result.returncode
        finally:
            os.unlink(path)


def find_clipboard_tool() -> Optional[List[str]]:
    for tool in CLIPBOARD_TOOLS:
        if shutil.which(tool[0]):
            return tool
    return None


def copy_to_clipboard(text: str) -> str:
    """
    Copy text with the first available clipboard tool.

    Returns:
        Name of the tool used

    Raises:
        ClipboardUnavailableError: if no tool is installed or the tool fails
    """
    tool = find_clipboard_tool()
    if tool is None:
        raise ClipboardUnavailableError()
    try:
        subprocess.run(tool, input=text.encode(), check=True, timeout=5)
    except (OSError, subprocess.SubprocessError) as e:
        raise ClipboardUnavailableError(f"{tool[0]} failed: {e}")
    logger.debug(f"Copied {len(text)} characters with {tool[0]}")
    return tool[0]
