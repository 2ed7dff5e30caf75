import sys
import logging
from typing import List, Optional

# Basic console logger for messages BEFORE full setup is complete.
# `run` replaces it with the configured level once settings are loaded.
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)-8s - [console] - %(message)s',
    stream=sys.stdout
)
log = logging.getLogger("console")

import xpanel.local.console as console
from xpanel.local.config import effective_settings as config


def main(argv: Optional[List[str]] = None) -> int:
    """The main entry point of the command line."""
    args = sys.argv[1:] if argv is None else list(argv)

    # No sub-command runs the panel
    if not args:
        console.execute_command("run", [])
        return 0

    command, rest = args[0], args[1:]
    if command in ("-v", "--v", "-version", "--version"):
        print(config.VERSION)
        return 0
    if command in ("-h", "--help", "help"):
        console.print_usage()
        return 0

    return 0 if console.execute_command(command, rest) else 1


if __name__ == "__main__":
    sys.exit(main())
