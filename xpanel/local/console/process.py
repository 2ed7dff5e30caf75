import argparse
import logging
from typing import Callable, Dict, List

from xpanel.local.console import handler

log = logging.getLogger(__name__)


def _flag(parser: argparse.ArgumentParser, name: str, **kwargs) -> None:
    """Registers a flag under both its single- and double-dash spelling."""
    parser.add_argument(f"-{name}", f"--{name}", dest=name, **kwargs)


def build_run_parser() -> argparse.ArgumentParser:
    return argparse.ArgumentParser(prog="run", description="Run web panel")


def build_setting_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="setting", description="Set settings")
    _flag(parser, "reset", action="store_true", help="Reset all settings")
    _flag(parser, "show", action="store_true", help="Show current settings")
    _flag(parser, "port", type=int, default=0, help="Set panel port")
    _flag(parser, "username", default="", help="Set login username")
    _flag(parser, "password", default="", help="Set login password")
    _flag(parser, "webBasePath", default="", help="Set base path for Panel")
    _flag(parser, "webCert", default="", help="Set path to public key file for panel")
    _flag(parser, "webCertKey", default="", help="Set path to private key file for panel")
    _flag(parser, "tgbottoken", default="", help="Set token for Telegram bot")
    _flag(parser, "tgbotRuntime", default="", help="Set telegram bot cron time")
    _flag(parser, "tgbotchatid", default="", help="Set telegram bot chat id")
    _flag(parser, "enabletgbot", action="store_true", help="Enable telegram bot notify")
    return parser


def build_cert_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cert", description="Set or clear panel certificate paths")
    _flag(parser, "reset", action="store_true", help="Clear both certificate paths")
    _flag(parser, "webCert", default="", help="Set path to public key file for panel")
    _flag(parser, "webCertKey", default="", help="Set path to private key file for panel")
    return parser


def print_usage() -> None:
    """Prints the main help text for the command line."""
    print("Usage: xpanel [-v] [command] [flags]")
    print()
    print("Commands:")
    print("    run            Run web panel")
    print("    uri            Show panel URI")
    print("    migrate        Migrate form other/old panel databases")
    print("    setting        Set settings")
    print("    cert           Set panel certificate paths")


def run_command(args: List[str]) -> None:
    build_run_parser().parse_args(args)
    # Imported here so one-shot commands don't load the server stack.
    from xpanel.local.supervisor.startup import run_panel
    run_panel()


def setting_command(args: List[str]) -> None:
    opts = build_setting_parser().parse_args(args)

    if opts.reset:
        handler.reset_setting()
    else:
        handler.update_setting(opts.port, opts.username, opts.password, opts.webBasePath)

    if opts.webCert or opts.webCertKey:
        handler.update_cert(opts.webCert, opts.webCertKey)

    if opts.show:
        handler.show_setting()

    if opts.tgbottoken or opts.tgbotchatid or opts.tgbotRuntime:
        handler.update_tgbot_setting(opts.tgbottoken, opts.tgbotchatid, opts.tgbotRuntime)

    if opts.enabletgbot:
        handler.update_tgbot_enable(True)


def cert_command(args: List[str]) -> None:
    opts = build_cert_parser().parse_args(args)
    if opts.reset:
        handler.update_cert("", "")
    else:
        handler.update_cert(opts.webCert, opts.webCertKey)


def execute_command(command: str, args: List[str]) -> bool:
    """
    Executes a single sub-command.

    :param command: The sub-command name (e.g., 'run', 'setting').
    :param args: The arguments following the sub-command.
    :return bool: True if the command was recognised, False otherwise.
    """
    log.debug(f"Executing command: {command}, args: {args}")
    command_map: Dict[str, Callable[[], None]] = {
        "run": lambda: run_command(args),
        "uri": handler.get_panel_uri,
        "migrate": handler.migrate_db,
        "setting": lambda: setting_command(args),
        "cert": lambda: cert_command(args),
    }

    if command not in command_map:
        print("Invalid subcommands")
        print()
        print_usage()
        print()
        build_setting_parser().print_usage()
        return False

    command_map[command]()
    return True
