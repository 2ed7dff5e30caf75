"""
This module initializes the console package, exposing command dispatch
and the usage text of the command line.
"""

from .process import execute_command, print_usage

__all__ = ["execute_command", "print_usage"]
