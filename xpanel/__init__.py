"""
xpanel: a network panel whose entry point supervises the panel web server
and the subscription server, rebuilding both on SIGHUP.
"""

__version__ = "1.4.0"
