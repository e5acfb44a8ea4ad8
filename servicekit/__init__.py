"""servicekit - install and control background services under systemd."""

__version__ = "0.3.0"
__logo__ = "⚙"
