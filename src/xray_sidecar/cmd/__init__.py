"""Command line interface modules.

This package provides the command-line entry points for:
- Rendering the Xray configuration from its template
- Launching and supervising the Xray child process
- Serving the status API and the Telegram webhook
- Printing a one-off statistics snapshot
"""
