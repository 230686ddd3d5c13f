"""Core sidecar implementation.

This package contains the building blocks of the sidecar:
- Stats query client and response parser
- Telegram notification delivery
- Periodic reporter and HTTP surface
- Config templating and child-process supervision
- Exception handling and configuration

The command-line package wires these together; nothing in here reads
the process environment except ``config.SidecarConfig.from_env``.
"""
