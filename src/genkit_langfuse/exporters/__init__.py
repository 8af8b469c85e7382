"""Exporter modules for observability backends.

Each exporter is isolated in its own subpackage to keep vendor-specific
code at the edges of the SDK.
"""
