"""Surfex: attack-surface hunting over ports, paths and subdomains."""

TOOL_VERSION = "0.3"
TOOL_NAME = "Surfex"
