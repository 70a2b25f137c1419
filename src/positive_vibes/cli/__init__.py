"""CLI helpers exposed for the command modules."""

from .resources import CliState, get_state, parse_resource_type

__all__ = ["CliState", "get_state", "parse_resource_type"]
