"""Status collection: drush output in, update candidates out."""

from .parsers import (
    ModuleInfo,
    parse_module_list_json,
    parse_module_list_table,
    parse_status_json,
    parse_status_pipe,
)
from .status import StatusCollector

__all__ = [
    "ModuleInfo",
    "StatusCollector",
    "parse_module_list_json",
    "parse_module_list_table",
    "parse_status_json",
    "parse_status_pipe",
]
