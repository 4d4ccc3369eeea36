"""Command-line interface package for Azure Quick Review."""

from .app import build_parser, create_service, main, run
from .reporting import JsonReportRenderer, report_to_dict

__all__ = [
    "JsonReportRenderer",
    "build_parser",
    "create_service",
    "main",
    "report_to_dict",
    "run",
]
