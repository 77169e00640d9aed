"""
Reporters Layer - 报告层

包含 JSON 报告器。
"""

from envscan.reporters.base import Reporter
from envscan.reporters.json_reporter import JsonReporter

__all__ = [
    "Reporter",
    "JsonReporter",
]
