#!/usr/bin/env python3
"""
Output Formatting Module for the PixelChads CLI

Renders command results as tables, JSON or YAML.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

import yaml
from tabulate import tabulate


def _plain(value: Any) -> Any:
    """Convert values to JSON/YAML friendly primitives."""
    if isinstance(value, dict):
        return {str(k): _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value


class OutputFormatter:
    """Universal output formatter for CLI results."""

    def __init__(self, format_type: str = 'table', max_width: Optional[int] = None):
        """
        Initialize output formatter.

        Args:
            format_type: Output format (table, json, yaml)
            max_width: Maximum width of a table cell
        """
        self.format_type = format_type
        self.max_width = max_width or 80

    def format(self, data: Any, headers: Optional[List[str]] = None) -> str:
        """Format data according to the configured format type."""
        if self.format_type == 'json':
            return self.format_json(data)
        elif self.format_type == 'yaml':
            return self.format_yaml(data)
        return self.format_table(data, headers)

    def format_json(self, data: Any) -> str:
        """Format data as JSON."""
        return json.dumps(_plain(data), indent=2, default=str)

    def format_yaml(self, data: Any) -> str:
        """Format data as YAML."""
        return yaml.safe_dump(_plain(data), default_flow_style=False, sort_keys=False).rstrip()

    def format_table(self, data: Any, headers: Optional[List[str]] = None) -> str:
        """Format data as a table."""
        data = _plain(data)

        if isinstance(data, dict):
            rows = [[key, self._truncate(value)] for key, value in data.items()]
            return tabulate(rows, headers=headers or ['Field', 'Value'], tablefmt='simple')

        if isinstance(data, list) and data and isinstance(data[0], dict):
            headers = headers or list(data[0].keys())
            rows = [[self._truncate(item.get(h, '')) for h in headers] for item in data]
            return tabulate(rows, headers=headers, tablefmt='simple')

        if isinstance(data, list):
            return "\n".join(str(item) for item in data)

        return str(data)

    def _truncate(self, value: Any) -> str:
        text = json.dumps(value, default=str) if isinstance(value, (dict, list)) else str(value)
        if len(text) > self.max_width:
            return text[:self.max_width - 3] + '...'
        return text


def event_rows(events) -> List[Dict[str, Any]]:
    """Flatten registry events for display."""
    return [
        {'event': event.name, **event.args}
        for event in events
    ]
