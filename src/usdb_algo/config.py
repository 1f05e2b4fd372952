"""
USDB Algo Configuration
=======================

Configuration for the compiler, translator and flowchart layout.
Configuration can come from:
- Default values (defined here)
- Environment variables

Layout values are in abstract diagram units. A renderer that draws one
unit per pixel gets 160x50 process boxes and 60-unit vertical gaps by
default.
"""

from dataclasses import dataclass, field
import logging
import os
import re

from usdb_algo.lexer import KEYWORDS


PROGRAM_NAME = re.compile(r"[A-Za-z][A-Za-z0-9_]*")


def is_valid_program_name(name: str) -> bool:
    """True when name can follow ALGORITHM: an identifier that is not a keyword."""
    return PROGRAM_NAME.fullmatch(name) is not None and name.lower() not in KEYWORDS


@dataclass
class LayoutConfig:
    """
    Geometry used when placing flowchart nodes.

    Attributes:
        node_width: Minimum width of process/call/start/end boxes
        node_height: Height of non-decision boxes
        decision_width: Minimum width of decision and loop diamonds
        decision_height: Height of decision and loop diamonds
        merge_size: Width and height of merge connectors
        horizontal_gap: Space between sibling branches
        vertical_gap: Space between consecutive nodes
        char_width: Estimated width of one label character
        padding: Margin added around the normalised diagram
        max_label_length: Labels longer than this are truncated with '...'
        include_declarations: Emit declaration nodes after the start node
    """
    node_width: int = 160
    node_height: int = 50
    decision_width: int = 140
    decision_height: int = 70
    merge_size: int = 20
    horizontal_gap: int = 150
    vertical_gap: int = 60
    char_width: int = 11
    padding: int = 100
    max_label_length: int = 200
    include_declarations: bool = True


@dataclass
class UsdbConfig:
    """
    Toolchain-wide settings.

    Attributes:
        indent_width: Spaces per indentation level in generated C and Algo
        log_level: Logging level name used by the command-line tools
        program_name: ALGORITHM name given to translated C programs
        layout: Flowchart geometry
    """

    indent_width: int = 4
    log_level: str = "WARNING"
    program_name: str = "TranslatedProgram"
    layout: LayoutConfig = field(default_factory=LayoutConfig)

    @classmethod
    def from_env(cls) -> "UsdbConfig":
        """
        Create a UsdbConfig from environment variables.

        Environment variables (all optional):
            USDB_INDENT_WIDTH: Spaces per indentation level (integer > 0)
            USDB_LOG_LEVEL: DEBUG, INFO, WARNING or ERROR
            USDB_PROGRAM_NAME: ALGORITHM name for translated C (not a keyword)
            USDB_FLOWCHART_NODE_WIDTH: Minimum box width (integer > 0)
            USDB_FLOWCHART_VERTICAL_GAP: Gap between nodes (integer >= 0)

        Invalid values are ignored and the default is kept.
        """
        config = cls()

        if indent := os.environ.get("USDB_INDENT_WIDTH"):
            try:
                if int(indent) > 0:
                    config.indent_width = int(indent)
            except ValueError:
                pass

        if level := os.environ.get("USDB_LOG_LEVEL"):
            if level.upper() in ("DEBUG", "INFO", "WARNING", "ERROR"):
                config.log_level = level.upper()

        if name := os.environ.get("USDB_PROGRAM_NAME"):
            if is_valid_program_name(name):
                config.program_name = name

        if width := os.environ.get("USDB_FLOWCHART_NODE_WIDTH"):
            try:
                if int(width) > 0:
                    config.layout.node_width = int(width)
            except ValueError:
                pass

        if gap := os.environ.get("USDB_FLOWCHART_VERTICAL_GAP"):
            try:
                if int(gap) >= 0:
                    config.layout.vertical_gap = int(gap)
            except ValueError:
                pass

        return config

    @property
    def indent(self) -> str:
        """One indentation level as a string of spaces."""
        return " " * self.indent_width

    def logging_level(self, verbose: bool = False) -> int:
        """Return the numeric logging level, DEBUG when verbose."""
        if verbose:
            return logging.DEBUG
        return getattr(logging, self.log_level, logging.WARNING)
