"""
C Include Expansion
===================

Inlines local `#include "file"` directives from an in-memory map of
workspace files before the C to Algo translator reads the source.

Expansion Rules
---------------
- `#include "f"` is looked up by exact key, then by any key ending in "/f"
- A found file is replaced by its own expansion between markers:
      // --- Begin include: f ---
      ...
      // --- End include: f ---
- For a header x.h whose companion x.c is in the map, the companion is
  inlined right after the header (same markers)
- A file already inlined becomes `// Already included: f`
- A missing file keeps the directive and records the warning
  "Could not find included file: f" (without a workspace map, includes
  are left alone silently)
- `#include <...>` is left untouched

Line Origins
------------
Each output line remembers the 0-based index of the top-level line it came
from. Lines produced by an include directive (markers and the included
text) all map to the directive's line, so a source map built on top of
the expansion always points into the file the user is editing.
"""

from dataclasses import dataclass, field
from typing import Mapping, Optional
import logging
import re

logger = logging.getLogger(__name__)


LOCAL_INCLUDE_PATTERN = re.compile(r'^\s*#\s*include\s+"([^"]+)"')


@dataclass(frozen=True)
class ExpandedLine:
    """
    One line of expanded source.

    Attributes:
        text: Line text without its newline
        origin: 0-based line index in the top-level file
    """
    text: str
    origin: int


@dataclass
class IncludeExpansion:
    """Result of expand_includes()."""
    lines: list[ExpandedLine] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def code(self) -> str:
        return "\n".join(line.text for line in self.lines)


class IncludeExpander:
    """
    Expands local includes against a workspace file map.

    A single expander remembers every file it has inlined, so each file is
    inlined at most once per expand() call and include cycles terminate.

    Usage:
        expander = IncludeExpander({"utils.h": "...", "utils.c": "..."})
        expansion = expander.expand(main_source)
    """

    def __init__(self, workspace_files: Optional[Mapping[str, str]] = None):
        self.workspace_files = dict(workspace_files or {})
        self._processed: set[str] = set()
        self._warnings: list[str] = []

    def expand(self, code: str) -> IncludeExpansion:
        self._processed = set()
        self._warnings = []
        lines: list[ExpandedLine] = []

        for index, text in enumerate(code.split("\n")):
            for expanded in self._expand_line(text):
                lines.append(ExpandedLine(expanded, index))

        return IncludeExpansion(lines=lines, warnings=list(self._warnings))

    def find_file(self, filename: str) -> Optional[str]:
        """Contents of filename by exact key or path suffix, else None."""
        if filename in self.workspace_files:
            return self.workspace_files[filename]
        for path, content in self.workspace_files.items():
            if path.endswith("/" + filename):
                return content
        return None

    def _expand_line(self, text: str) -> list[str]:
        match = LOCAL_INCLUDE_PATTERN.match(text)
        if not match or not self.workspace_files:
            return [text]

        filename = match.group(1)
        if filename in self._processed:
            logger.debug("Skipping repeated include of %s", filename)
            return [f"// Already included: {filename}"]

        content = self.find_file(filename)
        if content is None:
            self._warn(f"Could not find included file: {filename}")
            return [text]

        output = self._inline(filename, content)

        if filename.endswith(".h"):
            companion = filename[:-2] + ".c"
            companion_content = self.find_file(companion)
            if companion not in self._processed and companion_content is not None:
                output.extend(self._inline(companion, companion_content))

        return output

    def _inline(self, filename: str, content: str) -> list[str]:
        self._processed.add(filename)
        logger.debug("Inlining %s", filename)
        output = [f"// --- Begin include: {filename} ---"]
        for line in content.split("\n"):
            output.extend(self._expand_line(line))
        output.append(f"// --- End include: {filename} ---")
        return output

    def _warn(self, message: str) -> None:
        logger.warning(message)
        self._warnings.append(message)


def expand_includes(
    code: str, workspace_files: Optional[Mapping[str, str]] = None
) -> IncludeExpansion:
    """
    Inline local includes of code from workspace_files.

    Returns:
        IncludeExpansion with origin-tagged lines and any warnings
    """
    return IncludeExpander(workspace_files).expand(code)
