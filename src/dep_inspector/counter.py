"""Local source tree line counting."""

import logging
import re
from pathlib import Path
from typing import Optional

from dep_inspector.models import DependencyGraph, LineCounts, NodeMetricWarning

logger = logging.getLogger(__name__)

# Extensions counted as code, by language.
CODE_EXTENSIONS: dict[str, str] = {
    ".rs": "Rust", ".c": "C", ".h": "C/C++ Header", ".cc": "C++",
    ".cpp": "C++", ".hpp": "C++", ".py": "Python", ".js": "JavaScript",
    ".ts": "TypeScript", ".go": "Go", ".java": "Java", ".kt": "Kotlin",
    ".rb": "Ruby", ".swift": "Swift", ".s": "Assembly", ".S": "Assembly",
    ".asm": "Assembly", ".sh": "Shell", ".pl": "Perl",
}

SKIP_DIRS = {".git", "target", "node_modules", "__pycache__", ".venv", "venv"}

_C_COMMENTS = ("//", "/*", "*")
_HASH_COMMENTS = ("#",)
_HASH_COMMENT_EXTENSIONS = {".py", ".rb", ".sh", ".pl"}
_UNSAFE_RE = re.compile(r"\bunsafe\b")


class LineCounter:
    """Counts code lines and unsafe lines under a package directory.

    Files whose relative path contains ``test_marker`` (case-insensitive) are
    skipped, which also drops ``tests/`` and ``benches/testdata`` trees.
    """

    def __init__(self, test_marker: str = "test") -> None:
        self.test_marker = test_marker.lower()

    def is_excluded(self, relpath: Path) -> bool:
        if any(part in SKIP_DIRS or part.startswith(".") for part in relpath.parts):
            return True
        return bool(self.test_marker) and self.test_marker in relpath.as_posix().lower()

    def count(self, root: str | Path) -> Optional[LineCounts]:
        """Measure a source tree, or return None when it does not exist."""
        root = Path(root)
        if not root.is_dir():
            return None
        counts = LineCounts()
        for p in sorted(root.rglob("*")):
            if not p.is_file() or p.suffix not in CODE_EXTENSIONS:
                continue
            if self.is_excluded(p.relative_to(root)):
                continue
            try:
                text = p.read_text(errors="replace")
            except OSError as e:
                logger.debug("skipping unreadable file %s: %s", p, e)
                continue
            loc, unsafe = count_lines(
                text,
                unsafe=p.suffix == ".rs",
                comments=_HASH_COMMENTS if p.suffix in _HASH_COMMENT_EXTENSIONS else _C_COMMENTS,
            )
            counts.files += 1
            counts.loc += loc
            counts.unsafe_loc += unsafe
        return counts

    def measure(
        self, graph: DependencyGraph
    ) -> tuple[dict[str, LineCounts], list[NodeMetricWarning]]:
        """Count every node of ``graph`` that has a local source path."""
        results: dict[str, LineCounts] = {}
        warnings: list[NodeMetricWarning] = []
        for node_id, node in sorted(graph.nodes.items()):
            if not node.path:
                warnings.append(NodeMetricWarning(node_id=node_id, reason="no source path"))
                continue
            counts = self.count(node.path)
            if counts is None:
                warnings.append(
                    NodeMetricWarning(node_id=node_id, reason=f"missing directory {node.path}")
                )
                continue
            results[node_id] = counts
        for w in warnings:
            logger.warning("no line counts for %s (%s); counting zero", w.node_id, w.reason)
        return results, warnings


def count_lines(
    text: str,
    unsafe: bool = False,
    comments: tuple[str, ...] = _C_COMMENTS,
) -> tuple[int, int]:
    """Return (code lines, unsafe lines) of a source file's text.

    Blank lines and lines starting with one of ``comments`` are not code.
    Unsafe lines are code lines mentioning the ``unsafe`` keyword.
    """
    loc = 0
    unsafe_loc = 0
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith(comments):
            continue
        loc += 1
        if unsafe and _UNSAFE_RE.search(stripped):
            unsafe_loc += 1
    return loc, unsafe_loc
