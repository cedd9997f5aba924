"""Shared type definitions for resync."""

from typing import Literal, TypeAlias

# Normalized absolute path string; identity of a tracked file
TrackedPath: TypeAlias = str

# 1-based line number in a document
LineNumber: TypeAlias = int

# Editor-assigned viewport (window) identifier
ViewportID: TypeAlias = int

# Highlight attribute tag applied to changed lines
HighlightTag: TypeAlias = str

# Where a ChangeEvent came from
ChangeOrigin: TypeAlias = Literal["watch", "marker", "announce", "recheck"]

# Severity of a user-facing notice
NoticeLevel: TypeAlias = Literal["debug", "info", "warn", "error"]
