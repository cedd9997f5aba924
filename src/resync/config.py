"""Resync configuration.

ResyncConfig is the central configuration object, frozen after creation.
"""

from dataclasses import dataclass, field
from pathlib import Path

from resync._errors import ConfigError

_TIMING_FIELDS = (
    "debounce_ms",
    "cooldown_ms",
    "settle_ms",
    "reload_guard_ms",
    "expiry_delay_ms",
    "watch_debounce_ms",
    "watch_step_ms",
)


@dataclass(frozen=True, slots=True)
class ResyncConfig:
    """Configuration for a reconciliation engine.

    Attributes:
        root: Project root. The VCS index is looked up relative to it.
              Always resolved to an absolute path on construction.
        marker_file: Marker file the agent appends changed paths to.
            ``~`` is expanded; relative paths resolve against ``root``.
        vcs_index: VCS index file whose mtime signals a commit,
            relative to ``root``.
        debounce_ms: Quiet window before a burst of events for one path fires.
        cooldown_ms: Window after a reload during which events for the same
            path are dropped (the reload's own writes).
        settle_ms: Delay between session end and the flush of deferred paths.
        reload_guard_ms: How long after a reload text changes are still
            attributed to the reload rather than the user.
        expiry_delay_ms: Delay before edit-expiry is armed on fresh highlights.
        watch_debounce_ms: watchfiles' own batching window.
        watch_step_ms: watchfiles' polling step (also bounds stop latency).
        highlight_changes: Apply line highlights for reconciled changes.
        highlight_tag: Attribute tag passed to the editor for changed lines.
        verbose: Print per-reconciliation timing summaries to stderr.

    """

    root: Path = field(default_factory=Path.cwd)
    marker_file: Path = field(default_factory=lambda: Path("~/.cache/resync-changes"))
    vcs_index: Path = field(default_factory=lambda: Path(".git/index"))
    debounce_ms: int = 100
    cooldown_ms: int = 500
    settle_ms: int = 200
    reload_guard_ms: int = 300
    expiry_delay_ms: int = 500
    watch_debounce_ms: int = 50
    watch_step_ms: int = 50
    highlight_changes: bool = True
    highlight_tag: str = "ResyncChange"
    verbose: bool = False

    def __post_init__(self) -> None:
        # Resolve root to absolute so that watchfiles (which returns
        # absolute paths) can be compared against derived paths.
        if not self.root.is_absolute():
            object.__setattr__(self, "root", self.root.resolve())
        for name in _TIMING_FIELDS:
            value = getattr(self, name)
            if not isinstance(value, int) or value < 0:
                msg = f"{name} must be a non-negative integer, got {value!r}"
                raise ConfigError(msg)

    @property
    def marker_path(self) -> Path:
        """Absolute path to the marker file."""
        path = self.marker_file.expanduser()
        if path.is_absolute():
            return path
        return self.root / path

    @property
    def vcs_index_path(self) -> Path:
        """Absolute path to the VCS index file."""
        if self.vcs_index.is_absolute():
            return self.vcs_index
        return self.root / self.vcs_index

    @property
    def debounce_s(self) -> float:
        return self.debounce_ms / 1000

    @property
    def cooldown_s(self) -> float:
        return self.cooldown_ms / 1000

    @property
    def settle_s(self) -> float:
        return self.settle_ms / 1000

    @property
    def reload_guard_s(self) -> float:
        return self.reload_guard_ms / 1000

    @property
    def expiry_delay_s(self) -> float:
        return self.expiry_delay_ms / 1000
