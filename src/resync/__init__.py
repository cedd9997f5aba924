"""Resync — keep open editor documents in sync with files changed elsewhere.

When an agent (or any external process) rewrites files an editor has
open, resync reloads clean documents, highlights the lines that changed,
keeps cursors in place, and never touches a document with unsaved edits.

Quick start::

    import asyncio
    import resync

    async def main(editor):
        engine = resync.ReconciliationEngine(editor, resync.load_config("."))
        engine.start()
        await engine.run()

Changes reach the engine three ways: the file watcher, the marker file
(``resync mark PATH``), and the announcement API.

"""

__version__ = "0.1.0.dev0"
__all__ = [
    "AnnouncementAPI",
    "ReconciliationEngine",
    "ResyncConfig",
    "__version__",
    "load_config",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import resync`` fast; the watcher stack is only imported
    when the engine is.
    """
    if name == "ResyncConfig":
        from resync.config import ResyncConfig

        return ResyncConfig

    if name == "load_config":
        from resync.config_loader import load_config

        return load_config

    if name == "ReconciliationEngine":
        from resync.reconcile.engine import ReconciliationEngine

        return ReconciliationEngine

    if name == "AnnouncementAPI":
        from resync.announce import AnnouncementAPI

        return AnnouncementAPI

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
