"""ideaboard: idea and task boards with stable ordering and chip filters.

The board engine lives in ``ideaboard.board``:

- ``positions``: gap-tolerant position keys and renumbering
- ``reorder``: plans and commits drag-and-drop moves
- ``filters``: filter chips compiled to a predicate
- ``view_model``: per-session board state with optimistic moves

``ideaboard.web`` serves the engine over HTTP and ``ideaboard.cli`` is the
command line entry point.
"""

try:
    from importlib.metadata import version as _get_version

    __version__ = _get_version("ideaboard")
except Exception:
    __version__ = "0.0.0-dev"

__all__ = ["__version__"]
