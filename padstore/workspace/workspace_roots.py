from pathlib import Path

from padstore.config.logger import get_logger
from padstore.util.format_utils import fmt_path

log = get_logger(__name__)

WORKSPACE_FOLDER_NAMES = ("RosePad Workspace", ".rosepad", "RosePadWorkspace")
"""Conventional names for a workspace folder, in order of preference."""


def is_workspace_folder_name(name: str) -> bool:
    return name.lower() in (n.lower() for n in WORKSPACE_FOLDER_NAMES)


def resolve_workspace_folder(base_dir: str | Path) -> Path:
    """
    The workspace root to use for a directory the user picked. A directory that is
    already named like a workspace is used as is. Otherwise an existing workspace
    folder inside it is preferred, and failing that the directory itself.
    """
    base_dir = Path(base_dir)
    if is_workspace_folder_name(base_dir.name):
        return base_dir

    for name in WORKSPACE_FOLDER_NAMES:
        candidate = base_dir / name
        if candidate.is_dir():
            log.info("Using workspace folder: %s", fmt_path(candidate))
            return candidate

    return base_dir


## Tests


def test_resolve_workspace_folder(tmp_path: Path):
    assert resolve_workspace_folder(tmp_path) == tmp_path

    named = tmp_path / "rosepad workspace"
    named.mkdir()
    assert resolve_workspace_folder(named) == named

    base = tmp_path / "docs"
    (base / ".rosepad").mkdir(parents=True)
    (base / "RosePadWorkspace").mkdir()
    assert resolve_workspace_folder(base) == base / ".rosepad"
