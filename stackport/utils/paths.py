from pathlib import Path


def get_project_root() -> Path:
    """Get the project root directory.

    Walks up from the module location to find the project root,
    identified by the presence of pyproject.toml.

    Returns:
        Path to the project root directory
    """
    current = Path(__file__).resolve()

    for parent in [current, *current.parents]:
        if (parent / "pyproject.toml").exists():
            return parent

    # Fallback to three levels up (stackport/utils/paths.py -> project root)
    return Path(__file__).parent.parent.parent
