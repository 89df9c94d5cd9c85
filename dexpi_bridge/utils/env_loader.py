"""
Automatic .env file loader for the command-line entry points.

Loads a project-level .env so settings such as DEXPI_BRIDGE_CONFIG and
DEXPI_BRIDGE_LOG_LEVEL can be provided without exporting them.
"""

from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


def load_env_automatically(env_file: Optional[Path] = None) -> bool:
    """
    Automatically load .env file from project root.

    Args:
        env_file: Explicit .env path (default: project root / ".env")

    Returns:
        True if a .env file was found and loaded
    """
    if env_file is None:
        # dexpi_bridge/utils/ -> project root
        project_root = Path(__file__).parent.parent.parent
        env_file = project_root / ".env"

    if env_file.exists():
        load_dotenv(env_file)
        return True
    return False
