"""
Filesystem locations for the call flow editor.

Works both from a source checkout and from a PyInstaller build:
- config.json is user data and sits in the app directory (the project root
  in a checkout, the folder holding the executable in a build)
- templates.yaml is bundled data and ships inside the package
"""

import sys
from pathlib import Path

PACKAGE_DIR = Path(__file__).parent


def get_app_dir() -> Path:
    """Directory that holds user-editable files such as config.json."""
    if getattr(sys, 'frozen', False):
        return Path(sys.executable).parent
    return PACKAGE_DIR.parent


def get_config_path() -> Path:
    """Path to the editor's config.json."""
    return get_app_dir() / "config.json"


def get_templates_path() -> Path:
    """
    Path to the bundled flow templates.

    PyInstaller unpacks package data under sys._MEIPASS, keeping the package
    folder name.
    """
    bundle_dir = getattr(sys, '_MEIPASS', None)
    if bundle_dir:
        return Path(bundle_dir) / PACKAGE_DIR.name / "templates.yaml"
    return PACKAGE_DIR / "templates.yaml"
