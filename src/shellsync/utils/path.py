from pathlib import Path
from typing import Optional, Union


def normalize_path(path: Union[str, Path], home: Optional[Path] = None, expanduser: bool = True) -> Path:
    if not home:
        home = Path.home()
    path = Path(path)
    if path.is_absolute():
        try:
            # Relative to home so it can be written as ~/...
            path = path.relative_to(home)
        except ValueError:
            return path
    path = (Path('~') / path)
    if expanduser:
        path = path.expanduser()
    return path


def display_path(path: Union[str, Path], home: Optional[Path] = None) -> str:
    """Render a path the way a user would type it, e.g. ``~/.zsh/aliases.zsh``."""
    path = Path(path).expanduser()
    if not path.is_absolute():
        return str(path)
    return str(normalize_path(path, home, expanduser=False))
