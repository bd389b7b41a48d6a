#!/usr/bin/env python3
"""
Plugin registry for ShellSync.

Enabled oh-my-zsh plugins are the words of the ``plugins=(...)`` assignment
in the local plugin file. Enabling appends a word and disabling removes one;
the order of the other entries and the rest of the file are left alone.
"""

import re
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Tuple, Union

from .errors import InvalidIdentifierError
from .fragments import atomic_write, read_text
from .locks import LockRegistry
from ..utils.logger import get_logger
from ..utils.path import display_path

# Commented-out assignments do not match because of the line anchor
_ASSIGNMENT_RE = re.compile(r"^(?P<indent>[ \t]*)plugins=\(", re.MULTILINE)
_COMMENT_RE = re.compile(r"(^|\s)#.*")
_PLUGIN_NAME_RE = re.compile(r"^[A-Za-z0-9._+@-]+$")

BUILTIN_NOTE = "Built-in Oh-My-Zsh plugin - no installation required"


@dataclass
class Plugin:
    """A zsh plugin and its state on this machine."""
    name: str
    enabled: bool = False
    installed: bool = False
    description: Optional[str] = None
    repository: Optional[str] = None
    install_command: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _builtin(name: str, description: str, note: str = BUILTIN_NOTE) -> Tuple[str, str, str, str]:
    return (name, description, f"https://github.com/ohmyzsh/ohmyzsh/tree/master/plugins/{name}", note)


def _custom(name: str, description: str, repository: str) -> Tuple[str, str, str, str]:
    return (name, description, repository, f"cd ~/.oh-my-zsh/custom/plugins\ngit clone {repository}")


# Popular plugins offered for enabling: (name, description, repository, install instructions)
PLUGIN_CATALOG: List[Tuple[str, str, str, str]] = [
    _builtin("git", "Git aliases and functions"),
    _custom("zsh-autosuggestions", "Fish-like autosuggestions for zsh",
            "https://github.com/zsh-users/zsh-autosuggestions"),
    _custom("zsh-syntax-highlighting", "Fish shell like syntax highlighting for Zsh",
            "https://github.com/zsh-users/zsh-syntax-highlighting.git"),
    _custom("alias-tips", "Help remember your aliases by showing tips when you type a command",
            "https://github.com/djui/alias-tips.git"),
    _builtin("fzf", "Fuzzy finder integration for command history and file search",
             "Built-in Oh-My-Zsh plugin - requires fzf to be installed:\n"
             "sudo apt install fzf  # Ubuntu/Debian\n"
             "brew install fzf      # macOS"),
    _custom("fzf-tab", "Replace zsh tab completion with fzf", "https://github.com/Aloxaf/fzf-tab"),
    _builtin("docker", "Docker completion and aliases"),
    _builtin("docker-compose", "Docker-compose completion"),
    _builtin("kubectl", "Kubectl completion and aliases"),
    _builtin("npm", "NPM completion and aliases"),
    _builtin("node", "Node.js completion"),
    _builtin("rust", "Rust and Cargo completion"),
    _builtin("python", "Python completion and utilities"),
    _builtin("sudo", "Easily prefix your commands with sudo by pressing ESC twice"),
    _builtin("web-search", "Search the web from your terminal"),
    _builtin("history", "Enhanced history utilities"),
    _builtin("colored-man-pages", "Colorize man pages"),
    _builtin("command-not-found", "Suggest package to install when command not found"),
]

_CATALOG_INDEX = {entry[0]: entry for entry in PLUGIN_CATALOG}


def oh_my_zsh_probe(oh_my_zsh_dir: Union[str, Path]) -> Callable[[str], bool]:
    """Build an ``installed`` probe looking in oh-my-zsh's plugin directories."""
    base = Path(oh_my_zsh_dir).expanduser()

    def probe(name: str) -> bool:
        return (base / 'plugins' / name).exists() or (base / 'custom' / 'plugins' / name).exists()

    return probe


class Assignment(NamedTuple):
    """Location and words of a ``plugins=(...)`` assignment."""
    start: int
    end: int
    indent: str
    names: List[str]
    multiline: bool


def find_assignment(content: str) -> Optional[Assignment]:
    """
    Locate the first ``plugins=(...)`` assignment.

    ``#`` comments inside the parentheses are skipped, including any ``)``
    they contain. An assignment that is never closed is ignored.
    """
    match = _ASSIGNMENT_RE.search(content)
    if not match:
        return None

    names: List[str] = []
    pos = match.end()
    while True:
        newline = content.find("\n", pos)
        line_end = len(content) if newline == -1 else newline
        code = _COMMENT_RE.sub("", content[pos:line_end])
        close = code.find(")")
        if close != -1:
            names.extend(code[:close].split())
            end = pos + close + 1
            return Assignment(
                start=match.start(),
                end=end,
                indent=match.group('indent'),
                names=names,
                multiline='\n' in content[match.start():end],
            )
        names.extend(code.split())
        if newline == -1:
            return None
        pos = newline + 1


def parse_plugins(content: str) -> List[str]:
    """Words of the first ``plugins=(...)`` assignment, in order."""
    assignment = find_assignment(content)
    return assignment.names if assignment else []


def _render(names: List[str], indent: str, multiline: bool) -> str:
    if multiline and names:
        inner = ''.join(f"{indent}  {name}\n" for name in names)
        return f"{indent}plugins=(\n{inner}{indent})"
    return f"{indent}plugins=({' '.join(names)})"


class PluginRegistry:
    """Enabled-plugin list stored in the ``plugins=(...)`` line."""

    def __init__(
        self,
        path: Union[str, Path],
        locks: Optional[LockRegistry] = None,
        installed_probe: Optional[Callable[[str], bool]] = None,
        catalog: Optional[List[Tuple[str, str, str, str]]] = None,
    ):
        """
        Initialize the plugin registry.

        Args:
            path: File holding the ``plugins=(...)`` assignment
            locks: Lock registry shared with the config store
            installed_probe: Callable telling whether a plugin is installed
            catalog: Plugins offered for enabling (defaults to PLUGIN_CATALOG)
        """
        self.logger = get_logger(f"{__name__}.PluginRegistry")
        self.path = Path(path).expanduser()
        self.locks = locks or LockRegistry()
        self.installed_probe = installed_probe or (lambda name: False)
        self.catalog = catalog if catalog is not None else PLUGIN_CATALOG
        self._index = {entry[0]: entry for entry in self.catalog}

    def _plugin(self, name: str, enabled: bool) -> Plugin:
        entry = self._index.get(name) or _CATALOG_INDEX.get(name)
        _, description, repository, install_command = entry if entry else (name, None, None, None)
        return Plugin(
            name=name,
            enabled=enabled,
            installed=bool(self.installed_probe(name)),
            description=description,
            repository=repository,
            install_command=install_command,
        )

    def enabled_names(self) -> List[str]:
        """Enabled plugin names in registry order, duplicates dropped."""
        with self.locks.hold(self.path):
            content = read_text(self.path)
        seen = []
        for name in parse_plugins(content):
            if name not in seen:
                seen.append(name)
        return seen

    def list_enabled(self) -> List[Plugin]:
        return [self._plugin(name, True) for name in self.enabled_names()]

    def list_available(self) -> List[Plugin]:
        """The catalog, annotated with enabled and installed state."""
        enabled = set(self.enabled_names())
        return [self._plugin(entry[0], entry[0] in enabled) for entry in self.catalog]

    @staticmethod
    def validate_name(name: str) -> str:
        if not name or not _PLUGIN_NAME_RE.match(name):
            raise InvalidIdentifierError(name, "plugin names may only contain letters, digits and . _ + @ -")
        return name

    def _rewrite(self, update: Callable[[List[str]], Optional[List[str]]]) -> bool:
        with self.locks.hold(self.path):
            content = read_text(self.path)
            assignment = find_assignment(content)
            names = assignment.names if assignment else []

            new_names = update(names)
            if new_names is None:
                return False

            if assignment:
                line = _render(new_names, assignment.indent, assignment.multiline)
                new_content = content[:assignment.start] + line + content[assignment.end:]
            else:
                prefix = content if not content or content.endswith('\n') else content + '\n'
                new_content = prefix + _render(new_names, '', False) + '\n'

            atomic_write(self.path, new_content)
            return True

    def add(self, name: str) -> bool:
        """Enable a plugin. Returns False if it was already enabled."""
        self.validate_name(name)

        def append(names: List[str]) -> Optional[List[str]]:
            if name in names:
                return None
            return names + [name]

        changed = self._rewrite(append)
        if changed:
            self.logger.info(f"Enabled plugin '{name}' in {display_path(self.path)}")
        else:
            self.logger.debug(f"Plugin '{name}' already enabled")
        return changed

    def remove(self, name: str) -> bool:
        """Disable a plugin. Returns False if it was not enabled."""

        def drop(names: List[str]) -> Optional[List[str]]:
            if name not in names:
                return None
            return [n for n in names if n != name]

        changed = self._rewrite(drop)
        if changed:
            self.logger.info(f"Disabled plugin '{name}' in {display_path(self.path)}")
        else:
            self.logger.debug(f"Plugin '{name}' was not enabled")
        return changed
