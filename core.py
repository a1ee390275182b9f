import parse

import os
import sys
import time
import subprocess
import contextlib
from collections import namedtuple
from enum import Enum
from typing import *

from global_variables import GITHUB_URL


class BootstrapError(Exception):
    pass


class FilesystemError(BootstrapError):
    def __init__(self, message: str, path: str=None):
        super().__init__(message)
        self.path = path


class PermissionDenied(FilesystemError):
    pass


class MissingPackageManager(BootstrapError):
    pass


def warn(message: str):
    print("Warning: {}".format(message), file=sys.stderr)


@contextlib.contextmanager
def filesystem_errors(action: str, path: str):
    """
    Turn OSError raised inside the block into FilesystemError / PermissionDenied.
    """
    try:
        yield
    except PermissionError as e:
        raise PermissionDenied("Cannot {} {}: {}".format(action, path, e.strerror), path) from e
    except OSError as e:
        raise FilesystemError("Cannot {} {}: {}".format(action, path, e.strerror or e), path) from e


class Config:
    """
    Settings of a single run, built once at startup.

    dotfiles_dir -- checkout holding zsh/zshrc, gitconfig, etc.
    zsh_custom_dir -- $ZSH_CUSTOM, themes and plugins are cloned below it
    skip_package_install -- don't stop when no package manager is found
    home -- directory the dotfiles are linked into
    """
    def __init__(self, dotfiles_dir: str, home: str=None, zsh_custom_dir: str=None,
                 skip_package_install: bool=False):
        self.home = os.path.expanduser(home or '~')
        self.dotfiles_dir = os.path.abspath(os.path.expanduser(dotfiles_dir))
        if zsh_custom_dir:
            self.zsh_custom_dir = os.path.expanduser(zsh_custom_dir)
        else:
            self.zsh_custom_dir = os.path.join(self.home, '.oh-my-zsh', 'custom')
        self.skip_package_install = skip_package_install

    @classmethod
    def from_env(cls, default_dotfiles_dir: str, environ: Mapping[str, str]=None):
        if environ is None:
            environ = os.environ
        return cls(dotfiles_dir=environ.get('DOTFILES_DIR') or default_dotfiles_dir,
                   home=environ.get('HOME') or None,
                   zsh_custom_dir=environ.get('ZSH_CUSTOM') or None,
                   skip_package_install=environ.get('SKIP_PACKAGE_INSTALL') == '1')

    def in_home(self, *parts: str) -> str:
        return os.path.join(self.home, *parts)

    def in_dotfiles(self, *parts: str) -> str:
        return os.path.join(self.dotfiles_dir, *parts)


class LinkSpec(namedtuple('LinkSpec', ['source', 'dest'])):
    def backup_path(self, timestamp: float) -> str:
        return '{}.{}.bak'.format(self.dest, int(timestamp))


_GITHUB_ID = parse.compile('{owner}/{name}')


class RepoSpec(namedtuple('RepoSpec', ['remote', 'dest'])):
    """
    remote -- `owner/name` on GitHub or a full clone URL
    """
    def __new__(cls, remote: str, dest: str):
        if not cls.is_url(remote):
            found = _GITHUB_ID.parse(remote)
            if found is None or '/' in found['name'] or any(c.isspace() for c in remote):
                raise ValueError("Not a GitHub repo identifier: {!r}".format(remote))
        return super().__new__(cls, remote, dest)

    @staticmethod
    def is_url(remote: str) -> bool:
        return '://' in remote or remote.startswith('git@')

    @property
    def url(self) -> str:
        if self.is_url(self.remote):
            return self.remote
        return GITHUB_URL.format(self.remote)


class LinkOutcome(Enum):
    AlreadyLinked = 1
    Linked = 2
    Replaced = 3
    BackedUp = 4


class CloneResult(Enum):
    AlreadyPresent = 1
    Cloned = 2
    Occupied = 3
    Failed = 4


def resolve(path: str) -> str:
    try:
        return os.path.realpath(path)
    except (OSError, ValueError):
        return path


def apply_link(spec: LinkSpec, clock: Callable[[], float]=time.time) -> LinkOutcome:
    """
    Make spec.dest a symlink to spec.source.

    A file or directory in the way is renamed to `<dest>.<timestamp>.bak`,
    a symlink pointing elsewhere is replaced. Calling it again is a no-op.
    """
    source = resolve(spec.source)
    dest = spec.dest
    outcome = LinkOutcome.Linked
    if not os.path.lexists(source):
        warn("{} does not exist, the link will dangle".format(source))

    if os.path.lexists(dest) and not os.path.islink(dest):
        backup = spec.backup_path(clock())
        print("Backing up {} → {}".format(dest, backup))
        with filesystem_errors('back up', dest):
            os.rename(dest, backup)
        outcome = LinkOutcome.BackedUp

    if os.path.islink(dest):
        if resolve(dest) == source:
            print("Symlink {} already points to {}".format(dest, source))
            return LinkOutcome.AlreadyLinked
        print("Replacing symlink {} → {}".format(dest, source))
        with filesystem_errors('remove', dest):
            os.remove(dest)
        outcome = LinkOutcome.Replaced

    parent = os.path.dirname(dest)
    if parent:
        with filesystem_errors('create directory', parent):
            os.makedirs(parent, exist_ok=True)

    tmp = '{}.{}.tmp'.format(dest, os.getpid())
    with filesystem_errors('link', dest):
        if os.path.lexists(tmp):
            os.remove(tmp)
        os.symlink(source, tmp)
        try:
            os.replace(tmp, dest)
        except OSError:
            os.remove(tmp)
            raise
    print("Linked {} → {}".format(dest, source))
    return outcome


def ensure_repo_cloned(spec: RepoSpec, git) -> CloneResult:
    """
    Clone spec.remote into spec.dest unless something is there already.

    git -- anything with `clone(url, dest) -> bool`
    Existing clones are not fetched or pulled.
    """
    if os.path.exists(os.path.join(spec.dest, '.git')):
        print("✔ Repo already exists at {}".format(spec.dest))
        return CloneResult.AlreadyPresent
    if os.path.lexists(spec.dest):
        print("⚠ {} exists but is not a git repo, skipping".format(spec.dest))
        return CloneResult.Occupied
    print("→ Cloning {} → {}".format(spec.url, spec.dest))
    if git.clone(spec.url, spec.dest):
        return CloneResult.Cloned
    return CloneResult.Failed


class Prompter:
    """
    Ask yes/no questions.
    answers -- canned answers consumed before falling back to input_func
    assume -- answer every question with this value without asking
    """
    def __init__(self, answers: Iterable[str]=None, input_func: Callable[[str], str]=input,
                 assume: bool=None):
        self.answers_ = list(answers or [])
        self.input_func_ = input_func
        self.assume_ = assume

    def read(self, prompt: str) -> Optional[str]:
        if self.answers_:
            answer = self.answers_.pop(0)
            print(prompt + answer)
            return answer
        try:
            return self.input_func_(prompt)
        except EOFError:
            return None

    def ask(self, question: str, default: bool=False) -> bool:
        prompt = "{} [{}] ".format(question, 'Y/n' if default else 'y/N')
        if self.assume_ is not None:
            print(prompt + ('y' if self.assume_ else 'n'))
            return self.assume_
        answer = self.read(prompt)
        if answer is None or answer.strip() == '':
            return default
        return answer.strip().lower() in ('y', 'yes')


class Command:
    """
    Wraps a command to be executed and an explanation.
    A string runs through bash, a list is executed directly.
    """

    class Mode(Enum):
        Interactive = 1
        Silent = 2

    mode = Mode.Silent
    prompter = Prompter()

    def __init__(self, command: Union[str, Sequence[str]], explanation: str=None,
                 postprint: str=None, env: Mapping[str, str]=None):
        self.command_ = command
        self.explanation_ = explanation
        self.postprint_ = postprint
        self.env_ = env
        self.returncode = None

    def argv(self) -> List[str]:
        if isinstance(self.command_, str):
            return ['/bin/bash', '-c', self.command_]
        return list(self.command_)

    def __str__(self):
        if isinstance(self.command_, str):
            return self.command_
        return ' '.join(self.command_)

    def __call__(self) -> bool:
        if self.explanation_ is not None:
            print(self.explanation_)
        if Command.mode == Command.Mode.Interactive:
            print("Processing command:", self)
            if not Command.prompter.ask('Confirm', default=True):
                self.returncode = 1
                return False
        env = None
        if self.env_ is not None:
            env = dict(os.environ)
            env.update(self.env_)
        try:
            self.returncode = subprocess.call(self.argv(), env=env)
        except OSError as e:
            print("Unable to run {}: {}".format(self, e.strerror or e), file=sys.stderr)
            self.returncode = 127
        if self.postprint_ is not None:
            print(self.postprint_)
        return self.returncode == 0


class Reminder:
    def __init__(self, note: str):
        self.note_ = note

    def __call__(self):
        print("Note: {}".format(self.note_))
