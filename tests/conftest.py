"""Shared pytest fixtures: throwaway home, dotfiles checkout and fake collaborators."""

import os

import pytest

from core import Command, Config, Prompter
from singletones import Singleton


class FakeGit:
    """Records clones and fakes a working copy by creating `<dest>/.git`."""

    def __init__(self, succeed=True):
        self.succeed = succeed
        self.calls = []

    def clone(self, url, dest):
        self.calls.append((url, dest))
        if not self.succeed:
            return False
        os.makedirs(os.path.join(dest, '.git'))
        return True


class FakePackager:
    name = 'apt-get'

    def __init__(self, available=True, update_ok=True, install_ok=True):
        self.available = available
        self.update_ok = update_ok
        self.install_ok = install_ok
        self.updates = 0
        self.installs = []

    def is_available(self):
        return self.available

    def update(self):
        self.updates += 1
        return self.update_ok

    def install(self, packages):
        self.installs.append(list(packages))
        return self.install_ok


class FakeOhMyZsh:
    def __init__(self, target, succeed=True):
        self.target = target
        self.succeed = succeed
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.succeed:
            os.makedirs(self.target)
        return self.succeed


def which_all_but(*missing):
    def which(cmd):
        if cmd in missing:
            return None
        return '/usr/bin/' + cmd
    return which


@pytest.fixture(autouse=True)
def isolated_state(tmp_path, monkeypatch):
    """Keep State out of the real config dir and reset singletons and Command globals."""
    monkeypatch.setenv('XDG_CONFIG_HOME', str(tmp_path / 'xdg'))
    monkeypatch.setattr(Command, 'mode', Command.Mode.Silent)
    monkeypatch.setattr(Command, 'prompter', Prompter(assume=False))
    Singleton._instances.clear()
    yield
    Singleton._instances.clear()


@pytest.fixture
def home(tmp_path):
    path = tmp_path / 'home'
    path.mkdir()
    return path


@pytest.fixture
def dotfiles(tmp_path):
    repo = tmp_path / 'repo'
    (repo / 'zsh').mkdir(parents=True)
    (repo / 'zsh' / 'zshrc').write_text('# zshrc\n')
    (repo / 'zsh' / 'p10k.zsh').write_text('# p10k\n')
    (repo / 'gitconfig').write_text('[core]\n')
    return repo


@pytest.fixture
def config(home, dotfiles):
    return Config(str(dotfiles), home=str(home))


@pytest.fixture
def git():
    return FakeGit()


@pytest.fixture
def packager():
    return FakePackager()


@pytest.fixture
def oh_my_zsh(home):
    return FakeOhMyZsh(str(home / '.oh-my-zsh'))
