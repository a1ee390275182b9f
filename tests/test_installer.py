"""Tests for the prerequisite installer."""

from collections import OrderedDict
from unittest.mock import patch

import pytest

import singletones
from conftest import FakePackager, which_all_but
from core import Config, MissingPackageManager
from singletones import AptInstaller, Installer


@pytest.fixture
def skipping_config(dotfiles, home):
    return Config(str(dotfiles), home=str(home), skip_package_install=True)


class TestInstaller:

    def test_missing_commands_map_to_packages(self, config, packager):
        installer = Installer(config, packager, which_all_but('htop', 'fdfind'))

        assert installer.missing_commands() == ['htop', 'fdfind']
        installer()

        assert packager.updates == 1
        assert packager.installs == [['htop', 'fd-find']]
        assert installer.warnings == []

    def test_packages_are_deduplicated(self, config, packager):
        cmd_pkg_map = OrderedDict([('fd', 'fd-find'), ('fdfind', 'fd-find'), ('zsh', 'zsh')])
        installer = Installer(config, packager, which_all_but('fd', 'fdfind', 'zsh'), cmd_pkg_map)

        assert installer.missing_packages() == ['fd-find', 'zsh']
        installer()
        assert packager.installs == [['fd-find', 'zsh']]

    def test_progress_names_the_package_manager(self, config, packager, capsys):
        Installer(config, packager, which_all_but('tmux'))()

        out = capsys.readouterr().out
        assert "Updating apt-get cache" in out
        assert "Installing packages: tmux" in out

    def test_nothing_missing(self, config, packager, capsys):
        Installer(config, packager, which_all_but())()

        assert packager.updates == 0
        assert packager.installs == []
        assert "All required commands present" in capsys.readouterr().out

    def test_no_package_manager_is_fatal(self, config):
        packager = FakePackager(available=False)

        with pytest.raises(MissingPackageManager, match="SKIP_PACKAGE_INSTALL=1"):
            Installer(config, packager, which_all_but('zsh'))()

    def test_no_package_manager_can_be_skipped(self, skipping_config, capsys):
        packager = FakePackager(available=False)
        installer = Installer(skipping_config, packager, which_all_but('zsh'))

        installer()

        assert packager.installs == []
        assert installer.warnings == ["apt-get not found; skipping package installs"]
        assert "Warning: apt-get not found" in capsys.readouterr().err

    def test_failed_install_is_a_warning(self, config):
        packager = FakePackager(update_ok=False, install_ok=False)
        installer = Installer(config, packager, which_all_but('git'))

        installer()

        assert packager.installs == [['git']]
        assert len(installer.warnings) == 2


class TestAptInstaller:

    def test_uses_sudo_when_not_root(self, monkeypatch):
        monkeypatch.setattr(singletones.os, 'geteuid', lambda: 1000)
        apt = AptInstaller(which_all_but())

        with patch('core.subprocess.call', return_value=0) as call:
            assert apt.install(['zsh', 'fd-find'])

        assert call.call_args[0][0] == ['sudo', 'apt-get', 'install', '-y', 'zsh', 'fd-find']

    def test_root_runs_apt_directly(self, monkeypatch):
        monkeypatch.setattr(singletones.os, 'geteuid', lambda: 0)
        apt = AptInstaller(which_all_but())

        with patch('core.subprocess.call', return_value=100) as call:
            assert not apt.update()

        assert call.call_args[0][0] == ['apt-get', 'update', '-y']

    def test_availability(self):
        assert AptInstaller(which_all_but()).is_available()
        assert not AptInstaller(which_all_but('apt-get')).is_available()
