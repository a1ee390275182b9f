from global_variables import *
from core import *

import appdirs

from typing import *
import os
import json
import time
import getpass
import shutil


class Singleton(type):
    _instances = {}

    def __call__(cls, *args, **kwargs):
        if cls not in cls._instances:
            cls._instances[cls] = super(Singleton, cls).__call__(*args, **kwargs)
        return cls._instances[cls]


class State(metaclass=Singleton):
    """
    Answers worth remembering between runs, kept as json in the user config dir.
    """
    def __init__(self, path: str=None):
        self.path = path or '{}/{}'.format(appdirs.user_config_dir(PROJECT_NAME), STATE_FILE_NAME)
        self.config = {}
        if os.path.exists(self.path):
            try:
                with open(self.path, 'r') as f:
                    self.config.update(json.load(f))
            except (OSError, ValueError) as e:
                warn("ignoring unreadable state file {}: {}".format(self.path, e))

    def __getitem__(self, item):
        return self.config[item]

    def __setitem__(self, key, value):
        self.config[key] = value

    def get(self, key, default=None):
        return self.config.get(key, default)

    def flush(self):
        dirname = os.path.dirname(self.path)
        with filesystem_errors('write state to', self.path):
            if not os.path.exists(dirname):
                os.makedirs(dirname)
            with open(self.path, 'w') as f:
                json.dump(self.config, f)


class GitClient:
    def clone(self, url: str, dest: str) -> bool:
        return Command(['git', 'clone', url, dest])()


class AptInstaller:
    """
    PackageInstaller backed by apt-get, runs through sudo unless we are root.
    """
    name = 'apt-get'

    def __init__(self, which: Callable[[str], Optional[str]]=shutil.which):
        self.which_ = which

    def is_available(self) -> bool:
        return self.which_('apt-get') is not None

    def sudo(self) -> List[str]:
        if os.geteuid() == 0 or self.which_('sudo') is None:
            return []
        return ['sudo']

    def update(self) -> bool:
        return Command(self.sudo() + ['apt-get', 'update', '-y'])()

    def install(self, packages: Sequence[str]) -> bool:
        return Command(self.sudo() + ['apt-get', 'install', '-y'] + list(packages))()


class OhMyZshInstaller:
    """
    Runs the upstream installer without letting it start zsh, chsh or touch .zshrc.
    """
    def __init__(self, target: str, url: str=OH_MY_ZSH_INSTALLER):
        self.target_ = target
        self.url_ = url

    def __call__(self) -> bool:
        return Command('sh -c "$(curl -fsSL {})"'.format(self.url_),
                       env={'RUNZSH': 'no', 'CHSH': 'no', 'KEEP_ZSHRC': 'yes',
                            'ZSH': self.target_})()


class Step:
    def __init__(self):
        self.warnings = []

    def warn(self, message: str):
        warn(message)
        self.warnings.append(message)


class Installer(Step):
    """
    Installs the packages providing commands we can't find on PATH.
    """
    def __init__(self, config: Config, packager=None,
                 which: Callable[[str], Optional[str]]=shutil.which,
                 cmd_pkg_map: Mapping[str, str]=CMD_PKG_MAP):
        super().__init__()
        self.config_ = config
        self.packager_ = packager or AptInstaller(which)
        self.which_ = which
        self.cmd_pkg_map_ = cmd_pkg_map

    def missing_commands(self) -> List[str]:
        return [cmd for cmd in self.cmd_pkg_map_ if self.which_(cmd) is None]

    def missing_packages(self) -> List[str]:
        packages = []
        for cmd in self.missing_commands():
            if self.cmd_pkg_map_[cmd] not in packages:
                packages.append(self.cmd_pkg_map_[cmd])
        return packages

    def __call__(self):
        name = getattr(self.packager_, 'name', 'package manager')
        if not self.packager_.is_available():
            if not self.config_.skip_package_install:
                raise MissingPackageManager(
                    "{} not found. Set SKIP_PACKAGE_INSTALL=1 to skip installs.".format(name))
            self.warn("{} not found; skipping package installs".format(name))
            return
        packages = self.missing_packages()
        if not packages:
            print("All required commands present")
            return
        print("Updating {} cache".format(name))
        if not self.packager_.update():
            self.warn("{} update failed; continuing".format(name))
        print("Installing packages: {}".format(' '.join(packages)))
        if not self.packager_.install(packages):
            self.warn("{} install failed; continuing".format(name))


class DotfilesLinker(Step):
    def __init__(self, config: Config, dotfiles: Sequence[Tuple[str, str]]=DOTFILES,
                 clock: Callable[[], float]=time.time):
        super().__init__()
        self.config_ = config
        self.dotfiles_ = dotfiles
        self.clock_ = clock

    def specs(self) -> List[LinkSpec]:
        return [LinkSpec(self.config_.in_dotfiles(src), self.config_.in_home(dest))
                for src, dest in self.dotfiles_]

    def __call__(self) -> Dict[str, LinkOutcome]:
        outcomes = {}
        for spec in self.specs():
            try:
                outcomes[spec.dest] = apply_link(spec, self.clock_)
            except BootstrapError as e:
                self.warn(str(e))
        return outcomes


class ShellChanger(Step):
    """
    Offers to make zsh the login shell. A "no" is remembered in State.
    """
    def __init__(self, prompter: Prompter, state: State,
                 which: Callable[[str], Optional[str]]=shutil.which,
                 environ: Mapping[str, str]=None):
        super().__init__()
        self.prompter_ = prompter
        self.state_ = state
        self.which_ = which
        self.environ_ = os.environ if environ is None else environ

    def __call__(self):
        zsh = self.which_('zsh')
        if zsh is None:
            self.warn("zsh not found; cannot make it the default shell.")
            return
        if self.environ_.get('SHELL') == zsh:
            print("zsh is already the default shell.")
            return
        if self.which_('chsh') is None:
            self.warn("'chsh' not found; cannot change default shell automatically.")
            return
        if self.state_.get('declined_shell_change'):
            print("Shell change was declined on a previous run, skipping.")
            return
        if not self.prompter_.ask("Make zsh your default shell?"):
            print("Skipping shell change.")
            self.state_['declined_shell_change'] = True
            return
        user = self.environ_.get('USER') or getpass.getuser()
        print("Changing default shell to zsh for {}...".format(user))
        if Command(['chsh', '-s', zsh, user])():
            return
        print("Standard chsh failed; attempting with sudo...")
        if not Command(['sudo', 'chsh', '-s', zsh, user])():
            self.warn("could not change the default shell to {}".format(zsh))


class ZshSetup(Step):
    """
    Oh My Zsh, powerlevel10k, plugins and fzf.
    """
    def __init__(self, config: Config, git=None, oh_my_zsh: Callable[[], bool]=None):
        super().__init__()
        self.config_ = config
        self.git_ = git or GitClient()
        self.oh_my_zsh_ = oh_my_zsh or OhMyZshInstaller(config.in_home('.oh-my-zsh'))

    def clone(self, remote: str, dest: str) -> CloneResult:
        result = ensure_repo_cloned(RepoSpec(remote, dest), self.git_)
        if result == CloneResult.Occupied:
            self.warnings.append("{} exists but is not a git repo".format(dest))
        elif result == CloneResult.Failed:
            self.warn("cloning {} into {} failed".format(remote, dest))
        return result

    def install_oh_my_zsh(self):
        if os.path.isdir(self.config_.in_home('.oh-my-zsh')):
            print("Oh My Zsh already installed")
            return
        print("Installing Oh My Zsh (non-interactive)")
        if not self.oh_my_zsh_():
            self.warn("Oh My Zsh installer failed; continuing")

    def install_plugins(self):
        plugins_dir = os.path.join(self.config_.zsh_custom_dir, 'plugins')
        try:
            with filesystem_errors('create directory', plugins_dir):
                os.makedirs(plugins_dir, exist_ok=True)
        except BootstrapError as e:
            self.warn(str(e))
            return
        for repo, name in OMZ_PLUGINS:
            self.clone(repo, os.path.join(plugins_dir, name))

    def install_fzf(self):
        fzf = self.config_.in_home('.fzf')
        if os.path.isdir(fzf):
            print("fzf already cloned")
            return
        self.clone(FZF_REPO, fzf)
        # the fzf installer edits shell rc files, leave it to the user
        Reminder("To finish fzf setup, run: {}/install "
                 "(you can pass --all for non-interactive install)".format(fzf))()

    def __call__(self):
        self.install_oh_my_zsh()
        repo, name = THEME
        self.clone(repo, os.path.join(self.config_.zsh_custom_dir, 'themes', name))
        self.install_plugins()
        self.install_fzf()


class Bootstrapper:
    """
    Runs every step in order. Only a missing package manager stops the run,
    everything else ends up in `warnings`.
    """
    def __init__(self, config: Config, prompter: Prompter=None, git=None, packager=None,
                 oh_my_zsh: Callable[[], bool]=None, state: State=None,
                 which: Callable[[str], Optional[str]]=shutil.which,
                 environ: Mapping[str, str]=None, clock: Callable[[], float]=time.time):
        self.config = config
        self.state = state or State()
        prompter = prompter or Prompter()
        self.installer = Installer(config, packager, which)
        self.linker = DotfilesLinker(config, clock=clock)
        self.shell = ShellChanger(prompter, self.state, which, environ)
        self.zsh = ZshSetup(config, git, oh_my_zsh)
        self.own_warnings_ = []

    @property
    def warnings(self) -> List[str]:
        collected = []
        for step in (self.installer, self.linker, self.shell, self.zsh):
            collected.extend(step.warnings)
        return collected + self.own_warnings_

    def warn(self, message: str):
        warn(message)
        self.own_warnings_.append(message)

    def ensure_local_zsh(self):
        path = self.config.in_home(LOCAL_ZSH)
        if os.path.lexists(path):
            return
        with filesystem_errors('create', path):
            open(path, 'a').close()

    def run(self) -> List[str]:
        self.installer()
        print("Using DOTFILES_DIR={}".format(self.config.dotfiles_dir))
        self.linker()
        self.shell()
        self.zsh()
        print("Installation steps completed. To apply changes, open a new shell or run: "
              "source {}".format(self.config.in_home('.zshrc')))
        try:
            self.ensure_local_zsh()
        except BootstrapError as e:
            self.warn(str(e))
        try:
            self.state.flush()
        except BootstrapError as e:
            self.warn(str(e))
        return self.warnings
