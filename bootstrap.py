#! /usr/bin/python3

"""
Environment bootstrapper: installs missing packages, links dotfiles,
sets up Oh My Zsh with powerlevel10k, plugins and fzf.

Find more in README.md.
"""

from singletones import *

import argparse
import os
import sys


def parse_args(argv: List[str]=None):
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument('--dotfiles-dir', help='dotfiles checkout to link from [$DOTFILES_DIR or this directory]')
    parser.add_argument('--zsh-custom', help='Oh My Zsh custom dir [$ZSH_CUSTOM or ~/.oh-my-zsh/custom]')
    parser.add_argument('--skip-package-install', action='store_true',
                        help='keep going when apt-get is missing [$SKIP_PACKAGE_INSTALL=1]')
    answers = parser.add_mutually_exclusive_group()
    answers.add_argument('--yes', action='store_true', help='answer yes to every question')
    answers.add_argument('--no-input', action='store_true', help='answer no to every question')
    parser.add_argument('--confirm', action='store_true', help='confirm each external command')
    return parser.parse_args(argv)


def make_config(args, environ: Mapping[str, str]=None) -> Config:
    environ = dict(os.environ if environ is None else environ)
    if args.dotfiles_dir:
        environ['DOTFILES_DIR'] = args.dotfiles_dir
    if args.zsh_custom:
        environ['ZSH_CUSTOM'] = args.zsh_custom
    if args.skip_package_install:
        environ['SKIP_PACKAGE_INSTALL'] = '1'
    return Config.from_env(os.path.dirname(os.path.abspath(__file__)), environ)


def main(argv: List[str]=None) -> int:
    args = parse_args(argv)
    config = make_config(args)
    missing = [src for src, _ in DOTFILES if not os.path.exists(config.in_dotfiles(src))]
    if missing:
        # linking anyway would move real dotfiles aside for dangling links
        print("Error: {} has no {}. Pass --dotfiles-dir or set DOTFILES_DIR to the dotfiles checkout."
              .format(config.dotfiles_dir, ', '.join(missing)), file=sys.stderr)
        return 1

    assume = None
    if args.yes:
        assume = True
    elif args.no_input:
        assume = False
    prompter = Prompter(assume=assume)
    Command.prompter = prompter
    if args.confirm:
        Command.mode = Command.Mode.Interactive

    try:
        Bootstrapper(config, prompter).run()
    except MissingPackageManager as e:
        print("Error: {}".format(e), file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
