from collections import OrderedDict


PROJECT_NAME = 'dotfiles_bootstrap'
STATE_FILE_NAME = 'state.json'

GITHUB_URL = 'https://github.com/{}.git'
OH_MY_ZSH_INSTALLER = 'https://raw.githubusercontent.com/ohmyzsh/ohmyzsh/master/tools/install.sh'

# command -> package providing it
# e.g. `fdfind` is shipped by `fd-find` on Debian/Ubuntu
CMD_PKG_MAP = OrderedDict([
    ('git', 'git'),
    ('curl', 'curl'),
    ('zsh', 'zsh'),
    ('tmux', 'tmux'),
    ('htop', 'htop'),
    ('fdfind', 'fd-find'),
])

# (path inside the dotfiles repo, path inside $HOME)
DOTFILES = (
    ('zsh/zshrc', '.zshrc'),
    ('zsh/p10k.zsh', '.p10k.zsh'),
    ('gitconfig', '.gitconfig'),
)

THEME = ('romkatv/powerlevel10k', 'powerlevel10k')

# (github repo, directory name under $ZSH_CUSTOM/plugins)
OMZ_PLUGINS = (
    ('zsh-users/zsh-autosuggestions', 'zsh-autosuggestions'),
    ('zsh-users/zsh-syntax-highlighting', 'zsh-syntax-highlighting'),
    ('zsh-users/zsh-history-substring-search', 'zsh-history-substring-search'),
)

FZF_REPO = 'junegunn/fzf'

LOCAL_ZSH = '.local.zsh'
