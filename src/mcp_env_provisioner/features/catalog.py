"""Default per-feature action tables.

Each entry is data: an ordered list of idempotent steps for turning a
feature on (or switching its version) and for removing it.
"""
from mcp_env_provisioner.features.actions import (
    ActionContext,
    FeatureSpec,
    Narrate,
    Privileged,
    Shell,
    build_catalog,
    has_binary,
    has_value,
    needs_manager,
)

q = ActionContext.quote

NVM_INSTALL_URL = "https://raw.githubusercontent.com/nvm-sh/nvm/v0.40.1/install.sh"
PROXY_FIX_URL = (
    "https://github.com/domcloud/proxy-fix/releases/download/v0.1.3/proxy-fix-linux-amd64.tar.gz"
)
ENVMAN_PATH = "source ~/.config/envman/PATH.env"
LATEST_ALIASES = ("latest", "current")


def node_argument(value: str) -> str:
    if value in LATEST_ALIASES:
        return "node"
    if value in ("", "stable", "lts"):
        return "lts/*"
    return value


def webi_argument(value: str) -> str:
    """Version suffix for webinstall.dev, where a stable channel exists."""
    if value in LATEST_ALIASES:
        return ""
    if value in ("", "lts"):
        return "@stable"
    return "@" + value


def webi_latest_argument(value: str) -> str:
    """Version suffix for webinstall.dev packages without a stable channel."""
    if value in (*LATEST_ALIASES, "", "lts"):
        return ""
    return "@" + value


def rust_argument(value: str) -> str:
    if value in ("", *LATEST_ALIASES, "lts"):
        return "stable"
    return value


def dotnet_argument(value: str) -> str:
    if value in LATEST_ALIASES:
        return "--version latest"
    if value in ("", "lts", "stable"):
        return "--channel LTS"
    if value == "sts":
        return "--channel STS"
    return "--channel " + q(value)


def passthrough(value: str) -> str:
    return value


PYTHON = FeatureSpec(
    name="python",
    ecosystem="python",
    argument=passthrough,
    enable=(
        Narrate(lambda c: f"Changing Python engine to {c.version}"),
        Shell(
            "command -v pyenv &> /dev/null || (curl -sS https://webinstall.dev/pyenv | bash); "
            + ENVMAN_PATH
        ),
        Shell(
            lambda c: f"mkdir -p ~/tmp ~/.pyenv/versions/{q(c.version)} && cd ~/tmp",
            when=has_binary,
        ),
        Shell(
            lambda c: f"wget -O python.tar.zst {q(c.binary_url)} && tar -axf python.tar.zst && rm $_",
            when=has_binary,
        ),
        Shell(
            lambda c: f"mv ~/tmp/python/install/* ~/.pyenv/versions/{q(c.version)} || true ; "
            "rm -rf ~/tmp/python",
            when=has_binary,
        ),
        # venvs built from standalone builds need the shared lib on the path
        Shell("sed -i '\\|LD_LIBRARY_PATH=~/.pyenv/versions/|d' ~/.bashrc", log=False, when=has_binary),
        Shell(
            lambda c: f'echo "export LD_LIBRARY_PATH=~/.pyenv/versions/{c.version}:$LD_LIBRARY_PATH"'
            " >> ~/.bashrc",
            when=has_binary,
        ),
        Shell("cd ~/public_html 2>/dev/null || cd ~", log=False, when=has_binary),
        Shell(lambda c: f"pyenv install {q(c.version)} -s", when=needs_manager),
        Shell(lambda c: f"pyenv global {q(c.version_name)}"),
        Shell("source ~/.bashrc", log=False),
        Shell("python --version"),
    ),
    disable=(
        Narrate("Removing Python engine"),
        Shell("rm -rf ~/.pyenv"),
        Shell("sed -i '/pyenv/d' ~/.bashrc"),
    ),
)

NODE = FeatureSpec(
    name="node",
    argument=node_argument,
    enable=(
        Narrate(lambda c: f"Changing Node engine to {c.value or 'lts'}"),
        Shell(f"command -v nvm &> /dev/null || (curl -o- {NVM_INSTALL_URL} | bash) && source ~/.bashrc"),
        Shell(
            lambda c: f"nvm install {q(c.argument)} -b && nvm use {q(c.argument)}"
            f" && nvm alias default {q(c.argument)}"
        ),
        Shell("command -v corepack &> /dev/null || npm i -g corepack && corepack enable"),
        Shell(
            'grep -q COREPACK_ENABLE_AUTO_PIN ~/.bashrc || '
            'echo "export COREPACK_ENABLE_AUTO_PIN=0" >> ~/.bashrc'
        ),
        Shell("source ~/.bashrc", log=False),
        Shell("node --version"),
    ),
    disable=(
        Narrate("Removing Node engine"),
        Shell("rm -rf ~/.local/opt/node-* ~/.local/opt/node ~/Downloads/webi/node"),
        Shell("rm -rf ~/.cache/yarn ~/.cache/node ~/.config/yarn ~/.npm ~/.nvm"),
        Shell("pathman remove .local/opt/node/bin"),
    ),
)

RUBY = FeatureSpec(
    name="ruby",
    ecosystem="ruby",
    enable=(
        Narrate(lambda c: f"Changing Ruby engine to {c.version}"),
        Shell(
            "command -v rvm &> /dev/null || { curl -sSL https://rvm.io/mpapis.asc | gpg --import -; "
            "curl -sSL https://rvm.io/pkuczynski.asc | gpg --import -; }"
        ),
        Shell(
            "command -v rvm &> /dev/null || { curl -sSL https://get.rvm.io | bash -s stable; "
            "source ~/.rvm/scripts/rvm; rvm autolibs disable; }"
        ),
        Shell(lambda c: f"rvm install {q(c.version_name)} --no-docs"),
        Shell("ruby --version"),
    ),
    disable=(
        Narrate("Removing Ruby engine"),
        Shell("rm -rf ~/.rvm"),
        Shell("sed -i '/rvm\\|RVM/d' ~/.bashrc"),
    ),
)

JAVA = FeatureSpec(
    name="java",
    aliases=("jdk",),
    ecosystem="java",
    require_binary=True,
    argument=passthrough,
    enable=(
        Narrate(lambda c: f"Changing Java engine to {c.version}"),
        Shell(lambda c: f"mkdir -p ~/tmp ~/.local/java/jdk-{q(c.version)} && cd ~/tmp"),
        Shell(lambda c: f"wget {q(c.binary_url)} -O ~/tmp/jdk.tar.gz && tar -axf jdk.tar.gz && rm $_"),
        Shell(lambda c: f"mv ~/tmp/jdk-*/* ~/.local/java/jdk-{q(c.version)} || true ; rm -rf ~/tmp/jdk-*"),
        Shell(lambda c: f"ln -sfn ~/.local/java/jdk-{q(c.version)} ~/.local/java/jdk"),
        Shell("pathman add ~/.local/java/jdk/bin ; " + ENVMAN_PATH),
        Shell("cd ~/public_html 2>/dev/null || cd ~", log=False),
        Shell("java --version"),
    ),
    disable=(
        Narrate("Removing Java engine"),
        Shell("rm -rf ~/.local/java"),
        Shell("pathman remove ~/.local/java/jdk/bin"),
    ),
)

DENO = FeatureSpec(
    name="deno",
    argument=webi_argument,
    enable=(
        Narrate(lambda c: f"Changing Deno engine to {c.value or 'stable'}"),
        Shell(lambda c: f"curl -sS https://webinstall.dev/deno{q(c.argument) if c.argument else ''} | bash"),
        Shell("mkdir -p ~/.deno/bin/ && pathman add ~/.deno/bin/"),
        Shell("source ~/.bashrc", log=False),
        Shell("deno --version"),
    ),
    disable=(
        Narrate("Removing Deno engine"),
        Shell("rm -rf ~/.local/opt/deno-* ~/.deno ~/.local/bin/deno ~/Downloads/webi/deno"),
        Shell("pathman remove ~/.deno/bin/"),
    ),
)

GOLANG = FeatureSpec(
    name="go",
    aliases=("golang",),
    argument=webi_argument,
    enable=(
        Narrate(lambda c: f"Changing Golang engine to {c.value or 'stable'}"),
        Shell(
            lambda c: f"curl -sS https://webinstall.dev/golang{q(c.argument) if c.argument else ''}"
            f" | WEBI__GO_ESSENTIALS=true bash ; {ENVMAN_PATH}"
        ),
        Shell("go version"),
    ),
    disable=(
        Narrate("Removing Golang engine"),
        Shell("chmod -R 0700 ~/.local/opt/go-* 2>/dev/null || true"),
        Shell("rm -rf ~/.local/opt/go-* ~/.cache/go-build ~/.local/opt/go ~/go ~/Downloads/webi/golang"),
    ),
)

RUST = FeatureSpec(
    name="rust",
    aliases=("rustlang",),
    argument=rust_argument,
    enable=(
        Narrate(lambda c: f"Changing Rust engine to {c.argument}"),
        Shell(
            "command -v rustup &> /dev/null || "
            "(curl https://sh.rustup.rs -sSf | sh -s -- -y --default-toolchain none)"
        ),
        Shell("pathman add $HOME/.cargo/bin ; " + ENVMAN_PATH),
        Shell(
            lambda c: f"rustup toolchain install {q(c.argument)} --profile minimal"
            f" && rustup default {q(c.argument)}"
        ),
        Shell("rustc --version"),
    ),
    disable=(
        Narrate("Removing Rust engine"),
        Shell("command -v rustup &> /dev/null && rustup self uninstall -y || true"),
        Shell("pathman remove $HOME/.cargo/bin"),
    ),
)

BUN = FeatureSpec(
    name="bun",
    argument=webi_latest_argument,
    enable=(
        Narrate(lambda c: f"Changing Bun engine to {c.value or 'latest'}"),
        Shell(
            lambda c: f"curl -sS https://webinstall.dev/bun{q(c.argument) if c.argument else ''}"
            f" | bash ; {ENVMAN_PATH}"
        ),
        Shell(
            f"(cd ~/.local/bin/; wget -qO- {PROXY_FIX_URL} | tar xz"
            " && mv proxy-fix-linux-amd64 bunfix)"
        ),
        Shell("bun --version"),
    ),
    disable=(
        Narrate("Removing Bun engine"),
        Shell("chmod -R 0700 ~/.local/opt/bun-* 2>/dev/null || true"),
        Shell("rm -rf ~/.local/opt/bun-* ~/.local/opt/bun ~/Downloads/webi/bun"),
    ),
)

ZIG = FeatureSpec(
    name="zig",
    argument=webi_latest_argument,
    enable=(
        Narrate(lambda c: f"Changing Zig engine to {c.value or 'latest'}"),
        Shell(
            lambda c: f"curl -sS https://webinstall.dev/zig{q(c.argument) if c.argument else ''}"
            f" | bash ; {ENVMAN_PATH}"
        ),
        Shell("zig version"),
    ),
    disable=(
        Narrate("Removing Zig engine"),
        Shell("rm -rf ~/.local/opt/zig ~/Downloads/webi/zig"),
    ),
)

DOTNET = FeatureSpec(
    name="dotnet",
    argument=dotnet_argument,
    enable=(
        Narrate(lambda c: f"Changing Dotnet engine to {c.value or 'lts'}"),
        Shell(
            lambda c: "(curl -sS https://dotnet.microsoft.com/download/dotnet/scripts/v1/dotnet-install.sh"
            f" | bash -s -- {c.argument})"
        ),
        Shell("pathman add ~/.dotnet ; " + ENVMAN_PATH),
        Shell("dotnet --version"),
    ),
    disable=(
        Narrate("Removing Dotnet engine"),
        Shell("rm -rf ~/.dotnet"),
        Shell("pathman remove ~/.dotnet"),
    ),
)

DOCKER = FeatureSpec(
    name="docker",
    values=("", "on"),
    enable=(
        Narrate("Enabling docker features"),
        Privileged("docker", lambda c: ["enable", c.username]),
        Shell("sed -i '/DOCKER_HOST=/d' ~/.bashrc", log=False),
        Shell('echo "export DOCKER_HOST=unix:///run/user/$(id -u)/docker.sock" >> ~/.bashrc'),
        Shell(
            "mkdir -p ~/.config/docker; "
            "echo '{\"exec-opts\": [\"native.cgroupdriver=cgroupfs\"]}' > ~/.config/docker/daemon.json"
        ),
        Shell("dockerd-rootless-setuptool.sh install --skip-iptables"),
        Shell("export DOCKER_HOST=unix:///run/user/$(id -u)/docker.sock", log=False),
    ),
    disable=(
        Narrate("Disabling docker features"),
        Shell("dockerd-rootless-setuptool.sh uninstall || true"),
        Shell("sed -i '/DOCKER_HOST=/d' ~/.bashrc"),
        Shell("rm -rf ~/.config/docker"),
        Privileged("docker", lambda c: ["disable", c.username]),
    ),
)

RESTART = FeatureSpec(
    name="restart",
    enable=(
        Narrate("Restarting passenger processes"),
        Privileged("logman", lambda c: ["restart", c.username]),
    ),
    disable=(),
)

NEOVIM = FeatureSpec(
    name="neovim",
    aliases=("nvim",),
    enable=(
        Narrate("Installing Neovim Nvchad config"),
        Shell("[ -d ~/.config/nvim ] || git clone https://github.com/NvChad/starter ~/.config/nvim"),
    ),
    disable=(
        Narrate("Removing Neovim config"),
        Shell("rm -rf ~/.config/nvim ~/.local/state/nvim ~/.local/share/nvim"),
    ),
)

YUM = FeatureSpec(
    name="yum",
    aliases=("dnf",),
    enable=(
        Narrate("Setting up environment for yum installation"),
        Shell("sed -i '\\|~/usr/lib64/|d' ~/.bashrc", log=False),
        Shell("pathman add ~/usr/bin"),
        Shell('echo "export LD_LIBRARY_PATH=~/usr/lib64/:$LD_LIBRARY_PATH" >> ~/.bashrc'),
        Narrate("Installing packages via yum", when=has_value),
        Shell('DNFDIR="/var/tmp/dnf-$USER-dwnlddir"', log=False, when=has_value),
        Shell(
            "[ ! -d $DNFDIR ] && { cp -r /var/cache/dnf $DNFDIR ; chmod -R 0700 $DNFDIR ; } || true",
            log=False,
            when=has_value,
        ),
        Shell("mkdir -p ~/Downloads; pushd ~/Downloads", log=False, when=has_value),
        Shell(lambda c: f"dnf download {c.quoted_words()} --resolve -y", when=has_value),
        Shell("rpm2cpio *.rpm | cpio -idmD ~", when=has_value),
        Shell("popd", log=False, when=has_value),
        Shell(". ~/.bashrc", log=False),
    ),
    # Packages unpack into ~/usr; there is nothing to tear down
    disable=(),
)

DEFAULT_FEATURES = (
    PYTHON,
    NODE,
    RUBY,
    JAVA,
    DENO,
    GOLANG,
    RUST,
    BUN,
    ZIG,
    DOTNET,
    DOCKER,
    NEOVIM,
    YUM,
    RESTART,
)

DEFAULT_ACTION_CATALOG = build_catalog(DEFAULT_FEATURES)
