"""collect-facts: report basic system facts as JSON."""

from herd.modules.base import CommandModule, bash_script

SCRIPT = r"""
set -e
OS=$(uname -s)
ARCH=$(uname -m)
KERNEL=$(uname -r)
HOSTNAME=$(hostname)
printf '{"os": "%s", "arch": "%s", "kernel": "%s", "hostname": "%s"}\n' \
    "$OS" "$ARCH" "$KERNEL" "$HOSTNAME"
"""


class CollectFactsModule(CommandModule):
    """Collect OS, architecture, kernel and hostname."""

    name = "collect-facts"
    usage = "collect-facts"

    def build(self) -> str:
        if self.args:
            raise self.fail("does not take any arguments")
        return bash_script(SCRIPT)
