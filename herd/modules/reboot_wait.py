"""reboot-wait: reboot hosts that need it, or just report whether they do."""

from collections.abc import Sequence

from herd.modules.base import CommandModule, bash_script

DETECT = r"""
REBOOT_NEEDED=false
if [[ -f /var/run/reboot-required ]]; then
    echo "Reboot required: /var/run/reboot-required exists"
    REBOOT_NEEDED=true
fi
CURRENT_KERNEL=$(uname -r)
LATEST_KERNEL=""
if command -v dpkg >/dev/null 2>&1; then
    LATEST_KERNEL=$(dpkg -l 'linux-image-*' | grep '^ii' | awk '{print $2}' | sed 's/linux-image-//' | sort -V | tail -1)
elif command -v rpm >/dev/null 2>&1; then
    LATEST_KERNEL=$(rpm -q kernel --qf '%{VERSION}-%{RELEASE}.%{ARCH}\n' | sort -V | tail -1)
fi
if [[ -n "$LATEST_KERNEL" && "$CURRENT_KERNEL" != "$LATEST_KERNEL" ]]; then
    echo "Reboot required: kernel update ($CURRENT_KERNEL -> $LATEST_KERNEL)"
    REBOOT_NEEDED=true
fi
"""

CHECK = DETECT + r"""
if [[ "$REBOOT_NEEDED" == "true" ]]; then
    exit 1
fi
echo "No reboot required"
"""

REBOOT = DETECT + r"""
if [[ "$REBOOT_NEEDED" != "true" && "$FORCE" != "true" ]]; then
    echo "No reboot required"
    exit 0
fi
USERS=$(who | wc -l)
if [[ $USERS -gt 0 ]]; then
    echo "Warning: $USERS user(s) currently logged in"
fi
sync
echo "Rebooting in $DELAY seconds"
sleep "$DELAY"
echo "Initiating reboot"
nohup shutdown -r now >/dev/null 2>&1 &
"""

DEFAULT_DELAY = 5


class RebootWaitModule(CommandModule):
    """Reboot when a kernel or package update requires it."""

    name = "reboot-wait"
    usage = "reboot-wait [--delay SECONDS] [--check] [--force]"

    def __init__(self, args: Sequence[str]) -> None:
        super().__init__(args)
        self.delay = DEFAULT_DELAY
        self.check_only = False
        self.force = False

        remaining = list(self.args)
        while remaining:
            arg = remaining.pop(0)
            if arg == "--check":
                self.check_only = True
            elif arg == "--force":
                self.force = True
            elif arg == "--delay" or arg.startswith("--delay="):
                value = arg.partition("=")[2] or (remaining.pop(0) if remaining else "")
                self.delay = self._parse_delay(value)
            else:
                raise self.fail(f"unknown argument: {arg}")

    def _parse_delay(self, value: str) -> int:
        try:
            delay = int(value)
        except ValueError:
            raise self.fail(f"invalid --delay value: {value!r}") from None
        if delay < 0:
            raise self.fail("--delay must be >= 0")
        return delay

    def build(self) -> str:
        if self.check_only:
            return bash_script(CHECK)
        header = f"DELAY={self.delay}\nFORCE={'true' if self.force else 'false'}\n"
        return bash_script(header + REBOOT)
