"""os-update: upgrade packages with whatever package manager is present."""

from herd.modules.base import CommandModule, bash_script

SCRIPT = r"""
set -e
SECURITY_ONLY={security_only}
AUTO_REBOOT={auto_reboot}
DRY_RUN={dry_run}

echo "Starting OS update (security_only=$SECURITY_ONLY, auto_reboot=$AUTO_REBOOT, dry_run=$DRY_RUN)"

DISK_USAGE=$(df / | tail -1 | awk '{{print $5}}' | sed 's/%//')
if [[ $DISK_USAGE -gt 90 ]]; then
    echo "Error: Disk usage is $DISK_USAGE% - aborting" >&2
    exit 1
fi

REBOOT_NEEDED=false
if command -v apt-get >/dev/null 2>&1; then
    echo "Detected: Debian/Ubuntu"
    export DEBIAN_FRONTEND=noninteractive
    apt-get update -qq
    if [[ "$DRY_RUN" == "true" ]]; then
        apt-get upgrade -s
    else
        apt-get upgrade -y \
            -o Dpkg::Options::="--force-confdef" \
            -o Dpkg::Options::="--force-confold"
        apt-get autoremove -y || true
    fi
    [[ -f /var/run/reboot-required ]] && REBOOT_NEEDED=true
elif command -v dnf >/dev/null 2>&1 || command -v yum >/dev/null 2>&1; then
    PM=$(command -v dnf >/dev/null 2>&1 && echo dnf || echo yum)
    echo "Detected: $PM"
    SECURITY_FLAG=""
    [[ "$SECURITY_ONLY" == "true" ]] && SECURITY_FLAG="--security"
    if [[ "$DRY_RUN" == "true" ]]; then
        $PM check-update $SECURITY_FLAG || true
    else
        $PM upgrade -y $SECURITY_FLAG
        $PM autoremove -y || true
    fi
    if command -v needs-restarting >/dev/null 2>&1; then
        needs-restarting -r >/dev/null 2>&1 || REBOOT_NEEDED=true
    fi
else
    echo "Error: No supported package manager found" >&2
    exit 1
fi

if [[ "$REBOOT_NEEDED" == "true" ]]; then
    echo "Reboot required"
    if [[ "$AUTO_REBOOT" == "true" && "$DRY_RUN" != "true" ]]; then
        echo "Scheduling reboot in 1 minute"
        shutdown -r +1 "System updated - rebooting"
    fi
fi
echo "Update completed successfully"
"""

FLAGS = ("--security-only", "--auto-reboot", "--dry-run")


class OsUpdateModule(CommandModule):
    """Upgrade installed packages via apt, dnf or yum."""

    name = "os-update"
    usage = "os-update [--security-only] [--auto-reboot] [--dry-run]"

    def build(self) -> str:
        unknown = [a for a in self.args if a not in FLAGS]
        if unknown:
            raise self.fail(f"unknown argument(s): {' '.join(unknown)}")

        def flag(name: str) -> str:
            return "true" if name in self.args else "false"

        return bash_script(
            SCRIPT.format(
                security_only=flag("--security-only"),
                auto_reboot=flag("--auto-reboot"),
                dry_run=flag("--dry-run"),
            )
        )
