"""sudo: grant, list or revoke sudo access for a user.

Rules are written to ``/etc/sudoers.d/<user>`` after validation with
``visudo -c``; an optional expiry is scheduled with ``at``.
"""

import re
import shlex
from collections.abc import Sequence

from herd.modules.base import CommandModule, bash_script

USERNAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_-]{0,31}$")
FORBIDDEN_AT_CHARS = set("\\`$;|&<>\n")

TEMPLATES = {
    "standard": "ALL",
    "developer": (
        "/usr/bin/apt, /usr/bin/apt-get, /usr/bin/yum, /usr/bin/dnf, "
        "/bin/systemctl, /usr/bin/systemctl, /usr/bin/docker, /usr/bin/git, "
        "/usr/bin/npm, /usr/bin/pip*, /usr/bin/make, /usr/local/bin/*"
    ),
    "operator": (
        "/usr/bin/systemctl status *, /usr/bin/systemctl start *, "
        "/usr/bin/systemctl stop *, /usr/bin/systemctl restart *, "
        "/usr/bin/systemctl reload *, /usr/bin/journalctl, /usr/bin/tail, "
        "/usr/bin/ps, /usr/bin/top, /usr/bin/ss, /bin/cat /var/log/*"
    ),
    "readonly": (
        "/usr/bin/ps, /usr/bin/top, /usr/bin/df, /usr/bin/free, /usr/bin/uptime, "
        "/usr/bin/who, /usr/bin/last, /bin/cat /var/log/*, /usr/bin/tail /var/log/*, "
        "/usr/bin/journalctl, /usr/bin/dmesg, /usr/bin/lsblk, /usr/bin/ss"
    ),
    "webadmin": (
        "/usr/bin/systemctl * nginx, /usr/bin/systemctl * apache2, "
        "/usr/bin/systemctl * httpd, /usr/sbin/nginx -t, "
        "/usr/sbin/apache2ctl configtest, /usr/bin/tail /var/log/nginx/*, "
        "/usr/bin/certbot"
    ),
    "dbadmin": (
        "/usr/bin/systemctl * mysql, /usr/bin/systemctl * postgresql, "
        "/usr/bin/systemctl * mariadb, /usr/bin/mysqldump, /usr/bin/pg_dump, "
        "/usr/bin/pg_restore, /usr/bin/tail /var/log/mysql/*, "
        "/usr/bin/tail /var/log/postgresql/*"
    ),
}

LIST_SCRIPT = r"""
USER={user}
echo "Sudo privileges for $USER:"
sudo -l -U "$USER" 2>/dev/null || echo "User $USER has no sudo privileges or does not exist"
if [[ -f "/etc/sudoers.d/$USER" ]]; then
    echo "Content of /etc/sudoers.d/$USER:"
    cat "/etc/sudoers.d/$USER"
fi
"""

REMOVE_SCRIPT = r"""
set -e
USER={user}
SUDOERS_FILE="/etc/sudoers.d/$USER"
if [[ -f "$SUDOERS_FILE" ]]; then
    rm -f "$SUDOERS_FILE"
    echo "Sudo access removed for $USER"
else
    echo "No sudo configuration found for $USER"
fi
"""

GRANT_SCRIPT = r"""
set -e
USER={user}
RULE={rule}
EXPIRE={expire}
SUDOERS_FILE="/etc/sudoers.d/$USER"

if ! id "$USER" >/dev/null 2>&1; then
    echo "Warning: user $USER does not exist on this system" >&2
fi
if [[ -f "$SUDOERS_FILE" ]]; then
    cp "$SUDOERS_FILE" "$SUDOERS_FILE.backup.$(date +%Y%m%d-%H%M%S)"
fi

TMP_FILE=$(mktemp)
trap 'rm -f "$TMP_FILE"' EXIT
echo "$RULE" > "$TMP_FILE"
chmod 0440 "$TMP_FILE"
if ! visudo -q -c -f "$TMP_FILE"; then
    echo "Invalid sudoers syntax: $RULE" >&2
    exit 1
fi
mv "$TMP_FILE" "$SUDOERS_FILE"
chown root:root "$SUDOERS_FILE"
echo "Installed: $RULE"

if [[ -n "$EXPIRE" ]]; then
    if command -v at >/dev/null 2>&1; then
        echo "rm -f $SUDOERS_FILE" | at "$EXPIRE"
        echo "Access expires at $EXPIRE"
    else
        echo "Warning: 'at' not available, remove $SUDOERS_FILE manually at $EXPIRE" >&2
    fi
fi
"""


def is_valid_username(username: str) -> bool:
    return bool(USERNAME_RE.match(username))


def is_valid_at_time(value: str) -> bool:
    return bool(value.strip()) and not (set(value) & FORBIDDEN_AT_CHARS)


class SudoModule(CommandModule):
    """Grant, list or revoke sudo access for a user."""

    name = "sudo"
    usage = (
        "sudo <user> [--nopass] [--commands=CMDS] [--template=NAME] "
        "[--expire=TIME] [--remove] [--list]"
    )

    def __init__(self, args: Sequence[str]) -> None:
        super().__init__(args)
        if not self.args:
            raise self.fail("missing user")

        self.user = self.args[0]
        if not is_valid_username(self.user):
            raise self.fail(f"invalid username: {self.user!r}")

        self.nopass = False
        self.commands: str | None = None
        self.template = "standard"
        self.expire: str | None = None
        self.remove = False
        self.list = False

        for arg in self.args[1:]:
            option, _, value = arg.partition("=")
            if arg == "--nopass":
                self.nopass = True
            elif arg == "--remove":
                self.remove = True
            elif arg == "--list":
                self.list = True
            elif option == "--commands" and value:
                self.commands = value
            elif option == "--template":
                if value not in TEMPLATES:
                    raise self.fail(
                        f"unknown template {value!r} (choose from {', '.join(TEMPLATES)})"
                    )
                self.template = value
            elif option == "--expire":
                if not is_valid_at_time(value):
                    raise self.fail(f"invalid --expire time: {value!r}")
                self.expire = value
            else:
                raise self.fail(f"unknown argument: {arg}")

        if self.remove and self.list:
            raise self.fail("--remove and --list are mutually exclusive")

    @property
    def rule(self) -> str:
        """The sudoers line that would be installed."""
        allowed = self.commands or TEMPLATES[self.template]
        tag = "NOPASSWD: " if self.nopass else ""
        return f"{self.user} ALL=(ALL) {tag}{allowed}"

    def build(self) -> str:
        user = shlex.quote(self.user)
        if self.list:
            return bash_script(LIST_SCRIPT.format(user=user))
        if self.remove:
            return bash_script(REMOVE_SCRIPT.format(user=user))
        return bash_script(
            GRANT_SCRIPT.format(
                user=user,
                rule=shlex.quote(self.rule),
                expire=shlex.quote(self.expire or ""),
            )
        )
