"""SSH connection establishment.

Opening a session happens in three phases, all sharing one
``connect_timeout`` budget:

1. Resolve the target's hostname (failure: RESOLVE)
2. Open a TCP connection to a resolved address (failure: CONNECT)
3. SSH handshake and authentication over that socket, offering key file,
   agent and password credentials in that order (failure: AUTH)

Every call opens a brand new session; sessions are never pooled or
reused across targets or attempts.
"""

import asyncio
import logging
import socket
from typing import Any

import asyncssh

from herd.exceptions import ConnectionError, ErrorKind
from herd.models import AuthKind, Credentials, Target

logger = logging.getLogger(__name__)

# asyncssh tries these in order; publickey covers key files and agent keys.
PREFERRED_AUTH = ("publickey", "keyboard-interactive", "password")


class Session:
    """An authenticated SSH connection bound to one target and one attempt."""

    def __init__(self, target: Target, connection: asyncssh.SSHClientConnection):
        self.target = target
        self.connection = connection

    async def __aenter__(self) -> "Session":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def abort(self) -> None:
        """Tear the connection down immediately without a clean close."""
        logger.debug("Aborting session to %s", self.target)
        self.connection.abort()

    async def close(self) -> None:
        self.connection.close()
        await self.connection.wait_closed()
        logger.debug("Closed session to %s", self.target)


def _remaining(deadline: float) -> float:
    return max(0.0, deadline - asyncio.get_running_loop().time())


async def resolve_address(
    target: Target, deadline: float
) -> list[tuple[Any, ...]]:
    """Resolve the target hostname to stream socket addresses.

    Raises:
        ConnectionError: RESOLVE on lookup failure or timeout
    """
    loop = asyncio.get_running_loop()
    try:
        infos = await asyncio.wait_for(
            loop.getaddrinfo(target.host, target.port, type=socket.SOCK_STREAM),
            timeout=_remaining(deadline),
        )
    except asyncio.TimeoutError as e:
        raise ConnectionError(
            target, "DNS resolution timed out", kind=ErrorKind.RESOLVE, original_error=e
        ) from e
    except (OSError, UnicodeError) as e:
        raise ConnectionError(
            target,
            f"Failed to resolve hostname: {e}",
            kind=ErrorKind.RESOLVE,
            original_error=e,
        ) from e

    if not infos:
        raise ConnectionError(
            target, "No addresses found for host", kind=ErrorKind.RESOLVE
        )
    logger.debug("Resolved %s to %d address(es)", target.host, len(infos))
    return infos


async def open_socket(
    target: Target, addrinfos: list[tuple[Any, ...]], deadline: float
) -> socket.socket:
    """Connect a TCP socket to the first reachable resolved address.

    Raises:
        ConnectionError: CONNECT with reason refused, unreachable or timeout
    """
    loop = asyncio.get_running_loop()
    reason = "unreachable"
    last_error: Exception | None = None

    for family, type_, proto, _, sockaddr in addrinfos:
        sock = socket.socket(family, type_, proto)
        sock.setblocking(False)
        logger.debug("Trying address %s for %s", sockaddr, target)
        try:
            await asyncio.wait_for(
                loop.sock_connect(sock, sockaddr), timeout=_remaining(deadline)
            )
        except asyncio.TimeoutError as e:
            sock.close()
            reason, last_error = "timeout", e
            break
        except ConnectionRefusedError as e:
            sock.close()
            reason, last_error = "refused", e
        except OSError as e:
            sock.close()
            reason, last_error = "unreachable", e
        else:
            sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
            return sock

    raise ConnectionError(
        target,
        f"TCP connection failed ({reason}): {last_error}",
        kind=ErrorKind.CONNECT,
        original_error=last_error,
        reason=reason,
    )


def load_key_files(credentials: Credentials) -> list[asyncssh.SSHKey]:
    """Load key-file candidates, skipping ones that cannot be read."""
    keys = []
    for candidate in credentials.of_kind(AuthKind.KEY_FILE):
        try:
            keys.append(asyncssh.read_private_key(candidate.payload))
        except (OSError, asyncssh.KeyImportError) as e:
            logger.warning("Skipping %s: %s", candidate.describe(), e)
    return keys


async def connect_agents(
    credentials: Credentials,
    deadline: float,
) -> tuple[list[asyncssh.SSHAgentClient], list[Any]]:
    """Connect to agent candidates and collect their identities.

    Agent calls share the connection deadline. An agent that does not
    answer in time is skipped like an unavailable one.

    Returns:
        Tuple of (agent clients to close after auth, agent key pairs)
    """
    agents = []
    keys: list[Any] = []
    for candidate in credentials.of_kind(AuthKind.AGENT):
        connecting = (
            asyncssh.connect_agent(candidate.payload)
            if candidate.payload
            else asyncssh.connect_agent()
        )
        try:
            agent = await asyncio.wait_for(connecting, timeout=_remaining(deadline))
        except asyncio.TimeoutError:
            logger.warning("ssh-agent did not answer in time, skipping it")
            continue
        except (OSError, asyncssh.Error) as e:
            logger.warning("ssh-agent unavailable: %s", e)
            continue
        if agent is None:
            logger.warning("ssh-agent unavailable: no agent socket")
            continue
        agents.append(agent)
        try:
            identities = await asyncio.wait_for(
                agent.get_keys(), timeout=_remaining(deadline)
            )
        except asyncio.TimeoutError:
            logger.warning("ssh-agent did not list identities in time, skipping it")
            continue
        except (OSError, asyncssh.Error) as e:
            logger.warning("Failed to list ssh-agent identities: %s", e)
            continue
        if not identities:
            logger.debug("No identities found in ssh-agent")
        keys.extend(identities)
    return agents, keys


async def _close_agents(agents: list[asyncssh.SSHAgentClient]) -> None:
    for agent in agents:
        agent.close()
        await agent.wait_closed()


async def authenticate(
    target: Target,
    sock: socket.socket,
    credentials: Credentials,
    deadline: float,
    known_hosts: str | None = None,
) -> asyncssh.SSHClientConnection:
    """Run the SSH handshake and authenticate over a connected socket.

    Key files are offered first, then agent identities, then the
    password; asyncssh stops at the first accepted method.

    Raises:
        ConnectionError: AUTH when every candidate is rejected or the host
            key cannot be verified; CONNECT on handshake failure or timeout
    """
    client_keys: list[Any] = list(load_key_files(credentials))
    agents, agent_keys = await connect_agents(credentials, deadline)
    client_keys.extend(agent_keys)
    password = credentials.password

    logger.debug(
        "Authenticating to %s as %s (%d key(s), password=%s)",
        target,
        credentials.user,
        len(client_keys),
        "yes" if password is not None else "no",
    )

    try:
        return await asyncio.wait_for(
            asyncssh.connect(
                target.host,
                target.port,
                sock=sock,
                username=credentials.user,
                client_keys=client_keys or None,
                agent_path=None,
                password=password,
                known_hosts=known_hosts,
                preferred_auth=PREFERRED_AUTH,
            ),
            timeout=_remaining(deadline),
        )
    except asyncssh.PermissionDenied as e:
        raise ConnectionError(
            target,
            f"Authentication failed for user {credentials.user}: {e}",
            kind=ErrorKind.AUTH,
            original_error=e,
        ) from e
    except asyncssh.HostKeyNotVerifiable as e:
        raise ConnectionError(
            target,
            f"Host key verification failed: {e}",
            kind=ErrorKind.AUTH,
            original_error=e,
        ) from e
    except asyncio.TimeoutError as e:
        raise ConnectionError(
            target,
            "SSH handshake timed out",
            kind=ErrorKind.CONNECT,
            original_error=e,
            reason="timeout",
        ) from e
    except (asyncssh.Error, OSError) as e:
        raise ConnectionError(
            target,
            f"SSH handshake failed: {e}",
            kind=ErrorKind.CONNECT,
            original_error=e,
            reason="handshake",
        ) from e
    finally:
        await _close_agents(agents)


async def establish(
    target: Target,
    credentials: Credentials,
    connect_timeout: float,
    known_hosts: str | None = None,
) -> Session:
    """Open a fresh authenticated session to a target.

    Args:
        target: Host and port to connect to
        credentials: Shared, read-only credentials
        connect_timeout: Budget in seconds for resolve, connect and auth
        known_hosts: known_hosts file path, or None to skip host key checks

    Returns:
        Session owned by the caller

    Raises:
        ConnectionError: Classified as RESOLVE, CONNECT or AUTH
    """
    deadline = asyncio.get_running_loop().time() + connect_timeout
    logger.info("Connecting to %s@%s", credentials.user, target.address)

    addrinfos = await resolve_address(target, deadline)
    sock = await open_socket(target, addrinfos, deadline)
    try:
        connection = await authenticate(
            target, sock, credentials, deadline, known_hosts=known_hosts
        )
    except BaseException:
        sock.close()
        raise

    logger.info("SSH connection established to %s", target)
    return Session(target, connection)
