"""Execution target data models."""

from dataclasses import dataclass

DEFAULT_SSH_PORT = 22


@dataclass(frozen=True, order=True)
class Target:
    """One (host, port) pair to execute the command against.

    Identity is the normalized ``(host, port)`` pair: hostnames are
    stripped and lower-cased, IPv6 brackets are removed.
    """

    host: str
    port: int = DEFAULT_SSH_PORT

    def __post_init__(self) -> None:
        host = self.host.strip().lower()
        if host.startswith("[") and host.endswith("]"):
            host = host[1:-1]
        if not host:
            raise ValueError("Empty hostname")
        if not 0 < self.port <= 65535:
            raise ValueError(f"Invalid port: {self.port}")
        object.__setattr__(self, "host", host)

    @classmethod
    def parse(cls, spec: str, default_port: int = DEFAULT_SSH_PORT) -> "Target":
        """Parse a ``host[:port]`` specifier.

        IPv6 addresses must be bracketed when a port is given
        (``[fe80::1]:2222``); a bare address with several colons is
        taken as a host without port.

        Args:
            spec: Host specifier
            default_port: Port used when the specifier has none

        Returns:
            Parsed Target

        Raises:
            ValueError: If the hostname is empty or the port is invalid
        """
        spec = spec.strip()
        host, port_str = spec, ""

        if spec.startswith("["):
            end = spec.find("]")
            if end == -1:
                raise ValueError(f"Unterminated IPv6 address: {spec}")
            host = spec[1:end]
            rest = spec[end + 1 :]
            if rest:
                if not rest.startswith(":"):
                    raise ValueError(f"Invalid host specifier: {spec}")
                port_str = rest[1:]
        elif spec.count(":") == 1:
            host, port_str = spec.split(":", 1)

        if not port_str:
            return cls(host=host, port=default_port)

        try:
            port = int(port_str)
        except ValueError:
            raise ValueError(f"Invalid port '{port_str}' in {spec}") from None
        return cls(host=host, port=port)

    @property
    def address(self) -> str:
        """``host:port`` form, bracketing IPv6 literals."""
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"{host}:{self.port}"

    def __str__(self) -> str:
        if self.port == DEFAULT_SSH_PORT:
            return self.host
        return self.address
