"""Topology loader and strict validation."""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional
import yaml

from clusteradm.exceptions import ValidationError, TopologyValidationError
from clusteradm.exec.module import ExecOptions
from clusteradm.exec.sudo import DEFAULT_SUDO_ALIAS, SudoAliasRegistry


KIND_CURVEBS = "curvebs"
KIND_CURVEFS = "curvefs"
SUPPORTED_KINDS = {KIND_CURVEBS, KIND_CURVEFS}

LOCALHOST = "localhost"


class PreservingLoader(yaml.SafeLoader):
    """Custom YAML loader that keeps 'on'/'off'/'yes'/'no' as strings."""
    pass


# Only true/false are booleans in a topology file; host names like "on" or
# "no" must survive as strings.
PreservingLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != 'tag:yaml.org,2002:bool']
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}
PreservingLoader.add_implicit_resolver(
    'tag:yaml.org,2002:bool',
    re.compile(r'^(?:true|True|TRUE|false|False|FALSE)$'),
    list('tTfF'),
)


@dataclass
class HostConfig:
    """Connection parameters of one host."""
    name: str
    hostname: str
    ssh_port: int = 22
    user: Optional[str] = None
    private_key_file: Optional[str] = None
    forward_agent: bool = False
    sudo_alias: str = DEFAULT_SUDO_ALIAS
    exec_in_local: bool = False


@dataclass
class PlaygroundConfig:
    kind: str
    name: str
    container_image: str
    mount_point: str = ""


@dataclass
class Topology:
    """Hosts, sudo aliases and defaults consumed by the task set executor."""
    hosts: List[HostConfig] = field(default_factory=list)
    sudo_aliases: Dict[str, List[str]] = field(default_factory=dict)
    exec_with_sudo: bool = False
    playground: Optional[PlaygroundConfig] = None

    @classmethod
    def local(cls, exec_with_sudo: bool = False) -> "Topology":
        """Single-host topology for the controlling host."""
        return cls(
            hosts=[HostConfig(name=LOCALHOST, hostname=LOCALHOST, exec_in_local=True)],
            exec_with_sudo=exec_with_sudo,
        )

    def host_names(self) -> List[str]:
        return [host.name for host in self.hosts]

    def get_host(self, name: str) -> HostConfig:
        for host in self.hosts:
            if host.name == name:
                return host
        raise KeyError(f"Unknown host '{name}'. Known: {self.host_names()}")

    def sudo_registry(self) -> SudoAliasRegistry:
        registry = SudoAliasRegistry()
        errors = registry.register_from_topology(self.sudo_aliases)
        if errors:
            raise ValueError(f"Sudo alias registration errors: {'; '.join(errors)}")
        return registry

    def exec_options(self, host: HostConfig) -> ExecOptions:
        return ExecOptions(
            exec_with_sudo=self.exec_with_sudo,
            exec_in_local=host.exec_in_local,
            exec_sudo_alias=host.sudo_alias,
        )


class TopologyLoader:
    """Loads and validates topology YAML, reporting every problem at once."""

    SUPPORTED_VERSIONS = {"1"}
    TOP_LEVEL_FIELDS = {'version', 'exec_with_sudo', 'sudo_aliases', 'hosts', 'playground'}
    HOST_FIELDS = {
        'name', 'hostname', 'ssh_port', 'user', 'private_key_file',
        'forward_agent', 'sudo_alias', 'exec_in_local'
    }
    PLAYGROUND_FIELDS = {'kind', 'name', 'container_image', 'mount_point'}

    def __init__(self, workspace: Optional[Path] = None):
        self.workspace = (workspace or Path.cwd()).resolve()
        self.errors: List[ValidationError] = []

    def load(self, topology_path: Path) -> Topology:
        """Load and validate a topology file."""
        topology_path = Path(topology_path)
        if not topology_path.is_absolute():
            topology_path = self.workspace / topology_path

        try:
            with open(topology_path, 'r') as f:
                data = yaml.load(f, Loader=PreservingLoader)
        except (OSError, yaml.YAMLError) as e:
            self._add_error(f"Failed to load topology: {e}")
            self._raise_validation_errors()

        return self.parse(data)

    def parse(self, data: Any) -> Topology:
        """Validate an already-decoded topology document."""
        self.errors = []
        if data is None or not isinstance(data, dict):
            self._add_error("Topology must be a YAML object/dictionary")
            self._raise_validation_errors()

        version = data.get('version')
        if version is None:
            self._add_error("'version' field is required")
        elif str(version) not in self.SUPPORTED_VERSIONS:
            self._add_error(f"Unsupported version '{version}'. Supported: {sorted(self.SUPPORTED_VERSIONS)}")

        for key in data.keys():
            if key not in self.TOP_LEVEL_FIELDS:
                self._add_error(f"Unknown field '{key}'")

        exec_with_sudo = data.get('exec_with_sudo', False)
        if not isinstance(exec_with_sudo, bool):
            self._add_error("'exec_with_sudo' must be a boolean", "exec_with_sudo")
            exec_with_sudo = False

        sudo_aliases = self._validate_sudo_aliases(data.get('sudo_aliases', {}))
        known_aliases = set(sudo_aliases) | set(SudoAliasRegistry().list_aliases())

        hosts = self._validate_hosts(data.get('hosts'), known_aliases)

        playground = None
        if 'playground' in data:
            playground = self._validate_playground(data['playground'])

        if self.errors:
            self._raise_validation_errors()

        return Topology(
            hosts=hosts,
            sudo_aliases=sudo_aliases,
            exec_with_sudo=exec_with_sudo,
            playground=playground,
        )

    def _validate_sudo_aliases(self, aliases: Any) -> Dict[str, List[str]]:
        if not isinstance(aliases, dict):
            self._add_error("'sudo_aliases' must be a dictionary", "sudo_aliases")
            return {}

        valid = {}
        for name, command in aliases.items():
            path = f"sudo_aliases.{name}"
            if isinstance(command, str):
                command = command.split()
            if not isinstance(command, list) or not command:
                self._add_error("alias must be a non-empty list of strings", path)
                continue
            if not all(isinstance(token, str) and token for token in command):
                self._add_error("alias tokens must be non-empty strings", path)
                continue
            valid[str(name)] = command
        return valid

    def _validate_hosts(self, hosts: Any, known_aliases: set) -> List[HostConfig]:
        if not hosts:
            self._add_error("'hosts' field is required and must not be empty")
            return []
        if not isinstance(hosts, list):
            self._add_error("'hosts' must be a list")
            return []

        result = []
        names = set()
        for i, host in enumerate(hosts):
            path = f"hosts[{i}]"
            if not isinstance(host, dict):
                self._add_error("host must be a dictionary", path)
                continue

            for key in host.keys():
                if key not in self.HOST_FIELDS:
                    self._add_error(f"Unknown field '{key}'", path)

            name = host.get('name')
            if not name or not isinstance(name, str):
                self._add_error("missing required 'name' field", path)
                continue
            if name in names:
                self._add_error(f"Duplicate host name '{name}'", path)
            names.add(name)

            exec_in_local = host.get('exec_in_local', False)
            hostname = host.get('hostname', LOCALHOST if exec_in_local else None)
            if not hostname or not isinstance(hostname, str):
                self._add_error(f"Host '{name}' missing required 'hostname' field", path)
                continue

            port = host.get('ssh_port', 22)
            if isinstance(port, bool) or not isinstance(port, int) or not 0 < port < 65536:
                self._add_error(f"Host '{name}' ssh_port must be an integer in 1..65535", path)
                port = 22

            sudo_alias = host.get('sudo_alias', DEFAULT_SUDO_ALIAS)
            if sudo_alias not in known_aliases:
                self._add_error(f"Host '{name}' references unknown sudo alias '{sudo_alias}'", path)

            for flag in ('forward_agent', 'exec_in_local'):
                if flag in host and not isinstance(host[flag], bool):
                    self._add_error(f"Host '{name}' {flag} must be a boolean", path)

            result.append(HostConfig(
                name=name,
                hostname=hostname,
                ssh_port=port,
                user=host.get('user'),
                private_key_file=host.get('private_key_file'),
                forward_agent=bool(host.get('forward_agent', False)),
                sudo_alias=sudo_alias,
                exec_in_local=bool(exec_in_local),
            ))
        return result

    def _validate_playground(self, playground: Any) -> Optional[PlaygroundConfig]:
        if not isinstance(playground, dict):
            self._add_error("'playground' must be a dictionary", "playground")
            return None

        for key in playground.keys():
            if key not in self.PLAYGROUND_FIELDS:
                self._add_error(f"Unknown field '{key}'", "playground")

        kind = playground.get('kind')
        if kind not in SUPPORTED_KINDS:
            self._add_error(f"kind must be one of {sorted(SUPPORTED_KINDS)}, got '{kind}'", "playground")
        for required in ('name', 'container_image'):
            if not playground.get(required):
                self._add_error(f"missing required '{required}' field", "playground")
        if kind == KIND_CURVEFS and not playground.get('mount_point'):
            self._add_error("curvefs playground requires 'mount_point'", "playground")

        return PlaygroundConfig(
            kind=kind or "",
            name=playground.get('name', ""),
            container_image=playground.get('container_image', ""),
            mount_point=playground.get('mount_point', ""),
        )

    def _add_error(self, message: str, path: str = ""):
        self.errors.append(ValidationError(message=message, path=path))

    def _raise_validation_errors(self):
        raise TopologyValidationError(self.errors)
