"""
Sudo alias registry.

A sudo alias names the argv prefix used to escalate privileges on a host.
Hosts differ (some need `sudo -i`, some forbid prompts with `sudo -n`), so
the topology can register its own aliases next to the built-in ones.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..exceptions import UnknownSudoAlias


logger = logging.getLogger(__name__)

DEFAULT_SUDO_ALIAS = "sudo"


@dataclass
class SudoAlias:
    """
    Privilege escalation prefix.

    Attributes:
        name: Alias name referenced by ExecOptions.exec_sudo_alias
        command: Argv prefix placed in front of the escalated command
    """
    name: str
    command: List[str] = field(default_factory=list)

    def validate(self) -> List[str]:
        errors = []
        if not self.command:
            errors.append(f"Sudo alias '{self.name}': command cannot be empty")
        for token in self.command:
            if not isinstance(token, str) or not token:
                errors.append(f"Sudo alias '{self.name}': command tokens must be non-empty strings")
                break
        return errors


class SudoAliasRegistry:
    """Lookup table of sudo aliases; topology aliases shadow the built-ins."""

    def __init__(self):
        self._aliases: Dict[str, SudoAlias] = {}
        self._builtin_aliases = self._load_builtin_aliases()

    def _load_builtin_aliases(self) -> Dict[str, SudoAlias]:
        return {
            "sudo": SudoAlias(name="sudo", command=["sudo"]),
            "sudo -E": SudoAlias(name="sudo -E", command=["sudo", "-E"]),
            "sudo -n": SudoAlias(name="sudo -n", command=["sudo", "-n"]),
        }

    def register(self, alias: SudoAlias) -> None:
        """
        Register a sudo alias.

        Raises:
            ValueError: If alias is invalid
        """
        errors = alias.validate()
        if errors:
            raise ValueError(f"Invalid sudo alias: {'; '.join(errors)}")

        self._aliases[alias.name] = alias
        logger.debug(f"Registered sudo alias: {alias.name}")

    def register_from_topology(self, aliases_config: Dict[str, List[str]]) -> List[str]:
        """
        Register aliases from the topology `sudo_aliases` section.

        Returns:
            List of validation errors (empty if all valid)
        """
        errors = []
        for name, command in aliases_config.items():
            alias = SudoAlias(name=name, command=list(command or []))
            validation_errors = alias.validate()
            if validation_errors:
                errors.extend(validation_errors)
            else:
                self.register(alias)
        return errors

    def get(self, name: str) -> Optional[SudoAlias]:
        return self._aliases.get(name) or self._builtin_aliases.get(name)

    def exists(self, name: str) -> bool:
        return name in self._aliases or name in self._builtin_aliases

    def list_aliases(self) -> List[str]:
        return sorted(set(self._aliases) | set(self._builtin_aliases))

    def resolve(self, name: str) -> List[str]:
        """
        Return the argv prefix for an alias.

        Raises:
            UnknownSudoAlias: If no alias with that name exists
        """
        alias = self.get(name)
        if alias is None:
            raise UnknownSudoAlias(name, self.list_aliases())
        return list(alias.command)
