"""Tests for the sudo alias registry."""

import pytest

from clusteradm.exceptions import UnknownSudoAlias
from clusteradm.exec.sudo import SudoAlias, SudoAliasRegistry


class TestSudoAliasRegistry:

    def test_builtin_aliases(self):
        registry = SudoAliasRegistry()

        assert registry.resolve("sudo") == ["sudo"]
        assert registry.resolve("sudo -E") == ["sudo", "-E"]
        assert registry.resolve("sudo -n") == ["sudo", "-n"]
        assert registry.list_aliases() == ["sudo", "sudo -E", "sudo -n"]

    def test_unknown_alias(self):
        registry = SudoAliasRegistry()

        with pytest.raises(UnknownSudoAlias) as exc_info:
            registry.resolve("doas")

        assert exc_info.value.alias == "doas"
        assert "sudo" in exc_info.value.known

    def test_topology_alias_shadows_builtin(self):
        registry = SudoAliasRegistry()
        errors = registry.register_from_topology({
            "sudo": ["sudo", "-i"],
            "root": ["sudo", "-u", "root"],
        })

        assert errors == []
        assert registry.resolve("sudo") == ["sudo", "-i"]
        assert registry.resolve("root") == ["sudo", "-u", "root"]
        assert registry.exists("root")

    def test_invalid_aliases_are_reported(self):
        registry = SudoAliasRegistry()
        errors = registry.register_from_topology({"empty": [], "ok": ["doas"]})

        assert len(errors) == 1
        assert "empty" in errors[0]
        assert not registry.exists("empty")
        assert registry.exists("ok")

    def test_register_rejects_invalid(self):
        with pytest.raises(ValueError):
            SudoAliasRegistry().register(SudoAlias(name="bad", command=["sudo", ""]))

    def test_resolve_returns_copy(self):
        registry = SudoAliasRegistry()
        registry.resolve("sudo").append("-x")

        assert registry.resolve("sudo") == ["sudo"]
