"""Registry mapping test identifiers to test procedures."""
from __future__ import annotations

from typing import Any, Callable

from tblsummary.stats.result import ProcedureResult

# procedure(data, variable, by, **extra) -> ProcedureResult
TestProcedure = Callable[..., Any]


class ProcedureRegistry:
    """Named hypothesis-test procedures available to ``add_p``.

    Built-in procedures are registered by :meth:`default`.  Additional
    procedures follow the custom-test contract: they are called as
    ``procedure(data, variable, by, **extra)`` and return a
    :class:`ProcedureResult` or a mapping with exactly the keys
    ``p_value`` and ``label``.
    """

    def __init__(self) -> None:
        self._procedures: dict[str, TestProcedure] = {}
        self._labels: dict[str, str | None] = {}

    def register(self, name: str, procedure: TestProcedure, label: str | None = None) -> None:
        """Register *procedure* under *name*, replacing any previous entry.

        Args:
            name: Test identifier used in test specifications.
            procedure: Callable following the custom-test contract.
            label: Display label, used in footnotes when the procedure
                fails before returning one.
        """
        if not name:
            raise ValueError("Test procedures must be registered under a non-empty name.")
        if not callable(procedure):
            raise TypeError(f"Procedure registered as '{name}' is not callable.")
        self._procedures[name] = procedure
        self._labels[name] = label

    def get(self, name: str) -> TestProcedure:
        """Retrieve a registered procedure by name.

        Raises:
            KeyError: If no procedure with the given name is registered.
        """
        if name not in self._procedures:
            available = ", ".join(self.list_tests()) or "(none)"
            raise KeyError(f"Test '{name}' not found. Available tests: {available}")
        return self._procedures[name]

    def label(self, name: str) -> str | None:
        return self._labels.get(name)

    def list_tests(self) -> list[str]:
        return sorted(self._procedures)

    def __contains__(self, name: object) -> bool:
        return name in self._procedures

    @classmethod
    def default(cls) -> ProcedureRegistry:
        """Create a registry pre-loaded with the built-in tests."""
        from tblsummary.stats import procedures

        registry = cls()
        for name, (procedure, label) in procedures.BUILTIN_TESTS.items():
            registry.register(name, procedure, label)
        return registry


_default_registry: ProcedureRegistry | None = None


def get_default_registry() -> ProcedureRegistry:
    """The shared registry used when callers do not pass their own."""
    global _default_registry
    if _default_registry is None:
        _default_registry = ProcedureRegistry.default()
    return _default_registry


__all__ = ["ProcedureRegistry", "ProcedureResult", "TestProcedure", "get_default_registry"]
