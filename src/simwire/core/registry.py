"""
Registry for indexing modules and the output fields they produce.

Provides unified lookup for the plan builder and the input assembler.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence

from .errors import ConfigurationError
from .interfaces import IModule
from .kinds import ConnectorType
from .module import declared_connector_type
from .validation import WiringReport


class OutputRegistry:
    """
    Map every declared output field to the module that produces it.

    The registry is the single source of truth for "who produces what". It is
    validated on construction: module names must be unique, every module must
    satisfy the module contract, and no output field may be declared by two
    modules, since wiring would otherwise be ambiguous.

    **Example Usage:**
        ```python
        registry = OutputRegistry([demographics, climate])
        registry.producer_of("temperature")      # "climate"
        registry.get_module("climate")           # the climate module
        ```

    Raises:
        ConfigurationError: Listing every duplicate producer found
    """

    def __init__(self, modules: Sequence[IModule]):
        self._modules: dict[str, IModule] = {}
        self._order: dict[str, int] = {}
        self._producers: dict[str, str] = {}
        self.report = WiringReport()

        errors: list[str] = []
        for module in modules:
            if not isinstance(module, IModule):
                errors.append(
                    f"{module!r} does not implement the module contract "
                    "(name, inputs, outputs, validate, merge_params, init, step)"
                )
                continue
            if not module.name:
                errors.append(f"{module!r} has an empty name")
                continue
            if module.name in self._modules:
                errors.append(f"Module name '{module.name}' is declared twice")
                self.report.add_problem(module.name)
                continue
            self._order[module.name] = len(self._order)
            self._modules[module.name] = module

        owners: dict[str, list[str]] = {}
        for name, module in self._modules.items():
            for output in module.outputs:
                owners.setdefault(str(output), []).append(name)

        for output, producers in owners.items():
            if len(producers) > 1:
                self.report.duplicate_outputs[output] = producers
                self.report.add_problem(*producers)
            self._producers[output] = producers[0]

        errors.extend(self.report.errors())
        if errors:
            raise ConfigurationError(
                "Output registry could not be built",
                errors=errors,
                problem_ids=self.report.problem_ids,
                report=self.report,
            )

    def is_module(self, name: str) -> bool:
        """Check if the given name refers to a registered module."""
        return name in self._modules

    def get_module(self, name: str) -> IModule:
        """Get module by name."""
        if name not in self._modules:
            raise ConfigurationError(f"Module '{name}' not found in registry")
        return self._modules[name]

    def producer_of(self, field: str) -> str | None:
        """Name of the module producing ``field``, or None."""
        return self._producers.get(field)

    def produces(self, module: str, field: str) -> bool:
        """Check if ``module`` declares output ``field``."""
        return self._producers.get(field) == module

    def declaration_index(self, name: str) -> int:
        """Position of the module in the declared module list."""
        return self._order[name]

    def output_type(self, field: str) -> ConnectorType | None:
        """Connector type declared by the producer of ``field``."""
        producer = self._producers.get(field)
        if producer is None:
            return None
        return declared_connector_type(self._modules[producer], "outputs", field)

    def iter_modules(self) -> Iterator[tuple[str, IModule]]:
        """Iterate over all ``(name, module)`` pairs in declaration order."""
        return iter(self._modules.items())

    def module_names(self) -> list[str]:
        """Module names in declaration order."""
        return list(self._modules)

    def fields(self) -> dict[str, str]:
        """Copy of the ``field -> producer`` map."""
        return dict(self._producers)

    def __contains__(self, field: object) -> bool:
        return field in self._producers

    def __len__(self) -> int:
        """Number of registered output fields."""
        return len(self._producers)

    def __str__(self) -> str:
        return f"OutputRegistry(modules={len(self._modules)}, outputs={len(self._producers)})"

    def __repr__(self) -> str:
        return f"OutputRegistry(modules={list(self._modules)}, outputs={list(self._producers)})"
