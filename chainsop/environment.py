"""
Environment specification for operations.

An EnvSpec describes how the environment of an executed operation is built:
either inherited from the current process or started blank, followed by an
ordered list of modifications.  EnvSpec values are immutable; every
modification returns a new EnvSpec.
"""

from collections.abc import Mapping
from dataclasses import dataclass, replace


@dataclass(frozen=True)
class EnvChange:
    """A single modification to an environment variable."""

    action: str  # "set", "prepend", "append", or "unset"
    name: str
    value: str | None = None
    sep: str = ""


@dataclass(frozen=True)
class EnvSpec:
    """
    Environment in which an operation executes.

    inherit=True is the standard environment (the current process
    environment is the starting point); inherit=False starts blank.
    """

    inherit: bool = True
    changes: tuple[EnvChange, ...] = ()

    @classmethod
    def std_env(cls) -> "EnvSpec":
        return cls(inherit=True)

    @classmethod
    def blank_env(cls) -> "EnvSpec":
        return cls(inherit=False)

    def clear(self) -> "EnvSpec":
        """Discard all settings and start from an empty environment."""
        return EnvSpec(inherit=False)

    def _with(self, change: EnvChange) -> "EnvSpec":
        return replace(self, changes=(*self.changes, change))

    def add(self, name: str, value: str) -> "EnvSpec":
        """Set a variable; later settings of the same variable win."""
        return self._with(EnvChange("set", str(name), str(value)))

    def prepend(self, name: str, value: str, sep: str) -> "EnvSpec":
        """Prepend value (and separator) to a variable, or set it if unset."""
        return self._with(EnvChange("prepend", str(name), str(value), str(sep)))

    def append(self, name: str, value: str, sep: str) -> "EnvSpec":
        """Append (separator and) value to a variable, or set it if unset."""
        return self._with(EnvChange("append", str(name), str(value), str(sep)))

    def rmv(self, name: str) -> "EnvSpec":
        """Remove a variable; no effect if it does not exist."""
        return self._with(EnvChange("unset", str(name)))

    def set_base(self, base: "EnvSpec") -> "EnvSpec":
        """
        Layer this specification on top of a base specification.

        A blank specification ignores the base entirely; otherwise the
        result starts from the base and then applies this spec's changes.
        """
        if not self.inherit:
            return self
        return EnvSpec(inherit=base.inherit, changes=(*base.changes, *self.changes))

    def resolve(self, environ: Mapping[str, str]) -> dict[str, str]:
        """Compute the concrete environment starting from the given one."""
        env = dict(environ) if self.inherit else {}
        for change in self.changes:
            if change.action == "set":
                env[change.name] = change.value or ""
            elif change.action == "prepend":
                if change.name in env:
                    env[change.name] = f"{change.value}{change.sep}{env[change.name]}"
                else:
                    env[change.name] = change.value or ""
            elif change.action == "append":
                if change.name in env:
                    env[change.name] = f"{env[change.name]}{change.sep}{change.value}"
                else:
                    env[change.name] = change.value or ""
            elif change.action == "unset":
                env.pop(change.name, None)
            else:
                raise ValueError(f"Unknown environment action: {change.action}")
        return env
