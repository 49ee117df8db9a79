"""Action variants and feature definitions consumed by the sequencer."""
import shlex
from dataclasses import dataclass
from typing import Callable, Iterable, Mapping, Sequence, TypeAlias

from mcp_env_provisioner.types import ResolvedVersion


@dataclass(frozen=True)
class ActionContext:
    """Everything an action template may refer to, fixed per invocation"""
    key: str
    value: str
    username: str = ""
    argument: str | None = None
    resolved: ResolvedVersion | None = None

    @property
    def version(self) -> str:
        return self.resolved.version if self.resolved else ""

    @property
    def version_name(self) -> str:
        return self.resolved.name if self.resolved else ""

    @property
    def binary_url(self) -> str | None:
        return self.resolved.binary_url if self.resolved else None

    @staticmethod
    def quote(text: str) -> str:
        return shlex.quote(text)

    def quoted_words(self) -> str:
        """The requested value split on whitespace, each word shell-quoted."""
        return " ".join(shlex.quote(word) for word in self.value.split())


Template: TypeAlias = str | Callable[[ActionContext], str]
Predicate: TypeAlias = Callable[[ActionContext], bool]


def render(template: Template, ctx: ActionContext) -> str:
    return template(ctx) if callable(template) else template


@dataclass(frozen=True)
class Narrate:
    """A human-readable step heading for the audit log"""
    message: Template
    when: Predicate | None = None


@dataclass(frozen=True)
class Shell:
    """A command for the environment's command runner"""
    command: Template
    log: bool = True
    when: Predicate | None = None


@dataclass(frozen=True)
class Privileged:
    """A helper invocation needing elevated rights on the host"""
    mode: str
    args: Sequence[Template] | Callable[[ActionContext], Sequence[str]] = ()
    when: Predicate | None = None

    def render_args(self, ctx: ActionContext) -> list[str]:
        if callable(self.args):
            return list(self.args(ctx))
        return [render(arg, ctx) for arg in self.args]


Action: TypeAlias = Narrate | Shell | Privileged


def has_binary(ctx: ActionContext) -> bool:
    return ctx.binary_url is not None


def needs_manager(ctx: ActionContext) -> bool:
    return ctx.binary_url is None


def has_value(ctx: ActionContext) -> bool:
    return ctx.value != ""


@dataclass(frozen=True)
class FeatureSpec:
    """Ordered actions for one feature key.

    ``values`` restricts which desired values turn the feature on; anything
    else (other than ``off``) is ignored. ``ecosystem`` names the release
    catalog to resolve the requested version against before any action
    runs, and ``require_binary`` refuses versions without a prebuilt asset.
    """
    name: str
    enable: tuple[Action, ...]
    disable: tuple[Action, ...]
    aliases: tuple[str, ...] = ()
    values: tuple[str, ...] | None = None
    ecosystem: str | None = None
    require_binary: bool = False
    argument: Callable[[str], str | None] | None = None

    def accepts(self, value: str) -> bool:
        return value == "off" or self.values is None or value in self.values


ActionCatalog: TypeAlias = Mapping[str, FeatureSpec]


def build_catalog(specs: Iterable[FeatureSpec]) -> dict[str, FeatureSpec]:
    """Index feature specs by name and every alias."""
    catalog: dict[str, FeatureSpec] = {}
    for spec in specs:
        for key in (spec.name, *spec.aliases):
            if key in catalog:
                raise ValueError(f"Duplicate feature key: {key}")
            catalog[key] = spec
    return catalog
