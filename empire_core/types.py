"""
EMPIRE CORE — TYPES
Typy i struktury danych dla kernela.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Mapping, Optional, Union


class ExecutionContext(str, Enum):
    """Isolated runtime environments of the host."""
    BACKGROUND = "background"
    CONTENT = "content"
    POPUP = "popup"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Union["ExecutionContext", str]) -> "ExecutionContext":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown execution context: {value!r}") from None


ContextLike = Union[ExecutionContext, str]


class LoaderState(Enum):
    """Stan loadera"""
    UNINITIALIZED = "uninitialized"
    CONTEXT_BOUND = "context_bound"
    LOADING = "loading"
    READY = "ready"


@dataclass(frozen=True)
class ContextRule:
    """
    Which contexts may instantiate a module.

    Either every context (``ContextRule.everywhere()``) or an explicit set
    (``ContextRule.only(...)``). An empty explicit set allows nothing.
    """
    contexts: FrozenSet[ExecutionContext] = frozenset()
    all_contexts: bool = False

    @classmethod
    def everywhere(cls) -> "ContextRule":
        return cls(all_contexts=True)

    @classmethod
    def only(cls, *contexts: ContextLike) -> "ContextRule":
        return cls(contexts=frozenset(ExecutionContext.parse(c) for c in contexts))

    @classmethod
    def from_names(cls, names: Iterable[str]) -> "ContextRule":
        """Config form: ``[]`` or a list containing ``"all"`` means everywhere."""
        names = [str(n).strip().lower() for n in names]
        if not names or "all" in names:
            return cls.everywhere()
        return cls.only(*names)

    def allows(self, context: ContextLike) -> bool:
        if self.all_contexts:
            return True
        try:
            return ExecutionContext.parse(context) in self.contexts
        except ValueError:
            return False

    def to_names(self) -> List[str]:
        if self.all_contexts:
            return ["all"]
        return sorted(c.value for c in self.contexts)


class ContextPermissionTable:
    """Static module name -> ContextRule mapping. Unlisted names run everywhere."""

    def __init__(self, rules: Optional[Mapping[str, ContextRule]] = None):
        self._rules: Dict[str, ContextRule] = dict(rules or {})

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Iterable[str]]) -> "ContextPermissionTable":
        return cls({name: ContextRule.from_names(names) for name, names in mapping.items()})

    def rule_for(self, module_name: str) -> ContextRule:
        return self._rules.get(module_name, ContextRule.everywhere())

    def allows(self, module_name: str, context: ContextLike) -> bool:
        return self.rule_for(module_name).allows(context)

    def to_dict(self) -> Dict[str, List[str]]:
        return {name: rule.to_names() for name, rule in self._rules.items()}

    def __contains__(self, module_name: str) -> bool:
        return module_name in self._rules

    def __len__(self) -> int:
        return len(self._rules)


@dataclass(eq=False)
class Subscription:
    """Jedna subskrypcja: handler zainteresowany jednym eventem."""
    event_name: str
    handler: Callable[[Any], Any]
    owner: str = "unknown"


@dataclass
class DeliveryOutcome:
    """Result of handing one payload to one subscriber."""
    owner: str
    ok: bool
    result: Any = None
    error: Optional[BaseException] = None


class EmitResult(list):
    """
    Successful handler results, in delivery order.

    The list itself holds only the results of subscribers that completed,
    so it can be shorter than the subscriber count. ``outcomes`` keeps one
    entry per subscriber (in delivery order) for callers that need to match
    results to subscribers, and ``failures`` lists the failed ones.
    """

    def __init__(self, outcomes: Optional[List[DeliveryOutcome]] = None):
        self.outcomes: List[DeliveryOutcome] = list(outcomes or [])
        super().__init__(o.result for o in self.outcomes if o.ok)

    @property
    def failures(self) -> List[DeliveryOutcome]:
        return [o for o in self.outcomes if not o.ok]

    @property
    def delivered(self) -> int:
        return len(self.outcomes) - len(self.failures)
