"""Colour-based classification of labels of interest."""

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from label_corpus.core.entities import LabelNode, RestLabel

SERVICE_COLOR = "e99695"
CATEGORY_COLOR = "ffeb77"

ColorGetter = Callable[[Any], str]
LabelPredicate = Callable[[Any], bool]


class MissingCapability(TypeError):
    """Raised when a label value exposes no colour."""

    def __init__(self, label_type: type) -> None:
        self.label_type = label_type
        super().__init__(f"The label type '{label_type.__name__}' does not have a 'color' member.")


_color_adapters: dict[type, ColorGetter] = {
    RestLabel: lambda label: label.color,
    LabelNode: lambda label: label.color,
}


def register_color_adapter(label_type: type, getter: ColorGetter) -> None:
    """Register how to read the colour of a label representation."""
    _color_adapters[label_type] = getter


def get_label_color(label: Any) -> str:
    """Resolve the colour of a label-like value.

    Lookup order: registered adapter (by MRO), ``color``/``Color`` attribute,
    ``color``/``Color`` mapping key.

    Raises:
        MissingCapability: if no colour can be found
    """
    for cls in type(label).__mro__:
        getter = _color_adapters.get(cls)
        if getter is not None:
            return getter(label)

    for member in ("color", "Color"):
        if hasattr(label, member):
            return getattr(label, member)

    if isinstance(label, Mapping):
        for member in ("color", "Color"):
            if member in label:
                return label[member]

    raise MissingCapability(type(label))


def _same_color(color: Any, expected: str) -> bool:
    return isinstance(color, str) and color.lower() == expected.lower()


def is_service_label(label: Any, color: str = SERVICE_COLOR) -> bool:
    """Check if the label carries the service colour."""
    return _same_color(get_label_color(label), color)


def is_category_label(label: Any, color: str = CATEGORY_COLOR) -> bool:
    """Check if the label carries the category colour."""
    return _same_color(get_label_color(label), color)


@dataclass(frozen=True)
class LabelType:
    """Named label predicate."""

    name: str
    predicate: LabelPredicate


class InterestFilter:
    """Decide whether a label is of interest.

    In ``all`` mode every label type predicate must accept the label; in
    ``any`` mode one accepting predicate is enough.
    """

    MODES = ("any", "all")

    def __init__(
        self,
        service_color: str = SERVICE_COLOR,
        category_color: str = CATEGORY_COLOR,
        mode: str = "any",
    ) -> None:
        if mode not in self.MODES:
            raise ValueError(f"Unknown filter mode {mode!r}, expected one of {self.MODES}")
        self.mode = mode
        self.types = [
            LabelType("Service", lambda label: is_service_label(label, service_color)),
            LabelType("Category", lambda label: is_category_label(label, category_color)),
        ]

    def accept(self, label: Any) -> bool:
        if self.mode == "all":
            return all(label_type.predicate(label) for label_type in self.types)
        return any(label_type.predicate(label) for label_type in self.types)

    def __call__(self, label: Any) -> bool:
        return self.accept(label)


def accept_all_labels(label: Any) -> bool:
    """Filter used when no label filter is requested."""
    return True


def build_label_filter(
    mode: str = "any",
    service_color: str = SERVICE_COLOR,
    category_color: str = CATEGORY_COLOR,
) -> LabelPredicate:
    """Create the label filter for a configured mode; ``none`` keeps every label."""
    if mode == "none":
        return accept_all_labels
    return InterestFilter(service_color=service_color, category_color=category_color, mode=mode)
