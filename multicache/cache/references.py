"""
multicache - Value Holders

Strategies for how an entry holds its value:

- StrongHolder: ordinary reference, only cleared by the cache itself
- WeakHolder: weakref, cleared once nothing outside the cache uses the value
- SoftHolder: strong until memory pressure is signalled, then weak

Python has no memory-pressure-aware reference, so "soft" is approximated:
the holder keeps a strong reference until ``release()`` is called (see
CacheManager.release_soft_references), after which the value lives on only
as long as something else references it.
"""

import weakref
from typing import Any

from ..config.schemas import ReferenceType
from ..errors import ValidationError


class ValueHolder:
    """Base value holder. ``get_value()`` returns the value or None once gone."""

    __slots__ = ()

    reference_type: ReferenceType

    def get_value(self) -> Any | None:
        raise NotImplementedError

    def release(self) -> None:
        """Memory pressure hook; only soft holders react to it."""


class StrongHolder(ValueHolder):
    __slots__ = ("_value",)

    reference_type = ReferenceType.STRONG

    def __init__(self, value: Any):
        self._value = value

    def get_value(self) -> Any | None:
        return self._value


class WeakHolder(ValueHolder):
    __slots__ = ("_ref",)

    reference_type = ReferenceType.WEAK

    def __init__(self, value: Any):
        self._ref = _weak_ref(value)

    def get_value(self) -> Any | None:
        return self._ref()


class SoftHolder(ValueHolder):
    __slots__ = ("_value", "_ref")

    reference_type = ReferenceType.SOFT

    def __init__(self, value: Any):
        self._value: Any | None = value
        try:
            self._ref: weakref.ref[Any] | None = weakref.ref(value)
        except TypeError:
            # Not weakly referenceable: dropped outright on release
            self._ref = None

    def get_value(self) -> Any | None:
        value = self._value
        if value is not None:
            return value
        ref = self._ref
        return ref() if ref is not None else None

    def release(self) -> None:
        self._value = None

    @property
    def released(self) -> bool:
        return self._value is None


def _weak_ref(value: Any) -> "weakref.ref[Any]":
    try:
        return weakref.ref(value)
    except TypeError as e:
        raise ValidationError(
            f"Values of type {type(value).__name__} cannot be held by a weak cache",
            details={"value_type": type(value).__name__, "reference_type": ReferenceType.WEAK.value},
        ) from e


_HOLDERS: dict[ReferenceType, type[ValueHolder]] = {
    ReferenceType.STRONG: StrongHolder,
    ReferenceType.SOFT: SoftHolder,
    ReferenceType.WEAK: WeakHolder,
}


def make_holder(reference_type: ReferenceType, value: Any) -> ValueHolder:
    """
    Wrap a value in the holder for the given reference type.

    Raises:
        ValidationError: If the value cannot be held weakly by a weak cache
    """
    return _HOLDERS[ReferenceType(reference_type)](value)
