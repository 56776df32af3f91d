"""
Data-source exception hierarchy with fuzzy-match suggestions.

All exceptions inherit from ``DataSourceError`` and provide
``to_dict()`` for API-friendly error responses.
"""

from __future__ import annotations

from difflib import get_close_matches
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence


class DataSourceError(Exception):
    """Root exception for the data-source package."""

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.__class__.__name__,
            "message": str(self),
        }


class ValidationError(DataSourceError):
    """Raised when a descriptor, option set or builder argument is malformed.

    Carries structured errors: ``{location: [messages]}``.
    """

    def __init__(self, errors: dict[str, list[str]] | str | None = None) -> None:
        if isinstance(errors, str):
            self.errors: dict[str, list[str]] = {"__root__": [errors]}
        elif errors is None:
            self.errors = {}
        else:
            self.errors = errors
        super().__init__(self._build_message())

    def _build_message(self) -> str:
        root = self.errors.get("__root__")
        if root and len(self.errors) == 1:
            return "; ".join(root)
        return str(self.errors)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "VALIDATION_ERROR",
            "message": str(self),
            "errors": self.errors,
        }


# ── Lookups ──────────────────────────────────────────────────────────


class NotFoundError(DataSourceError):
    """
    Lookup of a named schema element that does not exist.

    Uses fuzzy matching to suggest similar valid names::

        Field 'emial' not found in 'users'.
        Did you mean one of these?
          • email
        Available: email, id, name
    """

    kind = "element"

    def __init__(
        self,
        name: str,
        owner: str | None = None,
        available: Iterable[str] = (),
    ) -> None:
        self.name = name
        self.owner = owner
        self.available = sorted(available)
        self.suggestions = get_close_matches(name, self.available, n=5, cutoff=0.6)
        super().__init__(self._build_message())

    def _build_message(self) -> str:
        where = f" in '{self.owner}'" if self.owner else ""
        lines = [f"{self.kind.capitalize()} '{self.name}' not found{where}."]
        if self.suggestions:
            lines.append("Did you mean one of these?")
            for s in self.suggestions:
                lines.append(f"  • {s}")
        if self.available:
            preview = ", ".join(self.available[:15])
            if len(self.available) > 15:
                preview += ", ..."
            lines.append(f"Available: {preview}")
        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": f"{self.kind.upper().replace(' ', '_')}_NOT_FOUND",
            "name": self.name,
            "owner": self.owner,
            "suggestions": self.suggestions,
            "available": self.available,
        }


class FieldNotFoundError(NotFoundError):
    kind = "field"


class IndexNotFoundError(NotFoundError):
    kind = "index"


class ForeignKeyNotFoundError(NotFoundError):
    kind = "foreign key"


class CollectionNotFoundError(NotFoundError):
    kind = "collection"


class MappingNotFoundError(NotFoundError):
    kind = "mapping"


class DocumentNotFoundError(NotFoundError):
    """Raised by drivers when a primary key matches no stored document."""

    kind = "document"


class DuplicateNameError(DataSourceError):
    """Raised when adding a field/index/foreign key/collection/mapping twice."""

    def __init__(self, kind: str, name: str, owner: str | None = None) -> None:
        self.kind = kind
        self.name = name
        self.owner = owner
        where = f" in '{owner}'" if owner else ""
        super().__init__(f"{kind.capitalize()} '{name}' already present{where}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "DUPLICATE_NAME",
            "kind": self.kind,
            "name": self.name,
            "owner": self.owner,
        }


# ── Contracts ────────────────────────────────────────────────────────


class AbstractMethodNotImplementedError(DataSourceError, NotImplementedError):
    """A capability of a base contract that the concrete class does not supply.

    Signals an integration bug; never recoverable at runtime.
    """

    def __init__(self, owner: str, method: str) -> None:
        self.owner = owner
        self.method = method
        super().__init__(f"{owner}.{method}() is not implemented")


class UnsupportedTypeError(DataSourceError):
    """Raised by drivers for a logical or raw type they cannot handle."""

    def __init__(self, type_name: str, driver: str | None = None) -> None:
        self.type_name = type_name
        self.driver = driver
        suffix = f" by {driver}" if driver else ""
        super().__init__(f"Type '{type_name}' is not supported{suffix}")


class SchemaSyncError(DataSourceError):
    """One or more provisioning calls failed during ``Schema.sync``.

    ``errors`` holds every failure of the failing phase; the first one is
    also the ``__cause__``.
    """

    def __init__(self, phase: str, errors: Sequence[BaseException]) -> None:
        self.phase = phase
        self.errors = list(errors)
        super().__init__(
            f"Schema sync failed while ensuring {phase}: "
            f"{len(self.errors)} error(s). "
            f"First error: {self.errors[0] if self.errors else 'unknown'}"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "SCHEMA_SYNC_ERROR",
            "phase": self.phase,
            "errors": [str(e) for e in self.errors],
        }


# ── Query construction & parsing ─────────────────────────────────────


class QueryError(DataSourceError):
    """Base for query builder errors."""


class EmptyWhereStackError(QueryError):
    """A clause call was issued outside an open where-clause."""

    def __init__(self, call: str) -> None:
        self.call = call
        super().__init__(f"Empty where-clause stack: cannot call {call}()")


class UserQueryError(ValidationError):
    """Base for errors raised while parsing a human-written filter."""

    def __init__(self, message: str, path: str | None = None) -> None:
        self.message = message
        self.path = path
        super().__init__({path or "__root__": [message]})

    def _build_message(self) -> str:
        if self.path:
            return f"{self.message} (at {self.path})"
        return self.message


class MultipleFieldsInBranchError(UserQueryError):
    """Two sibling field keys were found at the same nesting level."""

    def __init__(self, branch_field: str, field: str) -> None:
        self.branch_field = branch_field
        self.field = field
        super().__init__(
            f"Only one field authorized per tree branch: '{field}' found "
            f"under '{branch_field}'",
            path=branch_field,
        )


class FieldRequiredError(UserQueryError):
    """A comparison operator was used without an associated field."""

    def __init__(self, operator: str) -> None:
        self.operator = operator
        super().__init__(f"Field required for operator '{operator}'")


class UnknownOperatorError(UserQueryError):
    """Unknown operator, with fuzzy-matched suggestions."""

    def __init__(self, operator: str, valid_operators: Iterable[str]) -> None:
        self.operator = operator
        self.valid_operators = sorted(valid_operators)
        self.suggestions = get_close_matches(
            operator, self.valid_operators, n=3, cutoff=0.6
        )
        message = f"Unknown operator: '{operator}'."
        if self.suggestions:
            message += f" Did you mean: {', '.join(self.suggestions)}?"
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "UNKNOWN_OPERATOR",
            "operator": self.operator,
            "suggestions": self.suggestions,
            "valid_operators": self.valid_operators,
        }


# ── Mapping ──────────────────────────────────────────────────────────


class MissingDiscriminatorValueError(ValidationError):
    """An extending mapping omits a discriminator value required by an ancestor."""

    def __init__(self, mapping: str, ancestor: str, discriminator: str) -> None:
        self.mapping = mapping
        self.ancestor = ancestor
        self.discriminator = discriminator
        super().__init__(
            {
                "discriminator_values": [
                    f"Mapping '{mapping}' must provide a value for discriminator "
                    f"'{discriminator}' of '{ancestor}'"
                ]
            }
        )

    def _build_message(self) -> str:
        return self.errors["discriminator_values"][0]
