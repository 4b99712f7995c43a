"""Natural-language type and field name mapping.

Step text names types the way authors speak ("redirector page",
"Taxonomy Terms") and fields by their form labels ("Navigation label") or
by CamelCase database names ("URLSegment"). ``TypeFieldMapper`` turns both
into registry names and canonical attribute names.
"""

from __future__ import annotations

import re
import typing as typ

from scenery.fixtures.errors import UnknownTypeError

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from scenery.schema.registry import TypeDescriptor, TypeRegistry

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def camel_to_attribute(name: str) -> str:
    """Return the snake_case attribute spelling of a CamelCase or spaced name.

    Examples
    --------
    >>> camel_to_attribute("URLSegment")
    'url_segment'
    >>> camel_to_attribute("First Name")
    'first_name'

    """
    spaced = _CAMEL_BOUNDARY.sub("_", name.strip())
    return re.sub(r"[\s_]+", "_", spaced).lower()


class TypeFieldMapper:
    """Resolve type and field names against a ``TypeRegistry``."""

    def __init__(self, registry: TypeRegistry) -> None:
        """Bind the mapper to ``registry``."""
        self._registry = registry

    def type_to_schema_class(self, text: str) -> TypeDescriptor:
        """Return the descriptor named by ``text``.

        Tries the camel-cased class name, then each type's singular display
        name, then its plural display name. All comparisons ignore case.

        Raises
        ------
        UnknownTypeError
            If nothing matches.

        """
        wanted = text.strip()
        camel = "".join(word[:1].upper() + word[1:] for word in wanted.split())
        folded = wanted.casefold()
        passes: tuple[cabc.Callable[[TypeDescriptor], bool], ...] = (
            lambda desc: desc.name.casefold() == camel.casefold(),
            lambda desc: desc.singular_name.casefold() == folded,
            lambda desc: desc.plural_name.casefold() == folded,
        )
        for matches in passes:
            for descriptor in self._registry:
                if matches(descriptor):
                    return descriptor
        raise UnknownTypeError(text)

    def map_field_aliases(
        self, descriptor: TypeDescriptor, fields: cabc.Mapping[str, typ.Any]
    ) -> dict[str, typ.Any]:
        """Rewrite label and CamelCase keys to canonical attribute names.

        Keys that already name a column or relation are kept. Unknown keys
        pass through unchanged so callers can report them.
        """
        return {
            self.map_field_name(descriptor, key): value for key, value in fields.items()
        }

    def map_field_name(self, descriptor: TypeDescriptor, name: str) -> str:
        """Return the canonical attribute for one field name or label."""
        if self._is_known(descriptor, name):
            return name
        folded = name.strip().casefold()
        for canonical, label in descriptor.field_labels.items():
            if label.casefold() == folded:
                return canonical
        attribute = camel_to_attribute(name)
        if self._is_known(descriptor, attribute):
            return attribute
        return name

    @staticmethod
    def _is_known(descriptor: TypeDescriptor, name: str) -> bool:
        return name in descriptor.columns or descriptor.relation(name) is not None
