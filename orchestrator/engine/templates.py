# ============================================================================
# TEMPLATE RESOLUTION ENGINE
# ============================================================================
# EPOCH: 1 - PIPELINE ENGINE
# STATUS: Core - Placeholder parsing and rendering with Jinja2
# PURPOSE: Resolve {p:..}, {i:..}, {o:..} placeholders in commands and paths
# CREATED: 18 OCT 2026
# ============================================================================
"""
Template Resolution Engine

Resolves placeholder expressions in process command lines and output paths.

Supported patterns:
- {p:name}            - Parameter value (literal or upstream output path)
- {i:name}            - Path of the upstream output bound to an input port
- {o:name}            - Resolved path of one of the process's own outputs
- {i:name|%.suffix}   - Same, with the trailing ".suffix" stripped

Examples:
    command: "jellyfish dump -c {i:jfDB}_* -o {o:kmerCount}"
    output:  "{i:jfDB|%.fasta.jf}.kmers.{p:k}.txt"

Templates are parsed once into tokens when declared. Rendering compiles the
token list into a Jinja2 template with StrictUndefined, so every lookup goes
through the same strict path the rest of the engine relies on.
"""

import logging
import re
import threading
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Callable, Dict, FrozenSet, Iterator, List, Optional, Tuple, Union

from jinja2 import BaseLoader, Environment, StrictUndefined, Template, TemplateSyntaxError, UndefinedError

from core.contracts import ReferenceKind
from core.errors import TemplateError

logger = logging.getLogger(__name__)

# {kind:name} or {kind:name|%suffix}
_PLACEHOLDER = re.compile(
    r"\{(?P<kind>[pio]):(?P<name>[A-Za-z0-9_\-]+)(?:\|%(?P<suffix>[^{}|]+))?\}"
)

Lookup = Callable[[ReferenceKind, str], str]

# Render-context key for literal segments; not a valid placeholder kind
_LITERALS = "literal"


# ============================================================================
# PARSED TOKENS
# ============================================================================

@dataclass(frozen=True)
class TemplateToken:
    """A single placeholder: kind, name and optional suffix to strip."""
    kind: ReferenceKind
    name: str
    suffix: Optional[str] = None

    def __str__(self) -> str:
        text = f"{self.kind.value}:{self.name}"
        if self.suffix is not None:
            text += f"|%{self.suffix}"
        return "{" + text + "}"


@dataclass(frozen=True)
class ParsedTemplate:
    """
    A template split into literal text and placeholder tokens.

    Immutable and hashable, so a process can hold it for the lifetime of the
    graph and the resolver can cache its compiled form.
    """
    source: str
    segments: Tuple[Union[str, TemplateToken], ...] = field(default_factory=tuple)

    @property
    def tokens(self) -> List[TemplateToken]:
        return [s for s in self.segments if isinstance(s, TemplateToken)]

    def references(self, kind: Optional[ReferenceKind] = None) -> FrozenSet[str]:
        """Names referenced by this template, optionally filtered by kind."""
        return frozenset(
            t.name for t in self.tokens
            if kind is None or t.kind == kind
        )

    @property
    def literals(self) -> Tuple[str, ...]:
        return tuple(s for s in self.segments if isinstance(s, str) and s)

    @property
    def has_placeholders(self) -> bool:
        return any(isinstance(s, TemplateToken) for s in self.segments)


def parse_template(text: str) -> ParsedTemplate:
    """
    Split template text into literal segments and placeholder tokens.

    Braces that do not form a valid placeholder are kept as literal text.
    """
    segments: List[Union[str, TemplateToken]] = []
    position = 0
    for match in _PLACEHOLDER.finditer(text):
        if match.start() > position:
            segments.append(text[position:match.start()])
        segments.append(TemplateToken(
            kind=ReferenceKind(match.group("kind")),
            name=match.group("name"),
            suffix=match.group("suffix"),
        ))
        position = match.end()
    if position < len(text):
        segments.append(text[position:])
    return ParsedTemplate(source=text, segments=tuple(segments))


# ============================================================================
# SUFFIX TRANSFORM
# ============================================================================

def strip_suffix(value: str, suffix: str) -> str:
    """
    Remove a trailing literal suffix from value.

    If the whole suffix is not trailing, the longest dot-delimited tail of it
    that is trailing is removed instead ("%.fasta.jf" on "g.fasta.9.jf"
    strips ".jf"). No-op when nothing matches.
    """
    value = str(value)
    if not suffix:
        return value
    if value.endswith(suffix):
        return value[:-len(suffix)]

    for index, char in enumerate(suffix):
        if char == "." and index > 0:
            tail = suffix[index:]
            if value.endswith(tail):
                return value[:-len(tail)]
    return value


# ============================================================================
# RESOLVER
# ============================================================================

class TemplateResolver:
    """
    Jinja2-based resolver for parsed templates.

    Thread-safe, can be reused across processes and runs. Compiled templates
    are cached by source text.
    """

    def __init__(self):
        self._env = Environment(
            loader=BaseLoader(),
            autoescape=False,
            undefined=StrictUndefined,
            keep_trailing_newline=True,
        )
        self._env.filters["strip_suffix"] = strip_suffix
        self._cache: Dict[str, Template] = {}
        self._lock = threading.Lock()

    def resolve(self, template: Union[ParsedTemplate, str], lookup: Lookup) -> str:
        """
        Substitute every placeholder in template.

        Args:
            template: Parsed template (or raw text, parsed on the fly)
            lookup: Function (kind, name) -> concrete string. Raises
                    LookupError when the name is not declared or not bound.

        Returns:
            Fully substituted string

        Raises:
            TemplateError: If any placeholder cannot be resolved
        """
        if isinstance(template, str):
            template = parse_template(template)
        if not template.has_placeholders:
            return template.source

        compiled = self._compile(template)
        context = {
            kind.value: _ReferenceView(kind, lookup, template.source)
            for kind in ReferenceKind
        }
        context[_LITERALS] = template.literals
        try:
            return compiled.render(context)
        except (TemplateSyntaxError, UndefinedError) as e:
            raise TemplateError(f"Failed to resolve '{template.source}': {e}") from e

    def _compile(self, template: ParsedTemplate) -> Template:
        with self._lock:
            compiled = self._cache.get(template.source)
            if compiled is None:
                try:
                    compiled = self._env.from_string(_to_jinja_source(template))
                except TemplateSyntaxError as e:
                    raise TemplateError(f"Invalid template '{template.source}': {e}") from e
                self._cache[template.source] = compiled
            return compiled


def _to_jinja_source(template: ParsedTemplate) -> str:
    """
    Translate tokens to Jinja2 expressions.

    Literal text is never handed to the Jinja2 lexer; it is rendered from the
    template's literal table so any brace sequence passes through unchanged.
    """
    parts = []
    literal_index = 0
    for segment in template.segments:
        if isinstance(segment, TemplateToken):
            expr = f"{segment.kind.value}[{segment.name!r}]"
            if segment.suffix is not None:
                expr += f" | strip_suffix({segment.suffix!r})"
            parts.append("{{ " + expr + " }}")
        elif segment:
            parts.append(f"{{{{ {_LITERALS}[{literal_index}] }}}}")
            literal_index += 1
    return "".join(parts)


class _ReferenceView(Mapping):
    """Mapping over one placeholder kind, backed by the caller's lookup."""

    def __init__(self, kind: ReferenceKind, lookup: Lookup, source: str):
        self._kind = kind
        self._lookup = lookup
        self._source = source

    def __getitem__(self, name: str) -> str:
        try:
            value = self._lookup(self._kind, name)
        except LookupError:
            value = None
        if value is None:
            raise TemplateError(
                f"Unresolved {self._kind.label} '{name}' in template '{self._source}'"
            )
        return str(value)

    def __iter__(self) -> Iterator[str]:
        return iter(())

    def __len__(self) -> int:
        return 0


# ============================================================================
# TEMPLATE VALUES
# ============================================================================

@dataclass
class TemplateValues:
    """Concrete values for one process, grouped by placeholder kind."""
    params: Dict[str, str] = field(default_factory=dict)
    inputs: Dict[str, str] = field(default_factory=dict)
    outputs: Dict[str, str] = field(default_factory=dict)

    def lookup(self, kind: ReferenceKind, name: str) -> str:
        """Lookup function for TemplateResolver.resolve()."""
        table = {
            ReferenceKind.PARAM: self.params,
            ReferenceKind.INPUT: self.inputs,
            ReferenceKind.OUTPUT: self.outputs,
        }[kind]
        return table[name]


# ============================================================================
# CONVENIENCE FUNCTIONS
# ============================================================================

_resolver: Optional[TemplateResolver] = None


def get_resolver() -> TemplateResolver:
    """Get shared template resolver instance."""
    global _resolver
    if _resolver is None:
        _resolver = TemplateResolver()
    return _resolver


def resolve_template(
    template: Union[ParsedTemplate, str],
    params: Optional[Dict[str, str]] = None,
    inputs: Optional[Dict[str, str]] = None,
    outputs: Optional[Dict[str, str]] = None,
) -> str:
    """
    Convenience function to resolve a template from plain dicts.

    Example:
        resolve_template("{i:jfDB|%.jf}.txt", inputs={"jfDB": "g1.fasta.9.jf"})
        # -> "g1.fasta.9.txt"
    """
    values = TemplateValues(
        params=params or {},
        inputs=inputs or {},
        outputs=outputs or {},
    )
    return get_resolver().resolve(template, values.lookup)


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "TemplateToken",
    "ParsedTemplate",
    "TemplateResolver",
    "TemplateValues",
    "parse_template",
    "strip_suffix",
    "get_resolver",
    "resolve_template",
]
