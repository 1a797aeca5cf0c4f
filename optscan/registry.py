"""
optscan registry: the fixed collection of descriptors a parse matches against.

Overview
- Registry(*readables) keeps an explicit-length, ordered collection and checks
  its invariants at construction time:
  • every item is a Readable,
  • no descriptor appears twice,
  • long names are unique, and so are short aliases among descriptors that declare one.
- find_long(name) / find_short(char) resolve tokens to descriptors with a linear
  scan (first match wins); registries hold tens of descriptors and parsing is a
  one-shot startup cost.
- registry | other builds the union used for multi-pass parsing.

The registry never copies or aliases descriptor values: it only holds references,
and the caller keeps ownership of the descriptors themselves.

Quick example:
    >>> registry = Registry(Flag("verbose", "v"), Int("threads", 1, "t"))
    >>> registry.find_short("t").name
    'threads'
    >>> registry.find_long("missing") is None
    True
"""
from .readables import Readable


class Registry:
    """
    Ordered, validated collection of option descriptors.

    Raises
    - TypeError: when an item is not a Readable.
    - ValueError: on a repeated descriptor, long name, or short alias.
    """
    __slots__ = ("_readables",)

    def __init__(self, *readables):
        names = set()
        shorts = set()
        seen = set()

        for readable in readables:
            if not isinstance(readable, Readable):
                raise TypeError("registry items must be readables")
            elif id(readable) in seen:
                raise ValueError("registry cannot contain the same readable twice")
            elif readable.name in names:
                raise ValueError(f"registry cannot contain duplicated names (found {readable.name!r} twice)")
            elif readable.short is not None and readable.short in shorts:
                raise ValueError(f"registry cannot contain duplicated shorts (found {readable.short!r} twice)")
            seen.add(id(readable))
            names.add(readable.name)
            if readable.short is not None:
                shorts.add(readable.short)

        self._readables = tuple(readables)

    @property
    def names(self):
        return tuple(readable.name for readable in self._readables)

    @property
    def shorts(self):
        return tuple(readable.short for readable in self._readables if readable.short is not None)

    def find_long(self, name, /):
        """
        Return the descriptor whose long name equals 'name' (case-sensitive), or None.
        """
        for readable in self._readables:
            if readable.name == name:
                return readable
        return None

    def find_short(self, char, /):
        """
        Return the descriptor whose short alias equals 'char', or None.
        """
        for readable in self._readables:
            if readable.short is not None and readable.short == char:
                return readable
        return None

    def missing(self):
        """
        Descriptors not matched by any parse so far (their 'set' flag is False).

        Callers use this to decide whether required options were supplied and to
        raise their own user-facing failure; the scanner itself never does.
        """
        return tuple(readable for readable in self._readables if not readable.set)

    def __or__(self, other, /):
        if not isinstance(other, Registry):
            return NotImplemented
        return Registry(*self._readables, *other._readables)

    def __len__(self):
        return len(self._readables)

    def __iter__(self):
        return iter(self._readables)

    def __contains__(self, item, /):
        if isinstance(item, str):
            return self.find_long(item) is not None
        return any(readable is item for readable in self._readables)

    def __getitem__(self, name, /):
        if (readable := self.find_long(name)) is None:
            raise KeyError(name)
        return readable

    def __repr__(self):
        return f"registry({", ".join(map(repr, self._readables))})"

    def __rich_repr__(self):
        yield from self._readables


__all__ = (
    "Registry",
)
