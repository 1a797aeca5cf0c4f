r"""
optscan readables: typed option descriptors and their value readers.

Overview
- Variants (closed set, sealed against outside subclassing)
  • Flag: presence-only option (no payload), e.g. --verbose / -v.
  • Int, Float, String: single typed value, default supplied at construction.
  • IntSequence, StringSequence: count-prefixed list; the first consumed token is
    the element count N, followed by N element tokens.
  • IntRange: integer progression written as start:step:end, start:end (step 1),
    or a bare integer (start == end).

- Operations
  • read(readable, tokens): consume value tokens for a descriptor and report a
    Reading(consumed, success, fault). One match-dispatched function covers every
    variant, so adding a kind means touching exactly one place.
  • textualize(readable): current value as text (used by help rendering).
  • Readable.describe(): substitute name and value text into the help template.

- Introspection & representation
  • ReadableType metaclass provides stable __repr__/__rich_repr__ and exposes the
    fields declared in __introspectable__ via read-only properties (see mirror()).

Metadata (sanitized on construction)
- name: non-empty long name, no whitespace, no '=', must not start with '-'.
- short: Unset (no alias) or one character other than '-' and '='.
- descr: %-mapping template with optional %(name)s / %(value)s placeholders.
- default: coerced/validated per variant (int, float, str | None, iterables).

Permissive conversions
- Int/Float use C-style prefix conversion: "12abc" reads as 12, "abc" as 0.
  The reading still succeeds but carries FaultCode.MALFORMED_VALUE so the
  scanner can warn about it. Only ASCII digits count, and integers saturate
  to the signed 64-bit range like strtol (a clamped value is malformed too).

Quick example:
    >>> iterations = Int("iterations", 100, "i")
    >>> read(iterations, ("250", "input.ply"))
    Reading(consumed=1, success=True, fault=None)
    >>> iterations.value, iterations.set
    (250, True)
"""
import functools
import operator
import re
from collections import namedtuple
from collections.abc import Iterable

from .faults import FaultCode
from .utils import *

Reading = namedtuple("Reading", ("consumed", "success", "fault"), defaults=(None,))

_INTEGER = re.compile(r"\s*([+-]?\d+)", re.ASCII)
_REAL = re.compile(r"\s*([+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|inf(?:inity)?|nan))", re.IGNORECASE | re.ASCII)
_RANGES = (
    re.compile(r"\s*([+-]?\d+):([+-]?\d+):([+-]?\d+)\s*", re.ASCII),
    re.compile(r"\s*([+-]?\d+):([+-]?\d+)\s*", re.ASCII),
    re.compile(r"\s*([+-]?\d+)\s*", re.ASCII),
)

# strtol saturation bounds
_LIMITS = (-(1 << 63), (1 << 63) - 1)


def _integer(digits):
    """
    Convert a signed ASCII digit run, saturating like strtol.

    Returns (value, exact); exact is False when the value was clamped to
    _LIMITS, including runs too long for int() to convert at all.
    """
    try:
        value = int(digits)
    except ValueError:
        return _LIMITS[0] if digits.startswith("-") else _LIMITS[1], False
    if value < _LIMITS[0]:
        return _LIMITS[0], False
    if value > _LIMITS[1]:
        return _LIMITS[1], False
    return value, True


def _atoi(text):
    """
    C-style permissive integer conversion.

    Returns (value, strict) where strict tells whether the whole text was a
    well-formed, in-range integer; text without a leading integer converts to 0.
    """
    if match := _INTEGER.match(text):
        value, exact = _integer(match[1])
        return value, exact and not text[match.end():].strip()
    return 0, False


def _atof(text):
    """
    C-style permissive float conversion; same contract as _atoi.
    """
    if match := _REAL.match(text):
        return float(match[1]), not text[match.end():].strip()
    return 0.0, False


class ReadableType(type):
    """
    Metaclass that turns descriptor classes into introspectable specs.

    Responsibilities
    - Expose the names listed in __introspectable__ as read-only properties
      backed by "_{name}" fields (mirror() snapshots containers).
    - Provide stable __repr__/__rich_repr__ implementations for diagnostics.
    - Derive __typename__ from the class name ("IntSequence" → "int-sequence")
      for messages.
    """
    __introspectable__ = ()

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                name: mirror(name) for name in namespace.get("__introspectable__", ())
            },
        )

        @rename("__repr__")
        def __repr__(self):
            return f"{type(self).__typename__}({
                ", ".join(map(functools.partial(operator.mod, "%s=%r"), self.__rich_repr__()))
            })"
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            for name in type(self).__introspectable__:
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


def _sanitize_metadata(cls, metadata, /):
    """
    Internal: normalize and validate the metadata shared by every variant.

    - name: required string; trimmed, non-empty, no whitespace or '=', and it
      must not start with '-' (the scanner adds the dashes).
    - short: Unset or a single character other than '-', '=' and whitespace.
      Unset becomes None.
    - descr: Unset or a non-empty %-mapping template; Unset becomes the
      default "no description: %(name)s". Positional conversions
      (%s) are rejected and the template is test-formatted, so a broken one
      fails here rather than at help time.

    Raises
    - TypeError: wrong types.
    - ValueError: empty or ill-formed values.
    """
    if not isinstance(name := metadata["name"], str):
        raise TypeError(f"{cls.__typename__} 'name' must be a string")
    elif not (name := name.strip()):
        raise ValueError(f"{cls.__typename__} 'name' cannot be empty")
    elif name.startswith("-") or "=" in name or re.search(r"\s", name):
        raise ValueError(f"{cls.__typename__} 'name' must not start with '-' nor contain '=' or whitespace")
    metadata["name"] = name

    if not isinstance(short := metadata["short"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'short' must be a string")
    elif isinstance(short, str) and (len(short) != 1 or short in "-=" or short.isspace()):
        raise ValueError(f"{cls.__typename__} 'short' must be a single character other than '-' and '='")
    metadata["short"] = coalesce(short)

    if not isinstance(descr := metadata["descr"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'descr' must be a string")
    elif isinstance(descr, str) and not (descr := descr.strip()):
        raise ValueError(f"{cls.__typename__} 'descr' cannot be empty")
    descr = coalesce(descr, "no description: %(name)s")
    if re.search(r"%(?![(%])", descr.replace("%%", "")):
        raise ValueError(f"{cls.__typename__} 'descr' must only use named %(name)s/%(value)s placeholders")
    try:
        descr % {"name": "", "value": ""}
    except (KeyError, TypeError, ValueError):
        raise ValueError(f"{cls.__typename__} 'descr' must be a valid %(name)s/%(value)s template") from None
    metadata["descr"] = descr


def _sanitize_parametric_metadata(cls, metadata, /):
    """
    Internal: validate and normalize the default of value-bearing variants.

    - Int/IntRange: int (bool rejected).
    - Float: int or float, stored as float.
    - String: str or None.
    - IntSequence/StringSequence: non-string iterable of the element type,
      stored as a tuple.
    """
    default = metadata["default"]
    element = cls.__element__

    if issubclass(cls, IntSequence | StringSequence):
        if not isinstance(default, Iterable) or isinstance(default, str):
            raise TypeError(f"{cls.__typename__} 'default' must be an iterable")
        default = tuple(default)
        if not all(isinstance(item, element) and not isinstance(item, bool) for item in default):
            raise TypeError(f"{cls.__typename__} 'default' items must be of type {element.__name__!r}")
    elif cls is String:
        if not isinstance(default, str | None):
            raise TypeError(f"{cls.__typename__} 'default' must be a string")
    elif cls is Float:
        if not isinstance(default, int | float) or isinstance(default, bool):
            raise TypeError(f"{cls.__typename__} 'default' must be a number")
        default = float(default)
    elif not isinstance(default, int) or isinstance(default, bool):
        raise TypeError(f"{cls.__typename__} 'default' must be an integer")

    metadata["default"] = default


class Readable(metaclass=ReadableType):
    """
    Common base of every option descriptor.

    A descriptor is created by the caller before parsing, mutated in place by
    the scanner (its 'set' flag and stored value) and read back afterwards.
    The variant set is closed: Readable cannot be subclassed outside this module
    and cannot be instantiated directly.

    Properties
    - name, short, set, descr (plus value/default on value-bearing variants)
      are read-only; only the scanner updates them through read().
    - parametric: whether the option expects an argument (False for Flag).
    """
    __introspectable__ = ("name", "short", "set", "descr")

    parametric = False

    def __init_subclass__(cls, **options):
        if cls.__module__ != __name__:
            raise TypeError(f"type {cls.__mro__[1].__name__!r} is not an acceptable base type")
        super().__init_subclass__(**options)

    def __new__(cls, *args, **kwargs):
        if cls is Readable:
            raise TypeError("type 'Readable' cannot be instantiated directly")
        return super().__new__(cls)

    def _setup(self, metadata, /):
        _sanitize_metadata(type(self), metadata)
        if self.parametric:
            _sanitize_parametric_metadata(type(self), metadata)
            metadata["value"] = metadata["default"]

        for name, object in metadata.items():
            setattr(self, "_" + name, object)
        self._set = False

    def describe(self):
        """
        Render the help template with this descriptor's name and current value.

        Example
        - Int("iterations", 100, descr="--%(name)s <n> [%(value)s]").describe()
          → "--iterations <n> [100]"
        """
        return self._descr % {"name": self._name, "value": textualize(self)}


class Flag(Readable):
    """
    Presence-only option: matching it only flips 'set' to True.

    Flags cluster in short form (-abc) and never consume a following token;
    an inline '--flag=value' is reported but still marks the flag.
    """
    __introspectable__ = ("name", "short", "set", "descr")

    def __init__(self, name, /, short=Unset, *, descr=Unset):
        self._setup({"name": name, "short": short, "descr": descr})


class Int(Readable):
    """Single integer value (permissive, C-style conversion)."""
    __introspectable__ = ("name", "short", "set", "descr", "value", "default")
    __element__ = int

    parametric = True

    def __init__(self, name, default=0, /, short=Unset, *, descr=Unset):
        self._setup({"name": name, "default": default, "short": short, "descr": descr})


class Float(Readable):
    """Single floating-point value (permissive, C-style conversion)."""
    __introspectable__ = ("name", "short", "set", "descr", "value", "default")
    __element__ = float

    parametric = True

    def __init__(self, name, default=0.0, /, short=Unset, *, descr=Unset):
        self._setup({"name": name, "default": default, "short": short, "descr": descr})


class String(Readable):
    """Single text value, taken verbatim (None until read unless a default is given)."""
    __introspectable__ = ("name", "short", "set", "descr", "value", "default")
    __element__ = str

    parametric = True

    def __init__(self, name, default=None, /, short=Unset, *, descr=Unset):
        self._setup({"name": name, "default": default, "short": short, "descr": descr})


class IntSequence(Readable):
    """
    Count-prefixed integer list: '--points 3 10 20 30' stores (10, 20, 30).

    A non-positive count, or one larger than the tokens left, consumes only the
    count token and leaves the descriptor as it was.
    """
    __introspectable__ = ("name", "short", "set", "descr", "value", "default")
    __element__ = int

    parametric = True

    def __init__(self, name, default=(), /, short=Unset, *, descr=Unset):
        self._setup({"name": name, "default": default, "short": short, "descr": descr})


class StringSequence(Readable):
    """Count-prefixed text list; same counting rules as IntSequence."""
    __introspectable__ = ("name", "short", "set", "descr", "value", "default")
    __element__ = str

    parametric = True

    def __init__(self, name, default=(), /, short=Unset, *, descr=Unset):
        self._setup({"name": name, "default": default, "short": short, "descr": descr})


class IntRange(Readable):
    """
    Integer progression written as 'start:step:end', 'start:end' or 'start'.

    Properties
    - value: (start, step, end) triple.
    - start, step, end: the triple's parts.
    - values: the inclusive progression (a single item when step is 0).

    Text matching none of the three forms resets the range to the constructed
    default (start == end == default, step 1) and clears 'set'.
    """
    __introspectable__ = ("name", "short", "set", "descr", "value", "default")
    __element__ = int

    parametric = True

    def __init__(self, name, default=0, /, short=Unset, *, descr=Unset):
        self._setup({"name": name, "default": default, "short": short, "descr": descr})
        self._value = (self._default, 1, self._default)

    @property
    def start(self):
        return self._value[0]

    @property
    def step(self):
        return self._value[1]

    @property
    def end(self):
        return self._value[2]

    @property
    def values(self):
        start, step, end = self._value
        if not step:
            return (start,)
        return tuple(range(start, end + (1 if step > 0 else -1), step))


def read(readable, tokens, /):
    """
    Consume value tokens for a descriptor and update it in place.

    parameters
    - readable: Readable
      the matched descriptor.
    - tokens: Sequence[str]
      the tokens available to it, starting with its first value token (an
      inline value, when present, is the first item).

    returns
    - Reading(consumed, success, fault):
      • consumed: tokens taken from 'tokens' (0 for flags and exhausted input).
      • success: whether a value was stored and 'set' marked.
      • fault: FaultCode describing a recoverable problem, or None.

    rules
    - Flag: marks 'set', consumes nothing.
    - no tokens left: nothing changes, Reading(0, False, MISSING_VALUE).
    - Int/Float/String: one token; permissive conversion (MALFORMED_VALUE when
      the text is not strictly numeric, but the value is still stored).
    - IntSequence/StringSequence: count N then N items; a bad count consumes
      the count token only, Reading(1, False, INVALID_COUNT).
    - IntRange: one token; an unparseable one resets to the default and clears
      'set', Reading(1, False, MALFORMED_VALUE).
    """
    match readable:
        case Flag():
            readable._set = True
            return Reading(0, True)
        case Readable() if not tokens:
            return Reading(0, False, FaultCode.MISSING_VALUE)
        case Int():
            readable._value, strict = _atoi(tokens[0])
            readable._set = True
            return Reading(1, True, None if strict else FaultCode.MALFORMED_VALUE)
        case Float():
            readable._value, strict = _atof(tokens[0])
            readable._set = True
            return Reading(1, True, None if strict else FaultCode.MALFORMED_VALUE)
        case String():
            readable._value = tokens[0]
            readable._set = True
            return Reading(1, True)
        case IntSequence() | StringSequence():
            count, _ = _atoi(tokens[0])
            if count <= 0 or len(tokens) <= count:
                return Reading(1, False, FaultCode.INVALID_COUNT)
            items = tokens[1:count + 1]
            strict = True
            if isinstance(readable, IntSequence):
                converted = []
                for item in items:
                    value, exact = _atoi(item)
                    converted.append(value)
                    strict &= exact
                items = converted
            readable._value = tuple(items)
            readable._set = True
            return Reading(1 + count, True, None if strict else FaultCode.MALFORMED_VALUE)
        case IntRange():
            parts = ()
            for pattern in _RANGES:
                if match := pattern.fullmatch(tokens[0]):
                    parts = tuple(map(_integer, match.groups()))
                    break
            if not parts or not all(exact for _, exact in parts):
                readable._value = (readable._default, 1, readable._default)
                readable._set = False
                return Reading(1, False, FaultCode.MALFORMED_VALUE)
            match tuple(value for value, _ in parts):
                case (start, step, end):
                    pass
                case (start, end):
                    step = 1
                case (start,):
                    end = start
                    step = 1
            readable._value = (start, step, end)
            readable._set = True
            return Reading(1, True)
        case _:
            raise TypeError("read() argument must be a readable")


def textualize(readable, /):
    """
    Return the descriptor's current value as text.

    - Flag → "" (presence is shown by 'set', not by a value)
    - Int → "%d", Float → "%f", String → the text or "" when None
    - sequences → space-separated items
    - IntRange → "start:step:end"
    """
    match readable:
        case Flag():
            return ""
        case Int():
            return "%d" % readable._value
        case Float():
            return "%f" % readable._value
        case String():
            return coalesce(readable._value) or ""
        case IntSequence() | StringSequence():
            return " ".join(map(str, readable._value))
        case IntRange():
            return "%d:%d:%d" % readable._value
        case _:
            raise TypeError("textualize() argument must be a readable")


__all__ = (
    # Base and variants
    "Readable",
    "Flag",
    "Int",
    "Float",
    "String",
    "IntSequence",
    "StringSequence",
    "IntRange",

    # Operations
    "Reading",
    "read",
    "textualize",
)

# Remove the internal metaclass from the module namespace to avoid accidental
# exposure in docs, autocompletion, or star-imports. Not part of the public API.
del ReadableType
