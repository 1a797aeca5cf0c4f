"""
optscan faults (parse warnings) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for every recoverable issue the
  scanner can report. Codes are grouped so logs/searches stay predictable.
- ParseWarning: base type carrying a message + options that knows how to render
  itself in a friendly, lowercased, and actionable way.
- trigger(): central entry point to surface any fault (respecting shell/fancy/colorful).
- getdoc(): optional description lookup for a code from the host application.

Policy
- Nothing the scanner meets in a token vector is fatal: unknown options, missing
  values, malformed numbers, bad sequence counts and flag assignments all degrade
  to warnings, and the parse carries on with a best-effort result.
- Position-first messages: every message includes the ordinal position of the
  offending token (“at third position”), plus a single clear hint.

Integration
- The parser collects faults during a scan and calls trigger(fault, **ctx).
- In non-shell mode, faults go through warnings.warn (stderr by default);
  in shell mode, they are rendered via rich on stderr.
"""
import copy
import inspect
import warnings
from abc import ABC
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset

console = Console(stderr=True)


class FaultCode(IntEnum):
    """
    canonical fault codes used by the scanner (stable identifiers).

    grouping
    - warnings (1211x): every fault the scanner raises is recoverable.
      • UNKNOWN_OPTION: option name/character absent from the registry.
      • FLAG_ASSIGNMENT: '--flag=value' against a presence-only option.
      • MISSING_VALUE: a value-taking option ran out of tokens.
      • MALFORMED_VALUE: value text outside the numeric/range grammar.
      • INVALID_COUNT: a sequence count that is non-positive or too large.

    rationale
    - codes are discoverable (searchable in logs and docs) and normalized to a string
      via normalize() so hosts can remap them if desired.
    """
    UNKNOWN_OPTION  = 12111
    FLAG_ASSIGNMENT = 12112
    MISSING_VALUE   = 12113
    MALFORMED_VALUE = 12114
    INVALID_COUNT   = 12115

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels. when no mapping
        is present, the numeric value is returned as a string.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


class ParseWarning(ABC, Warning):
    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        self.message = message
        self.options = MappingProxyType(options)

    def __rich__(self):
        main = __import__("__main__")

        styles = defaultdict(str, {
            # header parts
            "prog-name": "bold #E6E6F0",  # near-white program name
            "code": "bold #FFB400",  # amber fault code
            "warning-title": "bold #FFC2E0",  # soft pinky title

            # body
            "warning-message": "#D6D6DE",  # light gray body
            "hint-arrow": "#B8EFAF dim",  # soft green arrow
            "hint": "italic #B8EFAF",  # soft green hint text
        } | getattr(main, "__styles__", {}))

        colorful = self.options.get("colorful", False)
        fancy = self.options.get("fancy", False)

        def styler(style):
            return styles[style] if colorful else ""

        def text(fragment, style=""):
            if not fragment:
                return Text("")
            if not colorful:
                return Text(str(fragment))
            if isinstance(fragment, Text):
                return fragment
            return Text(str(fragment), style)

        prog = text(getattr(main, "__prog__", self.options.get("prog", "optscan")), styler("prog-name"))

        header = Text.assemble(
            "[ ",
            prog,
            " — ",
            text(self.options["code"].normalize(), styler("code")),
            " | ",
            text(self.options["title"].title(), styler("warning-title")),
            " ]"
        )
        message = text(self.message, styler("warning-message"))
        hint = Text.assemble(text(" → ", styler("hint-arrow")), text(self.options.get("hint"), styler("hint")))

        if fancy:
            return Panel(Group(message, hint), title=header, title_align="left")

        return Group(header, message, hint)

    def __trigger__(self) -> None:
        if not self.options.get("shell", False):
            return warnings.warn(self, stacklevel=len(inspect.stack()))
        console.print(self)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class UnknownOptionWarning(ParseWarning): ...
class FlagAssignmentWarning(ParseWarning): ...
class MissingValueWarning(ParseWarning): ...
class MalformedValueWarning(ParseWarning): ...
class InvalidCountWarning(ParseWarning): ...


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ methods (see ParseWarning).
    - options are merged into the fault via __replace__(**options) before triggering.
    - in shell mode, rendering happens via the rich console; otherwise, warnings.warn.

    typical options
    - prog, shell, fancy, colorful, title, code, hint, docs, and any other context
      the reporter may want to show (e.g., token/index/readable).
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    copy.replace(fault, **options).__trigger__()


def getdoc(code, /):
    """
    optional documentation fetch for a fault code.

    lookup
    - the host application may expose a __docs__ mapping in __main__ where keys
      are FaultCode instances and values are short documentation strings.
    - when not found, returns None (renderers treat docs as optional).
    """
    if not isinstance(code, FaultCode):
        raise TypeError("getdoc() argument must be a fault-code")
    try:
        return getattr(__import__("__main__"), "__docs__", {})[code]
    except KeyError:
        return None


__all__ = (
    "ParseWarning",
    "UnknownOptionWarning",
    "FlagAssignmentWarning",
    "MissingValueWarning",
    "MalformedValueWarning",
    "InvalidCountWarning",
    "FaultCode",
    "trigger",
    "getdoc",
)
