"""
optscan parser: match an argument vector against a registry of readables.

What this module provides
- Parser: scans argv-like token vectors with POSIX/GNU-style syntax and updates
  the matched descriptors in place.
- Mode: COLLECT (gather plain arguments, warn on unknown options) or STRIP
  (rebuild a clean, re-parseable vector of everything left unmatched).
- parse(tokens, registry, mode): one-shot convenience around Parser.

Accepted syntax
    plain               non-option argument
    --name              long flag (no value)
    --name value        long option, value taken from the next token(s)
    --name=value        long option, inline value
    -abc                clustered short flags a, b and c
    -s value            short option, value taken from the next token(s)
    -svalue             short option, inline value

Core ideas
- Explicit cursor: the scanner walks an immutable token tuple with self._index,
  advancing by however many tokens each descriptor consumed. The caller's vector
  is never modified; results are new lists owned by the caller.
- Best-effort: nothing in a token vector stops a parse. In COLLECT mode problems
  become position-first warnings (see optscan.faults); in STRIP mode they are
  silently passed through for a later pass.
- Multi-pass parsing: index 0 (the invocation path) leads the stripped vector,
  followed by unmatched long options verbatim, unmatched short options re-encoded
  standalone ('-x'), and plain tokens, all in their original order.

Quick start
    from optscan import Parser, Registry, Flag, Int, String

    verbose = Flag("verbose", "v")
    threads = Int("threads", 1, "t")
    output = String("output", "out.ply", "o")

    parser = Parser(Registry(verbose, threads, output))
    inputs = parser.collect(["prog", "-vt4", "--output=mesh.ply", "scan.ply"])
    # inputs == ["scan.ply"]; verbose.set, threads.value == 4, output.value == "mesh.ply"

Concurrency
- A Parser mutates shared descriptors during a scan; concurrent parses against the
  same registry must be serialized by the caller.
"""
import copy
import difflib
import os.path
import shlex
import sys
from collections import defaultdict
from collections.abc import Iterable
from enum import Enum

from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .faults import *
from .readables import *
from .registry import Registry
from .utils import *


class Mode(Enum):
    """
    Parse mode.

    - COLLECT: plain tokens are returned; unknown options are warned about.
    - STRIP: matched options (and their values) are removed; everything else is
      returned as a vector suitable for another parse pass.
    """
    COLLECT = "collect"
    STRIP = "strip"


class Parser:
    """
    Token scanner bound to a registry of readables.

    Responsibilities
    - Classification: every token is a long option ('--'), a short cluster ('-')
      or a plain token; a lone '-' is an empty cluster and is dropped.
    - Dispatch: matched descriptors read their own values (optscan.readables.read)
      and report how many tokens they consumed.
    - Routing: leftovers go to the collected plain arguments or to the stripped
      vector depending on the mode.
    - Faults: COLLECT-mode problems are turned into warnings, surfaced right away,
      batched until the end of the scan (deferred), or handed to a fallback.

    Runtime options
    - shell: render faults with rich on stderr instead of warnings.warn.
    - fancy: wrap rendered faults/help in panels.
    - colorful: apply the palette (overridable via __styles__ in __main__).
    - deferred: surface the run's faults once, after the scan finishes.
    """

    registry = mirror("registry")
    shell = mirror("shell")
    fancy = mirror("fancy")
    colorful = mirror("colorful")
    deferred = mirror("deferred")
    faults = mirror("faults")

    def __init__(self, registry, /, *, shell=False, fancy=False, colorful=False, deferred=False):
        if not isinstance(registry, Registry):
            if not isinstance(registry, Iterable):
                raise TypeError("parser registry must be a registry or an iterable of readables")
            registry = Registry(*registry)

        self._registry = registry
        self._shell = bool(shell)
        self._fancy = bool(fancy)
        self._colorful = bool(colorful)
        self._deferred = bool(deferred)
        self._fallback = Unset
        self._faults = []

        # Per-run scan state
        self._tokens = ()
        self._index = 0
        self._mode = Mode.COLLECT
        self._output = []
        self._prog = "optscan"

    def fallback(self, fallback, /):
        """
        Register a fallback handler for faults.

        Contract
        - fallback: callable invoked instead of the default surfacing.
          • When deferred is True, it is called once with a tuple of faults.
          • When deferred is False, it is called with each fault as it happens.

        Rules
        - Must be callable.
        - Can be set only once per parser (cannot be overridden).

        Returns
        - The same callable, enabling decorator-style usage: @parser.fallback
        """
        if not callable(fallback):
            raise TypeError("parser fallback must be callable")
        if self._fallback is not Unset:
            raise TypeError("parser fallback cannot be overridden")
        self._fallback = fallback
        return fallback

    def trigger(self, fault, /, **options):
        """
        Record a fault for this run and surface it (unless deferred).

        The parser's runtime options (prog/shell/fancy/colorful) are merged into
        the fault via copy.replace before it is stored.
        """
        if (
                not hasattr(fault, "__trigger__") or
                not callable(fault.__trigger__) or
                not hasattr(fault, "__replace__") or
                not callable(fault.__replace__)
        ):
            raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
        fault = copy.replace(fault, **options, prog=self._prog, shell=self._shell, fancy=self._fancy, colorful=self._colorful)
        self._faults.append(fault)
        if self._deferred:
            return
        if self._fallback:
            self._fallback(fault)
        else:
            trigger(fault)

    def parse(self, tokens=Unset, /, mode=Mode.COLLECT):
        """
        Parse an argument vector and return the plain or stripped tokens.

        Parameters
        - tokens:
          • Unset: use sys.argv.
          • str: shell-like string; split with shlex.split.
          • Iterable[str]: pre-tokenized vector.
          In every form index 0 is the invocation path and is never matched.
        - mode: Mode (or its value, "collect" / "strip").

        Returns
        - COLLECT: list of non-option arguments in their original order.
        - STRIP: list holding the invocation path followed by every unmatched
          option and plain token, ready for another parse.

        Raises
        - TypeError: when tokens is not Unset/str/Iterable[str].
        - ValueError: when mode is not a known mode.
        """
        if not isinstance(mode, Mode):
            try:
                mode = Mode(mode)
            except ValueError:
                raise ValueError(f"parse() mode must be one of {', '.join(repr(x.value) for x in Mode)}") from None

        if tokens is Unset:
            tokens = sys.argv
        elif isinstance(tokens, str):
            tokens = shlex.split(tokens)
        elif isinstance(tokens, Iterable):
            tokens = list(tokens)
            if not all(isinstance(token, str) for token in tokens):
                raise TypeError("parse() argument must be a string or an iterable of strings")
        else:
            raise TypeError("parse() argument must be a string or an iterable of strings")

        return self._parseargs(tuple(tokens), mode)

    def collect(self, tokens=Unset, /):
        """
        Shorthand for parse(tokens, Mode.COLLECT).
        """
        return self.parse(tokens, Mode.COLLECT)

    def strip(self, tokens=Unset, /):
        """
        Shorthand for parse(tokens, Mode.STRIP).
        """
        return self.parse(tokens, Mode.STRIP)

    def _parseargs(self, tokens, mode):
        """
        scan the token tuple from index 1 to the end.

        phases
        - setup: reset per-run state (faults, output, cursor) and copy the
          invocation path into the stripped vector when stripping.
        - loop: classify the token under the cursor and hand it to _scan_long,
          _scan_short or the plain-token route; every branch advances the cursor,
          so the scan always terminates.
        - finalize: surface deferred faults.
        """
        self._faults.clear()
        self._tokens = tokens
        self._mode = mode
        self._index = 1
        self._output = []

        if tokens:
            self._prog = os.path.basename(tokens[0]) or "optscan"
            if mode is Mode.STRIP:
                self._output.append(tokens[0])

        while self._index < len(self._tokens):
            token = self._tokens[self._index]

            if token.startswith("--"):
                self._scan_long(token)
            elif token.startswith("-"):
                self._scan_short(token)
            else:
                # plain tokens go to the output either way
                self._output.append(token)
                self._index += 1

        self._finalize()
        return list(self._output)

    def _scan_long(self, token):
        """
        match a '--name', '--name value' or '--name=value' token.

        behavior
        - the text after '--' is split at the first '=' into name and inline value.
        - unknown name: warn (COLLECT) or keep the token verbatim (STRIP); the
          cursor moves past this token only, so a following token is scanned on
          its own.
        - flag: marked set; an inline value is warned about and ignored.
        - value-taking: reads from the inline value first (then the following
          tokens), or from the following tokens; the cursor skips whatever was
          consumed.
        """
        index = self._index
        name, assignment, value = token[2:].partition("=")
        readable = self._registry.find_long(name)

        if readable is None:
            if self._mode is Mode.STRIP:
                self._output.append(token)
            self._report(FaultCode.UNKNOWN_OPTION, "--" + name, index)
            self._index += 1
            return

        if not readable.parametric:
            if assignment:
                self._report(FaultCode.FLAG_ASSIGNMENT, "--" + name, index, readable)
            read(readable, ())
            self._index += 1
            return

        if assignment:
            # the inline value belongs to this token, so it is not an extra step
            reading = read(readable, (value, *self._tokens[index + 1:]))
            self._index += max(reading.consumed, 1)
        else:
            reading = read(readable, self._tokens[index + 1:])
            self._index += 1 + reading.consumed

        if reading.fault:
            self._report(reading.fault, "--" + name, index, readable)

    def _scan_short(self, token):
        """
        match a cluster of short options ('-abc', '-s value', '-svalue').

        behavior
        - characters are resolved one at a time.
        - unknown character: warn (COLLECT) or emit a standalone '-x' (STRIP), and
          keep walking the cluster.
        - flag: marked set, keep walking.
        - value-taking: the rest of the token (if any) is its first value token,
          otherwise the next token is; this ends the cluster.
        """
        index = self._index

        for position, char in enumerate(token[1:], 2):
            readable = self._registry.find_short(char)

            if readable is None:
                if self._mode is Mode.STRIP:
                    self._output.append("-" + char)
                self._report(FaultCode.UNKNOWN_OPTION, "-" + char, index)
                continue

            if not readable.parametric:
                read(readable, ())
                continue

            if inline := token[position:]:
                reading = read(readable, (inline, *self._tokens[index + 1:]))
                self._index += max(reading.consumed, 1)
            else:
                reading = read(readable, self._tokens[index + 1:])
                self._index += 1 + reading.consumed

            if reading.fault:
                self._report(reading.fault, "-" + char, index, readable)
            return

        self._index += 1

    def _report(self, code, option, index, readable=None, /):
        """
        turn a recoverable problem into a position-first warning (COLLECT only).

        parameters
        - code: FaultCode of the problem.
        - option: the option as written ('--name' or '-x').
        - index: position of the option token (1-based, the invocation path is 0).
        - readable: the matched descriptor, when there is one.
        """
        if self._mode is Mode.STRIP:
            return

        position = ordinal(index)

        match code:
            case FaultCode.UNKNOWN_OPTION:
                if option.startswith("--"):
                    candidates = ["--" + name for name in self._registry.names]
                else:
                    candidates = ["-" + short for short in self._registry.shorts]
                suggestions = difflib.get_close_matches(option, candidates, 5)
                try:
                    hint = "did you mean %r? otherwise remove it or fix its spelling" % suggestions[0]
                except IndexError:
                    hint = "remove it or fix its spelling"
                fault = UnknownOptionWarning(
                    "unknown option %r at %s position" % (option, position),
                    title="unknown option",
                    suggestions=suggestions,
                    hint=hint,
                )
            case FaultCode.FLAG_ASSIGNMENT:
                fault = FlagAssignmentWarning(
                    "flag %r at %s position cannot have an inline value" % (option, position),
                    title="flag cannot take a value",
                    hint="remove everything from '=' (for example: %s)" % option,
                )
            case FaultCode.MISSING_VALUE:
                fault = MissingValueWarning(
                    "option %r at %s position is missing its value" % (option, position),
                    title="missing value",
                    hint="pass a value after it (for example: %s %s)" % (option, _metavar(readable)),
                )
            case FaultCode.MALFORMED_VALUE:
                fault = MalformedValueWarning(
                    "option %r at %s position got a malformed value" % (option, position),
                    title="malformed value",
                    hint="expected %s; %s" % (
                        _metavar(readable),
                        "the option was left unset" if not readable.set else "the value was read as %r" % textualize(readable)
                    ),
                )
            case FaultCode.INVALID_COUNT:
                fault = InvalidCountWarning(
                    "option %r at %s position declares an invalid item count" % (option, position),
                    title="invalid item count",
                    hint="start with a positive count followed by that many items (for example: %s 2 a b)" % option,
                )
            case _:
                raise RuntimeError("unexpected fault code")

        self.trigger(fault, code=code, option=option, index=index, readable=readable, docs=getdoc(code))

    def _finalize(self):
        """
        surface the faults of a deferred run, all at once.

        - nothing to do when not deferred (faults were surfaced as they happened)
          or when the run was clean.
        - a fallback receives the whole tuple; otherwise each fault is triggered.
        """
        if not self._deferred or not self._faults:
            return
        if self._fallback:
            self._fallback(tuple(self._faults))
            return
        for fault in self._faults:
            trigger(fault)

    def help(self, console=Unset, /):
        """
        Render the registry as help text.

        Layout
        - usage line: "usage: <prog> [options]".
        - one row per readable: its names ('-s, --name') and value placeholder,
          then its rendered description (Readable.describe()).
        - wrapped in a panel when fancy is True.

        Palette keys
        - usage-label, program-name, option-name, flag-name, metavar,
          option-description, panel-title.
        - Define a mapping named __styles__ in __main__ to override any entry;
          when colorful is False, styling is suppressed.
        """
        console = coalesce(console, Console())
        styles = defaultdict(str, {
            "usage-label": "bold #00E6FF",  # cyan headline
            "program-name": "bold #FF4D94",  # magenta-pink brand pop
            "option-name": "bold #00E6FF",  # cyan for value-taking options
            "flag-name": "bold #22C55E",  # green for flags
            "metavar": "bold #FFD600",  # amber value placeholders
            "option-description": "#9CA3AF",  # muted gray
            "panel-title": "bold #FF4D94",
        } | getattr(__import__("__main__"), "__styles__", {}))

        def styler(style):
            return styles[style] if self._colorful else ""

        def text(fragment, style=""):
            if not fragment:
                return Text("")
            if not self._colorful:
                return Text(str(fragment))
            return Text(str(fragment), style)

        prog = getattr(__import__("__main__"), "__prog__", self._prog)

        usage = Text()
        usage.append(text("usage", styler("usage-label"))).append(":")
        usage.append(" ")
        usage.append(text(prog, styler("program-name")))
        if self._registry:
            usage.append(" [options]")

        table = Table(box=None, show_header=False, padding=(0, 2), pad_edge=False)
        for readable in self._registry:
            style = styler("option-name" if readable.parametric else "flag-name")
            names = Text(", ").join(
                text(name, style) for name in (
                    *(["-" + readable.short] if readable.short is not None else []),
                    "--" + readable.name,
                )
            )
            if readable.parametric:
                names.append(" ").append(text(_metavar(readable), styler("metavar")))
            table.add_row(names, text(readable.describe(), styler("option-description")))

        renderable = Group(usage, table) if self._registry else usage

        if self._fancy:
            renderable = Panel(
                renderable,
                title=Text.assemble("[", " ", f"{prog} HELP".upper(), " ", "]", style=styler("panel-title")),
                title_align="left",
            )

        console.print(renderable)


def _metavar(readable, /):
    """
    Placeholder shown for a readable's value in help and hints.
    """
    match readable:
        case Int():
            return "<int>"
        case Float():
            return "<float>"
        case String():
            return "<text>"
        case IntSequence():
            return "<count> <int>..."
        case StringSequence():
            return "<count> <text>..."
        case IntRange():
            return "<start[:step]:end>"
        case _:
            return ""


def parse(tokens, registry, mode=Mode.COLLECT, /, **options):
    """
    One-shot parse: build a Parser over 'registry' and run it.

    Parameters
    - tokens: as accepted by Parser.parse (Unset, str, or Iterable[str]).
    - registry: Registry or iterable of readables.
    - mode: Mode.COLLECT (default) or Mode.STRIP.
    - **options: Parser runtime options (shell, fancy, colorful, deferred).

    Returns
    - the plain arguments (COLLECT) or the stripped vector (STRIP).
    """
    return Parser(registry, **options).parse(tokens, mode)


__all__ = (
    "Mode",
    "Parser",
    "parse",
)
