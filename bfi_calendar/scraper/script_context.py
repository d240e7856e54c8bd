"""
Reading page state out of inline scripts without executing them.

BFI result pages embed their search state in an inline script::

    var articleContext = {
        articleId: 'abc',
        searchNames: ["start_date", "venue_name", ...],
        searchResults: [[...], [...]],
        pagination: {current_page: '1', total_pages: '3'}
    };
    articleContext.sToken = '...';
    jQuery(function () { ... });

Only the literal parts of such a script are understood: the initial
assignment and any ``articleContext.<attr> = <literal>;`` statements after it.
Other statements are stepped over up to the next top-level ``;`` or line
break. A value that is not a literal (a call, an identifier, ``new Date()``...)
in the initial object or in an ``articleContext.<attr> =`` statement stops the
capture, the same way an uncaught exception would stop the script, and
everything read up to that point is kept.

Stepping over statements only tracks brackets, strings and comments; a regex
literal holding an unbalanced bracket or quote will confuse it.
"""

import re
from dataclasses import dataclass
from typing import Any
from typing import Dict
from typing import List
from typing import Optional
from typing import Tuple

_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "0": "\0",
}

_NUMBER_RE = re.compile(r"-?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_IDENT_RE = re.compile(r"[A-Za-z_$][\w$]*")

_KEYWORDS = {"true": True, "false": False, "null": None, "undefined": None}


class ScriptSyntaxError(ValueError):
    """Raised when the script contains something other than a plain literal."""

    def __init__(self, message: str, pos: int):
        self.pos = pos
        super().__init__(f"{message} at offset {pos}")


@dataclass
class ScriptCapture:
    """
    Outcome of capturing one assigned object.

    ``value`` is None when the script never assigns the name. ``error`` is set
    when reading stopped early; ``value`` then holds what was read before.
    """

    value: Optional[Dict[str, Any]] = None
    error: Optional[ScriptSyntaxError] = None

    @property
    def assigned(self) -> bool:
        return self.value is not None


class _Reader:
    def __init__(self, text: str, pos: int = 0) -> None:
        self.text = text
        self.pos = pos

    def skip(self) -> None:
        """Skip whitespace and comments."""
        text = self.text
        while self.pos < len(text):
            ch = text[self.pos]
            if ch.isspace():
                self.pos += 1
            elif text.startswith("//", self.pos):
                end = text.find("\n", self.pos)
                self.pos = len(text) if end == -1 else end + 1
            elif text.startswith("/*", self.pos):
                end = text.find("*/", self.pos + 2)
                if end == -1:
                    raise ScriptSyntaxError("unterminated comment", self.pos)
                self.pos = end + 2
            else:
                break

    def peek(self) -> str:
        self.skip()
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def expect(self, ch: str) -> None:
        if self.peek() != ch:
            raise ScriptSyntaxError(f"expected '{ch}'", self.pos)
        self.pos += 1

    def at_end(self) -> bool:
        return self.peek() == ""

    def read_value(self) -> Any:
        ch = self.peek()
        if ch == "{":
            return self.read_object()
        if ch == "[":
            return self.read_array()
        if ch in ("'", '"'):
            return self.read_string()
        match = _NUMBER_RE.match(self.text, self.pos)
        if match:
            self.pos = match.end()
            literal = match.group()
            if any(c in literal for c in ".eE"):
                return float(literal)
            return int(literal)
        match = _IDENT_RE.match(self.text, self.pos)
        if match and match.group() in _KEYWORDS:
            self.pos = match.end()
            return _KEYWORDS[match.group()]
        raise ScriptSyntaxError("not a literal", self.pos)

    def read_string(self) -> str:
        quote = self.text[self.pos]
        start = self.pos
        self.pos += 1
        chunks: List[str] = []
        text = self.text
        while self.pos < len(text):
            ch = text[self.pos]
            if ch == quote:
                self.pos += 1
                return "".join(chunks)
            if ch == "\n":
                break
            if ch == "\\":
                self.pos += 1
                if self.pos >= len(text):
                    break
                esc = text[self.pos]
                if esc == "u":
                    code = text[self.pos + 1:self.pos + 5]
                    try:
                        chunks.append(chr(int(code, 16)))
                    except ValueError:
                        raise ScriptSyntaxError("bad unicode escape", self.pos) from None
                    self.pos += 5
                    continue
                if esc == "x":
                    code = text[self.pos + 1:self.pos + 3]
                    try:
                        chunks.append(chr(int(code, 16)))
                    except ValueError:
                        raise ScriptSyntaxError("bad hex escape", self.pos) from None
                    self.pos += 3
                    continue
                if esc == "\n":
                    self.pos += 1
                    continue
                chunks.append(_ESCAPES.get(esc, esc))
                self.pos += 1
                continue
            chunks.append(ch)
            self.pos += 1
        raise ScriptSyntaxError("unterminated string", start)

    def read_key(self) -> str:
        ch = self.peek()
        if ch in ("'", '"'):
            return self.read_string()
        match = _IDENT_RE.match(self.text, self.pos) or _NUMBER_RE.match(self.text, self.pos)
        if not match:
            raise ScriptSyntaxError("expected property name", self.pos)
        self.pos = match.end()
        return match.group()

    def read_pair(self) -> Tuple[str, Any]:
        key = self.read_key()
        self.expect(":")
        return key, self.read_value()

    def read_object(self, into: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Read ``{...}``. When ``into`` is given, pairs are stored there as
        they are read, so a caller can keep them if a later pair fails.
        """
        result = {} if into is None else into
        self.expect("{")
        while self.peek() != "}":
            key, value = self.read_pair()
            result[key] = value
            if self.peek() == ",":
                self.pos += 1
            elif self.peek() != "}":
                raise ScriptSyntaxError("expected ',' or '}'", self.pos)
        self.pos += 1
        return result

    def read_array(self) -> List[Any]:
        result: List[Any] = []
        self.expect("[")
        while self.peek() != "]":
            result.append(self.read_value())
            if self.peek() == ",":
                self.pos += 1
            elif self.peek() != "]":
                raise ScriptSyntaxError("expected ',' or ']'", self.pos)
        self.pos += 1
        return result

    def end_statement(self) -> None:
        start = self.pos
        ch = self.peek()
        if ch == ";":
            self.pos += 1
        elif ch and ch != "}" and "\n" not in self.text[start:self.pos]:
            raise ScriptSyntaxError("expected end of statement", self.pos)

    def skip_statement(self) -> None:
        """Step over one statement, up to a top-level ';' or line break."""
        text = self.text
        depth = 0
        while self.pos < len(text):
            ch = text[self.pos]
            if ch in "'\"`":
                self.skip_quoted()
                continue
            if text.startswith("//", self.pos):
                end = text.find("\n", self.pos)
                self.pos = len(text) if end == -1 else end
                continue
            if text.startswith("/*", self.pos):
                end = text.find("*/", self.pos + 2)
                if end == -1:
                    raise ScriptSyntaxError("unterminated comment", self.pos)
                self.pos = end + 2
                continue
            self.pos += 1
            if ch in "([{":
                depth += 1
            elif ch in ")]}":
                if depth == 0:
                    raise ScriptSyntaxError("unbalanced '" + ch + "'", self.pos - 1)
                depth -= 1
            elif depth == 0 and ch in ";\n":
                return

    def skip_quoted(self) -> None:
        quote = self.text[self.pos]
        start = self.pos
        self.pos += 1
        while self.pos < len(self.text):
            ch = self.text[self.pos]
            if ch == "\\":
                self.pos += 2
                continue
            self.pos += 1
            if ch == quote:
                return
            if ch == "\n" and quote != "`":
                break
        raise ScriptSyntaxError("unterminated string", start)


def capture_assignment(script: str, name: str) -> ScriptCapture:
    """
    Capture the object literal assigned to ``name`` in ``script``.

    Example:
        >>> capture_assignment("var ctx = {a: 1}; ctx.b = 'x';", "ctx").value
        {'a': 1, 'b': 'x'}
    """
    marker = re.compile(rf"\b(?:var|let|const)\s+{re.escape(name)}\s*=")
    found = marker.search(script)
    if not found:
        return ScriptCapture()

    reader = _Reader(script, found.end())
    captured: Dict[str, Any] = {}
    try:
        reader.read_object(into=captured)
        reader.end_statement()
        member = re.compile(
            rf"{re.escape(name)}\s*(?:\.\s*([A-Za-z_$][\w$]*)|\[\s*(['\"])(.*?)\2\s*\])\s*=(?!=)"
        )
        while not reader.at_end():
            match = member.match(script, reader.pos)
            if not match:
                reader.skip_statement()
                continue
            attr = match.group(1) or match.group(3)
            reader.pos = match.end()
            value = reader.read_value()
            reader.end_statement()
            captured[attr] = value
    except ScriptSyntaxError as e:
        return ScriptCapture(value=captured, error=e)
    return ScriptCapture(value=captured)
