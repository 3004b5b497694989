"""Reading and writing of ``key=value`` properties files.

The format follows the conventions of Java ``.properties`` files so that
files written by either side can be read by the other:

- ``#`` or ``!`` as the first non-blank character starts a comment line
- keys and values are separated by ``=``, ``:`` or whitespace
- a trailing backslash continues the logical line on the next line
- ``\\t``, ``\\n``, ``\\r``, ``\\f`` and ``\\uXXXX`` escapes are recognized
"""

import re
import string
from datetime import datetime
from typing import Dict, Iterator, Mapping, Optional, TextIO

_WHITESPACE = ' \t\f'
_SEPARATORS = '=:'
_COMMENT_CHARS = '#!'
_LINE_BREAK = re.compile(r'\r\n|\r|\n')

_UNESCAPES = {'t': '\t', 'n': '\n', 'r': '\r', 'f': '\f'}
_ESCAPES = {
    '\\': '\\\\',
    '\t': '\\t',
    '\n': '\\n',
    '\r': '\\r',
    '\f': '\\f',
    '=': '\\=',
    ':': '\\:',
    '#': '\\#',
    '!': '\\!',
}


def _continues(line: str) -> bool:
    """Return True when the line ends with an odd number of backslashes."""
    count = len(line) - len(line.rstrip('\\'))
    return count % 2 == 1


def _logical_lines(text: str) -> Iterator[str]:
    natural_lines = iter(_LINE_BREAK.split(text))
    for line in natural_lines:
        line = line.lstrip(_WHITESPACE)
        if not line or line[0] in _COMMENT_CHARS:
            continue

        while _continues(line):
            line = line[:-1]
            try:
                line += next(natural_lines).lstrip(_WHITESPACE)
            except StopIteration:
                break

        yield line


def _unescape(value: str) -> str:
    if '\\' not in value:
        return value

    chars = []
    i = 0
    length = len(value)
    while i < length:
        char = value[i]
        i += 1
        if char != '\\':
            chars.append(char)
            continue
        if i >= length:
            break

        char = value[i]
        i += 1
        if char == 'u':
            digits = value[i:i + 4]
            if len(digits) != 4 or not all(c in string.hexdigits for c in digits):
                raise ValueError(f"Malformed \\uXXXX encoding: \\u{digits}")
            chars.append(chr(int(digits, 16)))
            i += 4
        else:
            chars.append(_UNESCAPES.get(char, char))

    result = ''.join(chars)
    # Characters outside the BMP arrive as two \u escapes (a surrogate pair)
    if any('\ud800' <= c <= '\udfff' for c in result):
        result = result.encode('utf-16', 'surrogatepass').decode('utf-16', 'replace')
    return result


def _split_key_value(line: str):
    length = len(line)
    key_end = 0
    while key_end < length:
        char = line[key_end]
        if char == '\\':
            key_end += 2
            continue
        if char in _SEPARATORS or char in _WHITESPACE:
            break
        key_end += 1
    key_end = min(key_end, length)

    value_start = key_end
    while value_start < length and line[value_start] in _WHITESPACE:
        value_start += 1
    if value_start < length and line[value_start] in _SEPARATORS:
        value_start += 1
    while value_start < length and line[value_start] in _WHITESPACE:
        value_start += 1

    return _unescape(line[:key_end]), _unescape(line[value_start:])


def loads(text: str) -> Dict[str, str]:
    """Parse properties text into an ordered key-value mapping.

    Args:
        text: Content of a properties file

    Returns:
        Mapping of keys to values in file order; later duplicates win

    Raises:
        ValueError: If a ``\\uXXXX`` escape is malformed
    """
    properties: Dict[str, str] = {}
    for line in _logical_lines(text):
        key, value = _split_key_value(line)
        properties[key] = value
    return properties


def load(fp: TextIO) -> Dict[str, str]:
    """Parse properties from a text file object."""
    return loads(fp.read())


def _escape(text: str, is_key: bool, escape_unicode: bool) -> str:
    chars = []
    for index, char in enumerate(text):
        if char == ' ':
            chars.append('\\ ' if is_key or index == 0 else ' ')
        elif char in _ESCAPES:
            chars.append(_ESCAPES[char])
        elif escape_unicode and not (0x20 <= ord(char) <= 0x7e):
            if ord(char) > 0xffff:
                pair = char.encode('utf-16-be')
                chars.append('\\u%04X\\u%04X' % (
                    int.from_bytes(pair[:2], 'big'),
                    int.from_bytes(pair[2:], 'big')
                ))
            else:
                chars.append('\\u%04X' % ord(char))
        else:
            chars.append(char)
    return ''.join(chars)


def _comment_lines(comments: str, escape_unicode: bool) -> Iterator[str]:
    for line in _LINE_BREAK.split(comments):
        if escape_unicode:
            line = ''.join(
                c if ord(c) <= 0x7e else '\\u%04X' % ord(c) for c in line
            )
        if line and line[0] in _COMMENT_CHARS:
            yield line
        else:
            yield '#' + line


def dumps(properties: Mapping[str, str],
          comments: Optional[str] = None,
          timestamp: bool = True,
          escape_unicode: bool = False) -> str:
    """Serialize a key-value mapping to properties text.

    Args:
        properties: Mapping of string keys to string values
        comments: Optional header comment, one ``#`` line per text line
        timestamp: Whether to write the current date as a comment line
        escape_unicode: Write non-ASCII characters as ``\\uXXXX`` escapes

    Returns:
        Properties text, one ``key=value`` pair per line

    Raises:
        TypeError: If a key or value is not a string
    """
    lines = []
    if comments is not None:
        lines.extend(_comment_lines(comments, escape_unicode))
    if timestamp:
        now = datetime.now().astimezone()
        lines.extend(_comment_lines(now.strftime('%a %b %d %H:%M:%S %Z %Y'), escape_unicode))

    for key, value in properties.items():
        if not isinstance(key, str) or not isinstance(value, str):
            raise TypeError(
                f"Properties must map str to str, got {type(key).__name__}="
                f"{type(value).__name__} for key {key!r}"
            )
        lines.append(
            f"{_escape(key, True, escape_unicode)}={_escape(value, False, escape_unicode)}"
        )

    return ''.join(line + '\n' for line in lines)


def dump(properties: Mapping[str, str], fp: TextIO, **kwargs) -> None:
    """Write ``properties`` to a text file object. See :func:`dumps`."""
    fp.write(dumps(properties, **kwargs))
