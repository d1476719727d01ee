# Debian package builder: Control file syntax.
#
# Author: C Thing Software
# Last Change: October 19, 2026
# URL: https://github.com/baron1405/deb-pkg-builder

"""
Parsing and formatting of Debian control fields in the :man:`deb822` format.

Control files handled by `deb-pkg-builder` come in two flavors:

- The source package control file (``debian/control``) which contains a
  ``Source`` paragraph followed by one or more binary package paragraphs.

- The binary package control file (``DEBIAN/control``) generated by
  :man:`dpkg-gencontrol` or written by hand for a staged package tree.

The :func:`parse_deb822()` function folds all paragraphs into a single case
insensitive dictionary (later fields override earlier fields of the same name)
which is all that is needed to find the name, version and architecture of the
package being built. Use :func:`parse_paragraphs()` when the paragraphs need to
be kept apart.
"""

# Standard library modules.
import codecs
import logging
import re

# External dependencies.
from humanfriendly.case import CaseInsensitiveDict
from humanfriendly.text import compact, format, is_empty_line

# Public identifiers that require documentation.
__all__ = ("Deb822", "dump_deb822", "logger", "parse_deb822", "parse_paragraphs")

# Initialize a logger.
logger = logging.getLogger(__name__)

COMMENT_CHAR = u"#"
"""Lines starting with this character are ignored (a string)."""

FIELD_DELIMITER = u":"
"""The character separating a field name from its value (a string)."""

LINE_ENDINGS = re.compile(r"\r\n|\r|\n")
"""Only these sequences end a line (unlike :meth:`str.splitlines()`)."""

BLANK_LINE_MARKER = u"."
"""Continuation lines with only this character encode an empty line (a string)."""


def dump_deb822(fields):
    """
    Render control fields in :man:`deb822` syntax.

    :param fields: A dictionary with control fields.
    :returns: The rendered fields (a string ending in a newline).

    Every line after the first line of a value is indented by a single space,
    empty lines become a single indented dot.
    """
    return u"".join(u"%s: %s\n" % (name, format_value(value)) for name, value in fields.items())


def format_value(value):
    """Indent the continuation lines of a multi-line control field value."""
    first_line, _, remainder = value.partition(u"\n")
    if u"\n" not in value:
        return first_line
    continuation_lines = [
        (u" " + line) if line and not line.isspace() else (u" " + BLANK_LINE_MARKER)
        for line in remainder.split(u"\n")
    ]
    return u"\n".join([first_line] + continuation_lines)


def parse_deb822(text, filename=None):
    """
    Parse Debian control fields into a single :class:`Deb822` object.

    :param text: The control fields (a string or UTF-8 encoded bytes).
    :param filename: The pathname of the file that `text` was read from
                     (a string, optional). It's included in error
                     messages.
    :returns: A :class:`Deb822` object.
    :raises: :exc:`~exceptions.ValueError` when a line is neither a comment,
             an empty line, a continuation line nor a key/value pair.

    Empty lines separate paragraphs but otherwise carry no meaning, so the
    fields of all paragraphs end up in the same dictionary:

    >>> from deb_pkg_builder.deb822 import parse_deb822
    >>> fields = parse_deb822('''Source: example
    ...
    ... Package: example-tools
    ... Architecture: all
    ... ''')
    >>> sorted(fields.keys())
    ['Architecture', 'Package', 'Source']
    """
    merged = Deb822()
    for paragraph in parse_paragraphs(text, filename=filename):
        merged.update(paragraph)
    return merged


def parse_paragraphs(text, filename=None):
    """
    Parse Debian control fields into a list of :class:`Deb822` objects.

    :param text: The control fields (a string or UTF-8 encoded bytes).
    :param filename: See :func:`parse_deb822()`.
    :returns: A list of :class:`Deb822` objects, one for each paragraph.
    :raises: :exc:`~exceptions.ValueError` on malformed input.
    """
    # Control files are always UTF-8.
    if isinstance(text, bytes):
        text = codecs.decode(text, "UTF-8")
    paragraphs = []
    parsed_fields = []
    for line_number, line in enumerate(LINE_ENDINGS.split(text), start=1):
        # Comments may appear anywhere, even between continuation lines.
        if line.startswith(COMMENT_CHAR):
            continue
        # Empty lines end the current paragraph (if there is one).
        if is_empty_line(line):
            if parsed_fields:
                paragraphs.append(parsed_fields)
                parsed_fields = []
            continue
        if line.startswith((u" ", u"\t")):
            # A paragraph can't start with a continuation line.
            if not parsed_fields:
                raise ValueError(render_error(
                    filename, line_number,
                    "Continuation line {line_text} has no preceding field name!",
                    line_text=repr(line),
                ))
            # Only the leading indentation character is removed. Lines
            # containing only a dot are converted to empty lines.
            value = line[1:]
            if value.strip() == BLANK_LINE_MARKER:
                value = u""
            parsed_fields[-1][1].append(value)
        else:
            key, delimiter, value = line.partition(FIELD_DELIMITER)
            if not (key.strip() and delimiter):
                raise ValueError(render_error(
                    filename, line_number,
                    "Expected a field name followed by '{delimiter}', got {line_text} instead!",
                    delimiter=FIELD_DELIMITER,
                    line_text=repr(line),
                ))
            parsed_fields.append((key.strip(), [value.strip()]))
    if parsed_fields:
        paragraphs.append(parsed_fields)
    logger.debug("Parsed %i paragraph(s) of control fields.", len(paragraphs))
    return [Deb822((key, u"\n".join(lines)) for key, lines in fields) for fields in paragraphs]


def render_error(filename, line_number, text, *args, **kw):
    """Prefix a parse error message with its location."""
    if filename:
        location = format("Invalid control field in %s on line %i:", filename, line_number)
    else:
        location = format("Invalid control field on line %i:", line_number)
    return u" ".join([location, compact(text, *args, **kw)])


class Deb822(CaseInsensitiveDict):

    """Case insensitive dictionary to represent the fields of a parsed :man:`deb822` paragraph."""

    def dump(self, handle=None):
        """
        Serialize the control fields.

        :param handle: A file-like object opened in binary mode or :data:`None`.
        :returns: If `handle` is :data:`None` the dumped control fields are
                  (otherwise the UTF-8 encoded text is written to `handle`).
        """
        text = dump_deb822(self)
        if handle is not None:
            handle.write(text.encode("UTF-8"))
        else:
            return text

    def __eq__(self, other):
        """Compare the fields of two dictionaries, regardless of their order."""
        return dict(self) == dict(other)
