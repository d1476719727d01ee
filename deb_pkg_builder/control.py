# Debian package builder: Control file manipulation.
#
# Author: C Thing Software
# Last Change: October 19, 2026
# URL: https://github.com/baron1405/deb-pkg-builder

"""
Functions to load, create and manipulate Debian control files.

The :class:`ControlFile` class is used by the build orchestration in
:mod:`deb_pkg_builder.builder` to find the name of the package being built
(from the source control file) and the filename of the resulting archive
(from the binary control file generated by :man:`dpkg-gencontrol`). The other
functions are used to prepare the ``DEBIAN/control`` file of staged package
trees built with :func:`deb_pkg_builder.package.build_package()`.

Field names are case insensitive, courtesy of :mod:`humanfriendly.case`.
"""

# Standard library modules.
import logging
import os

# External dependencies.
from humanfriendly import format_path
from humanfriendly.case import CaseInsensitiveDict, CaseInsensitiveKey
from humanfriendly.text import compact, concatenate, pluralize

# Modules included in our package.
from deb_pkg_builder.deb822 import Deb822, parse_deb822
from deb_pkg_builder.utils import makedirs

# Public identifiers that require documentation.
__all__ = (
    "ARCHITECTURE_FIELD",
    "ControlFile",
    "DEFAULT_CONTROL_FIELDS",
    "FILENAME_FIELDS",
    "MANDATORY_BINARY_CONTROL_FIELDS",
    "PACKAGE_FIELD",
    "SPECIAL_CASES",
    "VERSION_FIELD",
    "check_mandatory_fields",
    "create_control_file",
    "load_control_file",
    "logger",
    "merge_control_fields",
    "normalize_control_field_name",
    "patch_control_file",
)

# Initialize a logger.
logger = logging.getLogger(__name__)

PACKAGE_FIELD = CaseInsensitiveKey('Package')
VERSION_FIELD = CaseInsensitiveKey('Version')
ARCHITECTURE_FIELD = CaseInsensitiveKey('Architecture')

FILENAME_FIELDS = (PACKAGE_FIELD, VERSION_FIELD, ARCHITECTURE_FIELD)
"""The fields encoded in the filename of a package archive, in order."""

MANDATORY_BINARY_CONTROL_FIELDS = (
    CaseInsensitiveKey('Architecture'),
    CaseInsensitiveKey('Description'),
    CaseInsensitiveKey('Maintainer'),
    CaseInsensitiveKey('Package'),
    CaseInsensitiveKey('Version'),
)
"""
A tuple of strings (actually :class:`~humanfriendly.case.CaseInsensitiveKey`
objects) with the canonical names of the mandatory binary control file fields
as defined by the `Debian policy manual
<https://www.debian.org/doc/debian-policy/ch-controlfields.html#s-binarycontrolfiles>`_.
"""

DEFAULT_CONTROL_FIELDS = CaseInsensitiveDict(Architecture='all', Priority='optional', Section='misc')
"""
A case insensitive dictionary with the default values that
:func:`create_control_file()` gives to fields the caller hasn't defined.
"""

SPECIAL_CASES = dict(md5sum='MD5sum', sha1='SHA1', sha256='SHA256')
"""
Non-default casing for words that are part of control field names, used by
:func:`normalize_control_field_name()`.
"""


class ControlFile(Deb822):

    """
    The fields of a Debian binary package control file.

    Besides the generic dictionary interface this class knows about the three
    fields that determine the filename of a package archive:

    >>> from deb_pkg_builder.control import ControlFile
    >>> control = ControlFile(Package='pkg', Version='1.2.3', Architecture='amd64')
    >>> control.package_filename
    'pkg_1.2.3_amd64.deb'
    """

    def __setitem__(self, key, value):
        """Set a control field, ignoring empty or blank field names."""
        if key and not key.isspace():
            super(ControlFile, self).__setitem__(key, value)

    @property
    def package(self):
        """The value of the ``Package`` field (a string or :data:`None`)."""
        return self.get(PACKAGE_FIELD)

    @property
    def version(self):
        """The value of the ``Version`` field (a string or :data:`None`)."""
        return self.get(VERSION_FIELD)

    @property
    def architecture(self):
        """The value of the ``Architecture`` field (a string or :data:`None`)."""
        return self.get(ARCHITECTURE_FIELD)

    @property
    def package_filename(self):
        """
        The filename of the package archive described by the control fields.

        :raises: :exc:`~exceptions.ValueError` when one of the ``Package``,
                 ``Version`` or ``Architecture`` fields is missing.
        """
        missing_fields = [f for f in FILENAME_FIELDS if not self.get(f)]
        if missing_fields:
            raise ValueError(compact(
                "Can't determine package filename, missing {fields}! ({details})",
                fields=pluralize(len(missing_fields), "control field"),
                details=concatenate(missing_fields),
            ))
        return u"%s_%s_%s.deb" % (self.package, self.version, self.architecture)

    def __str__(self):
        """The filename of the package archive (see :attr:`package_filename`)."""
        return self.package_filename


def load_control_file(control_file):
    """
    Parse a control file.

    :param control_file: The pathname of the control file (a string).
    :returns: A :class:`ControlFile` object.
    :raises: :exc:`~exceptions.ValueError` on syntax errors.
    """
    logger.debug("Loading control file %s ..", format_path(control_file))
    with open(control_file, 'rb') as handle:
        return ControlFile(parse_deb822(handle.read(), filename=control_file))


def write_control_file(control_file, control_fields):
    """Write control fields to a file, replacing (not modifying) an existing file."""
    makedirs(os.path.dirname(control_file))
    # The old file may be a hard link shared with a source tree.
    if os.path.lexists(control_file):
        os.unlink(control_file)
    with open(control_file, 'wb') as handle:
        control_fields.dump(handle)


def create_control_file(control_file, control_fields):
    """
    Create the control file of a binary package.

    :param control_file: The pathname of the control file (a string).
    :param control_fields: A dictionary with control fields, completed with
                           :data:`DEFAULT_CONTROL_FIELDS`.
    :raises: :exc:`~exceptions.ValueError` when a mandatory field is missing
             (see :func:`check_mandatory_fields()`).
    """
    merged_fields = merge_control_fields(DEFAULT_CONTROL_FIELDS, control_fields)
    check_mandatory_fields(merged_fields)
    logger.debug("Creating control file %s ..", format_path(control_file))
    write_control_file(control_file, merged_fields)


def check_mandatory_fields(control_fields):
    """
    Make sure the mandatory binary package control fields are present.

    :param control_fields: A dictionary with control fields.
    :raises: :exc:`~exceptions.ValueError` listing the fields of
             :data:`MANDATORY_BINARY_CONTROL_FIELDS` that are missing or empty.
    """
    missing_fields = sorted(name for name in MANDATORY_BINARY_CONTROL_FIELDS if not control_fields.get(name))
    if missing_fields:
        raise ValueError(compact(
            "The control file is missing {count}! ({names})",
            count=pluralize(len(missing_fields), "mandatory field"),
            names=concatenate(missing_fields),
        ))


def patch_control_file(control_file, overrides):
    """
    Change some of the fields in a control file.

    :param control_file: The pathname of the control file (a string).
    :param overrides: A dictionary with the fields to change (see
                      :func:`merge_control_fields()`).
    """
    logger.debug("Patching control file %s ..", format_path(control_file))
    write_control_file(control_file, merge_control_fields(load_control_file(control_file), overrides))


def merge_control_fields(defaults, overrides):
    """
    Combine two sets of control fields.

    :param defaults: A dictionary with control fields.
    :param overrides: A dictionary with control fields that take precedence.
                      A value of :data:`None` or an empty string removes the
                      field.
    :returns: A :class:`ControlFile` with normalized field names and string
              values. Fields keep the position they have in `defaults`,
              fields only present in `overrides` are added at the end.
    """
    merged = ControlFile()
    for fields in (defaults, overrides):
        for name, value in fields.items():
            name = normalize_control_field_name(name)
            value = '' if value is None else str(value)
            if value.strip():
                merged[name] = value
            elif name in merged:
                del merged[name]
    return merged


def normalize_control_field_name(name):
    """
    Give a control field name its conventional capitalization.

    :param name: The name of a control field (a string like ``installed-size``).
    :returns: A :class:`~humanfriendly.case.CaseInsensitiveKey` like ``Installed-Size``.

    >>> from deb_pkg_builder.control import normalize_control_field_name
    >>> str(normalize_control_field_name('md5sum'))
    'MD5sum'
    """
    words = name.split('-')
    return CaseInsensitiveKey('-'.join(SPECIAL_CASES.get(word.lower(), word.capitalize()) for word in words))
