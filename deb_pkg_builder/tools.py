# Debian package builder: External programs.
#
# Author: C Thing Software
# Last Change: October 19, 2026
# URL: https://github.com/baron1405/deb-pkg-builder

"""
The external programs that do the actual work of building and checking packages.

`deb-pkg-builder` doesn't know how to create a Debian binary package archive,
it orchestrates :man:`dpkg-buildpackage`, :man:`dpkg-gencontrol`,
:man:`dpkg-deb` and :man:`lintian` to do so. These programs are only available
on Debian based systems, :func:`tools_exist()` can be used to check whether
they're installed.
"""

# Standard library modules.
import logging
import os

# External dependencies.
from executor import execute
from humanfriendly import format_path
from humanfriendly.text import compact

# Public identifiers that require documentation.
__all__ = (
    "DEFAULT_LINTIAN_TAGS",
    "DPKG_BUILDPACKAGE_TOOL",
    "DPKG_DEB_TOOL",
    "DPKG_GENCONTROL_TOOL",
    "LINTIAN_TOOL",
    "MissingToolsError",
    "REQUIRED_TOOLS",
    "ensure_tools_exist",
    "lintian_command",
    "logger",
    "missing_tools",
    "run_lintian",
    "tools_exist",
)

# Initialize a logger.
logger = logging.getLogger(__name__)

DPKG_BUILDPACKAGE_TOOL = '/usr/bin/dpkg-buildpackage'
DPKG_DEB_TOOL = '/usr/bin/dpkg-deb'
DPKG_GENCONTROL_TOOL = '/usr/bin/dpkg-gencontrol'
LINTIAN_TOOL = '/usr/bin/lintian'

REQUIRED_TOOLS = (DPKG_BUILDPACKAGE_TOOL, DPKG_GENCONTROL_TOOL, LINTIAN_TOOL)
"""The programs that must be installed to build packages from a ``debian`` directory."""

DEFAULT_LINTIAN_TAGS = frozenset([
    'binary-without-manpage',
    'changelog-file-missing-in-native-package',
    'debian-changelog-file-missing',
    'debian-revision-should-not-be-zero',
    'no-copyright-file',
])
"""
The Lintian tags that are always suppressed.

These tags report issues that are irrelevant for packages of internal
software (manual pages, changelogs and copyright files).
"""


def missing_tools(tools=REQUIRED_TOOLS):
    """
    Find the external programs that are not installed.

    :param tools: An iterable of absolute pathnames (defaults to :data:`REQUIRED_TOOLS`).
    :returns: A list of pathnames of programs that don't exist.
    """
    return [pathname for pathname in tools if not os.path.exists(pathname)]


def tools_exist(tools=REQUIRED_TOOLS):
    """
    Check whether the Debian packaging tools are installed.

    :param tools: An iterable of absolute pathnames (defaults to :data:`REQUIRED_TOOLS`).
    :returns: :data:`True` if all of the programs exist, :data:`False` otherwise.
    """
    return not missing_tools(tools)


def ensure_tools_exist(tools=REQUIRED_TOOLS):
    """
    Make sure the Debian packaging tools are installed.

    :param tools: An iterable of absolute pathnames (defaults to :data:`REQUIRED_TOOLS`).
    :raises: :exc:`MissingToolsError` when one of the programs is missing.
    """
    missing = missing_tools(tools)
    if missing:
        raise MissingToolsError(compact(
            "Could not find Debian packaging tools (e.g. {pathname})",
            pathname=missing[0],
        ))


def lintian_command(archive, suppress_tags=()):
    """
    Create the command line to check a package archive with :man:`lintian`.

    :param archive: The pathname of a ``*.deb`` archive (a string).
    :param suppress_tags: An iterable of Lintian tags to suppress (strings).
    :returns: A list of strings.
    """
    command = [LINTIAN_TOOL]
    if os.getuid() == 0:
        command.append('--allow-root')
    for tag in sorted(set(suppress_tags)):
        command.extend(('--suppress-tags', tag))
    command.append(archive)
    return command


def run_lintian(archive, suppress_tags=()):
    """
    Check a package archive with :man:`lintian`.

    :param archive: The pathname of a ``*.deb`` archive (a string).
    :param suppress_tags: An iterable of Lintian tags to suppress (strings).
    :raises: :exc:`executor.ExternalCommandFailed` when Lintian reports
             errors (or can't be run).
    """
    logger.info("Running %s on package file %s ..", LINTIAN_TOOL, format_path(archive))
    execute(*lintian_command(archive, suppress_tags), logger=logger)


class MissingToolsError(Exception):

    """Raised by :func:`ensure_tools_exist()` when a Debian packaging tool is not installed."""
