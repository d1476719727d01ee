# Debian package builder: Configuration defaults.
#
# Author: C Thing Software
# Last Change: October 19, 2026
# URL: https://github.com/baron1405/deb-pkg-builder

"""
Configuration defaults and configuration file loading for `deb-pkg-builder`.

Build settings can be defined in ``*.ini`` files at three levels, each one
overriding the previous:

1. ``/etc/deb-pkg-builder/deb-pkg-builder.ini`` (system wide)
2. ``~/.deb-pkg-builder/deb-pkg-builder.ini`` (per user)
3. ``deb-pkg-builder.ini`` in the project directory

The following sections are recognized:

``[project]``
  ``name``, ``group``, ``version``, ``build-type`` (``release`` or
  ``snapshot``), ``build-number``, ``branch``, ``commit``, ``organization``
  and ``license``.

``[resources]``
  Each option maps a resource set name to a directory, made available to
  templates as ``project_<name>_resources_dir``.

``[deb]``
  ``lintian`` (a boolean) and ``lintian-tags`` (whitespace or comma
  separated Lintian tags to suppress).

``[variables]``
  Additional template variables shared by all builds.

``[repository]``
  ``url``, ``release-url``, ``snapshot-url``, ``username``, ``password`` and
  ``timeout`` (in seconds).
"""

# Standard library modules.
import configparser
import logging
import os
import re

# External dependencies.
from humanfriendly import coerce_boolean, format_path, parse_path
from humanfriendly.text import concatenate

# Public identifiers that require documentation.
__all__ = (
    "DEFAULT_ORGANIZATION",
    "DEFAULT_LICENSE",
    "ENABLE_LINTIAN",
    "REPOSITORY_PASSWORD",
    "REPOSITORY_TIMEOUT",
    "REPOSITORY_URL",
    "REPOSITORY_USERNAME",
    "config_file_name",
    "load_config",
    "load_config_files",
    "logger",
    "split_list",
    "system_config_directory",
    "user_config_directory",
)

# Initialize a logger.
logger = logging.getLogger(__name__)

system_config_directory = '/etc/deb-pkg-builder'
"""The pathname of the global (system wide) configuration directory (a string)."""

user_config_directory = parse_path('~/.deb-pkg-builder')
"""
The pathname of the current user's configuration directory (a string).

:default: The expanded value of ``~/.deb-pkg-builder``.
"""

config_file_name = 'deb-pkg-builder.ini'
"""The base name of the configuration files loaded by :func:`load_config()` (a string)."""

DEFAULT_ORGANIZATION = os.environ.get('DPB_ORGANIZATION', 'C Thing Software')
"""
The organization creating packages when the project doesn't define one.

The environment variable ``$DPB_ORGANIZATION`` can be used to control the
value of this variable.
"""

DEFAULT_LICENSE = 'Internal'
"""The license of projects that don't define one (a string)."""

ENABLE_LINTIAN = coerce_boolean(os.environ.get('DPB_LINTIAN', 'true'))
"""
:data:`True` to check built packages with :man:`lintian` (the default),
:data:`False` to skip the check.

The environment variable ``$DPB_LINTIAN`` can be used to control the value of
this variable (see :func:`~humanfriendly.coerce_boolean()` for acceptable
values).
"""

REPOSITORY_URL = os.environ.get('DPB_REPOSITORY_URL')
"""The URL of the repository to publish to (``$DPB_REPOSITORY_URL``, defaults to :data:`None`)."""

REPOSITORY_USERNAME = os.environ.get('DPB_REPOSITORY_USERNAME')
"""The repository username (``$DPB_REPOSITORY_USERNAME``, defaults to :data:`None`)."""

REPOSITORY_PASSWORD = os.environ.get('DPB_REPOSITORY_PASSWORD')
"""The repository password (``$DPB_REPOSITORY_PASSWORD``, defaults to :data:`None`)."""

REPOSITORY_TIMEOUT = 5 * 60
"""The connection and response timeout for repository uploads (in seconds)."""


def load_config(directory=None):
    """
    Load the build configuration.

    :param directory: The pathname of the project directory (a string) or
                      :data:`None` to load only the system wide and user
                      configuration files.
    :returns: A dictionary of dictionaries: each key is the name of a section,
              each value a dictionary with the options in that section.
    """
    candidates = [
        os.path.join(system_config_directory, config_file_name),
        os.path.join(user_config_directory, config_file_name),
    ]
    if directory:
        candidates.append(os.path.join(os.path.abspath(directory), config_file_name))
    return load_config_files(*candidates)


def load_config_files(*filenames):
    """
    Merge the sections of one or more configuration files.

    :param filenames: The pathnames of ``*.ini`` files (strings). Files that
                      don't exist are ignored, options in later files
                      override options in earlier files.
    :returns: A dictionary of dictionaries (see :func:`load_config()`).
    """
    sections = {}
    for filename in filenames:
        if os.path.isfile(filename):
            logger.debug("Loading configuration from %s ..", format_path(filename))
            parser = configparser.RawConfigParser()
            # Option names are case sensitive (template variable names).
            parser.optionxform = str
            parser.read(filename)
            logger.debug("Found %i sections: %s", len(parser.sections()), concatenate(parser.sections()))
            for name in parser.sections():
                sections.setdefault(name, {}).update(parser.items(name))
    return sections


def split_list(value):
    """
    Split a comma and/or whitespace separated list.

    :param value: A string (or :data:`None`).
    :returns: A list of strings.
    """
    return [token for token in re.split(r'[\s,]+', value or '') if token]
