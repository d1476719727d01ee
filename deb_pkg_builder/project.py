# Debian package builder: Project metadata.
#
# Author: C Thing Software
# Last Change: October 19, 2026
# URL: https://github.com/baron1405/deb-pkg-builder

"""
Metadata of the project whose packages are being built.

The :class:`Project` and :class:`ProjectVersion` classes describe the project
a package belongs to: its name, group, version, organization, license and
directories. This information is made available to the templates in the
``debian`` directory (see :mod:`deb_pkg_builder.template`) so that it doesn't
need to be duplicated in the control, changelog and copyright files.
"""

# Standard library modules.
import datetime
import email.utils
import logging
import os

# External dependencies.
from humanfriendly.text import compact

# Modules included in our package.
from deb_pkg_builder import config

# Public identifiers that require documentation.
__all__ = (
    "BUILD_TYPES",
    "NO_VERSION",
    "Project",
    "ProjectVersion",
    "RELEASE_BUILD",
    "SNAPSHOT_BUILD",
    "get_build_year",
    "get_changelog_date",
    "load_project",
    "logger",
)

# Initialize a logger.
logger = logging.getLogger(__name__)

RELEASE_BUILD = 'release'
SNAPSHOT_BUILD = 'snapshot'

BUILD_TYPES = (RELEASE_BUILD, SNAPSHOT_BUILD)
"""The supported build types (a tuple of strings)."""

BUILD_NUMBER_FORMAT = '%Y%m%d%H%M%S'
"""The :func:`~datetime.datetime.strftime()` format of generated build numbers."""


class ProjectVersion(object):

    """
    The version of a project, including information about the build.

    Release builds use the core version as is, snapshot builds append the
    build number:

    >>> from deb_pkg_builder.project import ProjectVersion
    >>> str(ProjectVersion('1.2.3', 'release'))
    '1.2.3'
    >>> str(ProjectVersion('1.2.3', 'snapshot', build_number='42'))
    '1.2.3-42'
    """

    def __init__(self, core_version, build_type=SNAPSHOT_BUILD, build_date=None,
                 build_number=None, branch='', commit=''):
        """
        Initialize a :class:`ProjectVersion` object.

        :param core_version: The semantic version (a string like ``1.2.3``).
        :param build_type: One of the strings in :data:`BUILD_TYPES`.
        :param build_date: A :class:`~datetime.datetime` object (defaults to
                           the current time). Naive timestamps are
                           interpreted as UTC.
        :param build_number: The build number (a string, defaults to the
                             build date formatted as ``YYYYMMDDhhmmss``).
        :param branch: The name of the source control branch (a string).
        :param commit: The source control commit identifier (a string).
        :raises: :exc:`~exceptions.ValueError` when the build type is not
                 supported.
        """
        if build_type not in BUILD_TYPES:
            raise ValueError(compact(
                "Unsupported build type {value}! (expected one of {choices})",
                value=repr(build_type),
                choices=", ".join(BUILD_TYPES),
            ))
        if build_date is None:
            build_date = datetime.datetime.now(datetime.timezone.utc)
        elif build_date.tzinfo is None:
            build_date = build_date.replace(tzinfo=datetime.timezone.utc)
        self.core_version = core_version
        self.build_type = build_type
        self.build_date = build_date
        self.build_number = build_number or build_date.astimezone(datetime.timezone.utc).strftime(BUILD_NUMBER_FORMAT)
        self.branch = branch or ''
        self.commit = commit or ''

    @property
    def is_release_build(self):
        """:data:`True` for release builds, :data:`False` for snapshot builds."""
        return self.build_type == RELEASE_BUILD

    @property
    def build_date_text(self):
        """The build date as an ISO 8601 UTC timestamp (a string like ``2021-11-27T19:45:24Z``)."""
        return self.build_date.astimezone(datetime.timezone.utc).strftime('%Y-%m-%dT%H:%M:%SZ')

    def __str__(self):
        """The full version string."""
        if self.is_release_build:
            return self.core_version
        return u"%s-%s" % (self.core_version, self.build_number)

    def __repr__(self):
        """A readable representation of the version."""
        return "ProjectVersion(%r, %r, build_number=%r)" % (self.core_version, self.build_type, self.build_number)


NO_VERSION = ProjectVersion('0.0.0', RELEASE_BUILD, build_number='0')
"""The version of projects that don't define one (a :class:`ProjectVersion` object)."""


class Project(object):

    """The project to which a package belongs."""

    def __init__(self, name, directory, group='', version=None, root_directory=None,
                 build_directory=None, organization=None, license=None, resource_dirs=None):
        """
        Initialize a :class:`Project` object.

        :param name: The name of the project (a string).
        :param directory: The pathname of the project directory (a string).
        :param group: The group (namespace) of the project (a string).
        :param version: A :class:`ProjectVersion` object (defaults to
                        :data:`NO_VERSION`).
        :param root_directory: The root directory of a multi project build
                               (defaults to `directory`).
        :param build_directory: The directory for build output (defaults to
                                ``build`` inside `directory`).
        :param organization: The organization creating the package (defaults
                             to :data:`.config.DEFAULT_ORGANIZATION`).
        :param license: The license of the project (defaults to
                        :data:`.config.DEFAULT_LICENSE`).
        :param resource_dirs: A dictionary mapping resource set names (like
                              ``main``) to directories.
        """
        self.name = name
        self.directory = os.path.abspath(directory)
        self.group = group or ''
        self.version = version or NO_VERSION
        self.root_directory = os.path.abspath(root_directory or self.directory)
        self.build_directory = os.path.abspath(build_directory or os.path.join(self.directory, 'build'))
        self.organization = organization or config.DEFAULT_ORGANIZATION
        self.license = license or config.DEFAULT_LICENSE
        self.resource_dirs = dict(resource_dirs or {})

    @property
    def distributions_directory(self):
        """The default destination directory for package archives (a string)."""
        return os.path.join(self.build_directory, 'distributions')

    def __repr__(self):
        """A readable representation of the project."""
        return "Project(name=%r, version=%r)" % (self.name, str(self.version))


def get_changelog_date(version):
    """
    Format the build date the way Debian changelog files require.

    :param version: A :class:`ProjectVersion` object.
    :returns: A string like ``Sat, 27 Nov 2021 19:45:24 +0000``.
    """
    return email.utils.format_datetime(version.build_date)


def get_build_year(version):
    """
    Get the year in which the build occurred.

    :param version: A :class:`ProjectVersion` object.
    :returns: The four digit year (a string).
    """
    return version.build_date.strftime('%Y')


def load_project(directory, options=None):
    """
    Create a :class:`Project` based on configuration files.

    :param directory: The pathname of the project directory (a string).
    :param options: A dictionary of dictionaries as returned by
                    :func:`.config.load_config()` (loaded from `directory`
                    when not given).
    :returns: A :class:`Project` object.
    """
    if options is None:
        options = config.load_config(directory)
    project_options = options.get('project', {})
    directory = os.path.abspath(directory)
    version = NO_VERSION
    if project_options.get('version'):
        version = ProjectVersion(
            project_options['version'],
            build_type=project_options.get('build-type', SNAPSHOT_BUILD),
            build_number=project_options.get('build-number'),
            branch=project_options.get('branch', ''),
            commit=project_options.get('commit', ''),
        )
    root_directory = project_options.get('root-dir')
    build_directory = project_options.get('build-dir')
    project = Project(
        name=project_options.get('name') or os.path.basename(directory),
        directory=directory,
        group=project_options.get('group', ''),
        version=version,
        root_directory=os.path.join(directory, root_directory) if root_directory else None,
        build_directory=os.path.join(directory, build_directory) if build_directory else None,
        organization=project_options.get('organization'),
        license=project_options.get('license'),
        resource_dirs=dict(
            (name, os.path.join(directory, path))
            for name, path in options.get('resources', {}).items()
        ),
    )
    logger.debug("Loaded project metadata: %r", project)
    return project
